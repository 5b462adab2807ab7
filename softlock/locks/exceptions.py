# softlock/locks/exceptions.py


class LockingError(Exception):
    """Base exception for all locking errors."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class InvalidDuration(LockingError):
    """Lock duration could not be parsed into a timestamp."""

    def __init__(self, value: object, details: str | None = None):
        self.value = value
        super().__init__(f"Invalid lock duration {value!r}", details)


class LockStorageError(LockingError):
    """Persisting or deleting a lock record failed (after rollback)."""

    def __init__(self, operation: str, original_error: Exception | None = None):
        self.operation = operation
        self.original_error = original_error
        super().__init__(
            f"Lock storage {operation} failed",
            str(original_error) if original_error else None,
        )
