# softlock/locks/sweep.py
from __future__ import annotations
from typing import Any, Callable, List, Optional

from ..shared.logging import get_logger
from .engine import LockEngine
from .events import SubjectUnlocked
from .subjects import SubjectRef

logger = get_logger(__name__)


def flush_expired_locks(
    engine: LockEngine, resolve: Optional[Callable[[SubjectRef], Any]] = None
) -> List[SubjectRef]:
    """Delete expired locks and fire ``SubjectUnlocked`` once per subject.

    1. collect expired records and their subjects (refs taken before delete)
    2. delete exactly those records
    3. notify for each distinct subject that still resolves and is not
       locked again by a newer row
    """
    now = engine.now()
    expired = engine.store.find_expired(now)
    if not expired:
        logger.info("No expired model locks to flush")
        return []

    subjects: List[SubjectRef] = []
    for record in expired:
        ref = record.subject
        if ref in subjects:
            continue
        if resolve is not None and resolve(ref) is None:
            continue  # locked row is gone
        if engine.store.find_active(ref, now) is not None:
            continue  # relocked since
        subjects.append(ref)

    deleted = engine.store.delete_many(expired)

    for ref in subjects:
        engine.notify(SubjectUnlocked(ref))

    logger.info("Expired model locks flushed: %d rows, %d subjects", deleted, len(subjects))
    return subjects
