"""users and model_locks

Revision ID: 3f1c9a7d2b40
Revises:
Create Date: 2026-10-17 09:12:44.201533

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f1c9a7d2b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column(
            "role",
            sa.Enum("admin", "editor", "viewer", name="userrole"),
            nullable=False,
            server_default="editor",
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True
        ),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "model_locks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("subject_type", sa.String(length=64), nullable=False),
        sa.Column("subject_id", sa.String(length=64), nullable=False),
        sa.Column("holder_id", sa.String(length=255), nullable=True),
        sa.Column("locked_until", sa.DateTime(timezone=True), nullable=False),
        sa.Column("token", sa.String(length=64), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True
        ),
    )
    op.create_index("ix_model_locks_subject", "model_locks", ["subject_type", "subject_id"])
    op.create_index("ix_model_locks_locked_until", "model_locks", ["locked_until"])
    op.create_index("ix_model_locks_holder_id", "model_locks", ["holder_id"])


def downgrade() -> None:
    op.drop_index("ix_model_locks_holder_id", table_name="model_locks")
    op.drop_index("ix_model_locks_locked_until", table_name="model_locks")
    op.drop_index("ix_model_locks_subject", table_name="model_locks")
    op.drop_table("model_locks")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
