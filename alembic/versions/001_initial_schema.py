"""Initial schema — roots, patterns, root_pattern_bindings.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

root_pattern_bindings has no unique constraint on (root_id, pattern_id);
the recompute engine's delete-then-insert cycle is the only guard.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "roots",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("representation", sa.Text, nullable=False),
        sa.Column("gloss", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "patterns",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("skeleton", sa.Text, nullable=False),
        sa.Column("slot_count", sa.Integer, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "root_pattern_bindings",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("root_id", sa.Integer, sa.ForeignKey("roots.id", ondelete="CASCADE"), nullable=False),
        sa.Column("pattern_id", sa.Integer, sa.ForeignKey("patterns.id", ondelete="CASCADE"), nullable=False),
        sa.Column("generated_form", sa.Text, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "ix_root_pattern_bindings_root_pattern",
        "root_pattern_bindings",
        ["root_id", "pattern_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_root_pattern_bindings_root_pattern", table_name="root_pattern_bindings")
    op.drop_table("root_pattern_bindings")
    op.drop_table("patterns")
    op.drop_table("roots")
