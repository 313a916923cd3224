"""Create keywords table

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the keyword links table."""
    op.create_table(
        "keywords",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("keyword", sa.String(255), nullable=False),
        sa.Column("target_url", sa.String(2000), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )
    op.create_index("ix_keywords_active", "keywords", ["active"])
    op.create_index("ix_keywords_keyword_lower", "keywords", [sa.text("lower(keyword)")])


def downgrade() -> None:
    """Drop the keyword links table."""
    op.drop_index("ix_keywords_keyword_lower", table_name="keywords")
    op.drop_index("ix_keywords_active", table_name="keywords")
    op.drop_table("keywords")
