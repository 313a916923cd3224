"""Create analytics tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-18

"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _event_columns() -> list:
    return [
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    ]


def upgrade() -> None:
    """Create event tables and the daily summary table."""

    # Create impressions table
    op.create_table(
        "impressions",
        *_event_columns(),
        sa.Column("keyword_id", sa.Integer(), nullable=True),
        sa.Column("keyword", sa.String(255), nullable=False),
        sa.Column("user_session", sa.String(255), nullable=True),
        sa.ForeignKeyConstraint(["keyword_id"], ["keywords.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_impressions_created_at", "impressions", ["created_at"])
    op.create_index("ix_impressions_keyword", "impressions", ["keyword"])

    # Create clicks table
    op.create_table(
        "clicks",
        *_event_columns(),
        sa.Column("keyword_id", sa.Integer(), nullable=True),
        sa.Column("keyword", sa.String(255), nullable=False),
        sa.Column("target_url", sa.String(2000), nullable=False),
        sa.Column("user_session", sa.String(255), nullable=True),
        sa.ForeignKeyConstraint(["keyword_id"], ["keywords.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_clicks_created_at", "clicks", ["created_at"])
    op.create_index("ix_clicks_keyword", "clicks", ["keyword"])

    # Create searches table
    op.create_table(
        "searches",
        *_event_columns(),
        sa.Column("session_id", sa.String(255), nullable=False),
        sa.Column("user_session", sa.String(255), nullable=True),
        sa.Column("query_text", sa.Text(), nullable=False),
        sa.Column("has_files", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("file_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index("ix_searches_created_at", "searches", ["created_at"])
    op.create_index("ix_searches_session_id", "searches", ["session_id"])

    # Create token_usage table
    op.create_table(
        "token_usage",
        *_event_columns(),
        sa.Column("session_id", sa.String(255), nullable=False),
        sa.Column("user_session", sa.String(255), nullable=True),
        sa.Column("input_tokens", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("output_tokens", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("model_used", sa.String(100), nullable=False),
    )
    op.create_index("ix_token_usage_created_at", "token_usage", ["created_at"])
    op.create_index("ix_token_usage_session_id", "token_usage", ["session_id"])

    # Create analytics_summary table
    op.create_table(
        "analytics_summary",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("keyword", sa.String(255), nullable=False, server_default=""),
        sa.Column("total_searches", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_impressions", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_clicks", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_input_tokens", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_output_tokens", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("total_revenue", sa.Float(), nullable=False, server_default=sa.text("0.0")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("date", "keyword", name="uq_analytics_summary_date_keyword"),
    )
    op.create_index("ix_analytics_summary_date", "analytics_summary", ["date"])
    op.create_index("ix_analytics_summary_keyword_date", "analytics_summary", ["keyword", "date"])


def downgrade() -> None:
    """Drop analytics tables."""
    op.drop_index("ix_analytics_summary_keyword_date", table_name="analytics_summary")
    op.drop_index("ix_analytics_summary_date", table_name="analytics_summary")
    op.drop_table("analytics_summary")

    op.drop_index("ix_token_usage_session_id", table_name="token_usage")
    op.drop_index("ix_token_usage_created_at", table_name="token_usage")
    op.drop_table("token_usage")

    op.drop_index("ix_searches_session_id", table_name="searches")
    op.drop_index("ix_searches_created_at", table_name="searches")
    op.drop_table("searches")

    op.drop_index("ix_clicks_keyword", table_name="clicks")
    op.drop_index("ix_clicks_created_at", table_name="clicks")
    op.drop_table("clicks")

    op.drop_index("ix_impressions_keyword", table_name="impressions")
    op.drop_index("ix_impressions_created_at", table_name="impressions")
    op.drop_table("impressions")
