"""Initial schema — surveys and survey_respondents.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "surveys",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("area", sa.String(50), nullable=False),
        sa.Column("question", sa.Text, nullable=False),
        sa.Column("guidelines", sa.Text, nullable=False, server_default=""),
        sa.Column("permitted_domains", sa.JSON, nullable=False),
        sa.Column("permitted_responses", sa.Integer, nullable=True),
        sa.Column("summary_instructions", sa.Text, nullable=False, server_default=""),
        sa.Column("creator_id", sa.String(64), nullable=False),
        sa.Column("expiry_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("responses", sa.JSON, nullable=False),
        sa.Column("summary", sa.JSON, nullable=True),
        sa.Column("revision", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_surveys_creator_id", "surveys", ["creator_id"])
    op.create_index("ix_surveys_closed_expiry", "surveys", ["closed", "expiry_date"])

    op.create_table(
        "survey_respondents",
        sa.Column(
            "survey_id", UUID(as_uuid=True),
            sa.ForeignKey("surveys.id", ondelete="CASCADE"), primary_key=True,
        ),
        sa.Column("user_id", sa.String(64), primary_key=True),
    )
    op.create_index("ix_survey_respondents_user_id", "survey_respondents", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_survey_respondents_user_id", table_name="survey_respondents")
    op.drop_table("survey_respondents")
    op.drop_index("ix_surveys_closed_expiry", table_name="surveys")
    op.drop_index("ix_surveys_creator_id", table_name="surveys")
    op.drop_table("surveys")
