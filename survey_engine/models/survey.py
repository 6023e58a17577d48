"""Survey ORM — persists the survey aggregate root and its embedded responses.

Invariants:
    - id is UUID primary key
    - responses is an ordered JSON array of response records (first-submit order)
    - summary is a JSON object {text, generated_at, is_visible} or NULL
    - revision increments on every successful write (compare-and-swap key)
    - creator_id is written once at insert

Design Decisions:
    - JSON column for responses: the response list is part of the aggregate and is
      always read and written with it
    - survey_respondents mirrors (survey_id, user_id) pairs for per-user lookups;
      the JSON list stays the source of truth
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from survey_engine.db.base import Base
from survey_engine.db.types import UTCDateTime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Survey(Base):
    """Survey aggregate root. Owns its response records."""
    __tablename__ = "surveys"
    __table_args__ = (
        Index("ix_surveys_closed_expiry", "closed", "expiry_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    area: Mapped[str] = mapped_column(String(50), nullable=False)
    question: Mapped[str] = mapped_column(Text, nullable=False)
    guidelines: Mapped[str] = mapped_column(Text, nullable=False, default="")
    permitted_domains: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list,
    )
    permitted_responses: Mapped[int | None] = mapped_column(
        Integer, nullable=True,
    )
    summary_instructions: Mapped[str] = mapped_column(
        Text, nullable=False, default="",
    )
    creator_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True,
    )
    expiry_date: Mapped[datetime | None] = mapped_column(
        UTCDateTime, nullable=True,
    )
    closed: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    responses: Mapped[list] = mapped_column(
        JSON, nullable=False, default=list,
    )
    summary: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    revision: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=_utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime, nullable=False, default=_utcnow,
    )
