"""Survey Respondent ORM — (survey_id, user_id) lookup rows.

Invariants:
    - One row per distinct respondent per survey
    - Rewritten in the same transaction as the survey's responses column
"""

import uuid

from sqlalchemy import ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from survey_engine.db.base import Base


class SurveyRespondent(Base):
    __tablename__ = "survey_respondents"

    survey_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("surveys.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(64), primary_key=True, index=True,
    )
