"""Survey Schemas — Pydantic models with field-level validation for API boundaries.

Invariants:
    - SurveyCreate: title 3-100, area 3-50, question 10-500 chars (stripped)
    - guidelines and summary_instructions are optional, at most 2000 chars
    - permitted_domains entries look like hostnames (example.com)
    - permitted_responses, when given, is >= 1
    - expiry_date, when given, is timezone-aware and in the future
    - Response text: 1-5000 chars, stripped, non-empty
    - Strings are stripped before their length limits are checked

Design Decisions:
    - Request bodies accept camelCase aliases alongside snake_case names
    - Future-date checks here are input hygiene only; the lifecycle decision
      re-checks expiry against its own clock
"""

import re
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

_DOMAIN_RE = re.compile(r"^[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def _strip(v):
    return v.strip() if isinstance(v, str) else v


def _as_utc(v: datetime) -> datetime:
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)


def _future(v: datetime) -> datetime:
    v = _as_utc(v)
    if v <= datetime.now(timezone.utc):
        raise ValueError("date must be in the future")
    return v


class _RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# --- Surveys -----------------------------------------------------------------

class SurveyCreate(_RequestModel):
    """Survey creation payload."""
    title: str = Field(min_length=3, max_length=100)
    area: str = Field(min_length=3, max_length=50)
    question: str = Field(min_length=10, max_length=500)
    guidelines: str = Field("", max_length=2000)
    permitted_domains: list[str] = Field(default_factory=list, alias="permittedDomains")
    permitted_responses: int | None = Field(None, ge=1, alias="permittedResponses")
    summary_instructions: str = Field("", max_length=2000, alias="summaryInstructions")
    expiry_date: datetime | None = Field(None, alias="expiryDate")

    @field_validator(
        "title", "area", "question", "guidelines", "summary_instructions",
        mode="before",
    )
    @classmethod
    def strip_text(cls, v):
        return _strip(v)

    @field_validator("permitted_domains")
    @classmethod
    def check_domains(cls, v: list[str]) -> list[str]:
        cleaned = [d.strip().lower() for d in v]
        for domain in cleaned:
            if not _DOMAIN_RE.match(domain):
                raise ValueError(f"invalid domain: {domain!r}")
        return cleaned

    @field_validator("expiry_date")
    @classmethod
    def check_expiry(cls, v: datetime | None) -> datetime | None:
        return _future(v) if v is not None else None

    def to_payload(self) -> dict:
        return self.model_dump()


class ExpiryUpdate(_RequestModel):
    expiry_date: datetime = Field(alias="expiryDate")

    @field_validator("expiry_date")
    @classmethod
    def normalize(cls, v: datetime) -> datetime:
        return _as_utc(v)


class ResponseSubmit(_RequestModel):
    """Response body for submit and update."""
    text: str = Field(min_length=1, max_length=5000)

    @field_validator("text", mode="before")
    @classmethod
    def strip_text(cls, v):
        return _strip(v)


# --- Assistant ---------------------------------------------------------------

class SummaryVisibilityUpdate(_RequestModel):
    is_visible: bool = Field(alias="isVisible", strict=True)


class SurveySearch(_RequestModel):
    query: str = Field(min_length=1, max_length=500)

    @field_validator("query", mode="before")
    @classmethod
    def strip_query(cls, v):
        return _strip(v)
