"""Domain Types — survey aggregate, response records, and lifecycle enums.

Invariants:
    - SurveyId and ResponseId wrap UUIDs; UserId wraps the resolved identity string
    - SurveyAggregate.responses is ordered by first submission (index-addressable list)
    - All datetimes are timezone-aware UTC
    - All valid states encoded as Enums, no raw string matching

Design Decisions:
    - Plain dataclasses over ORM objects: core functions never touch the session
    - str Enums: serialize to JSON without custom encoders
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

SurveyId = NewType("SurveyId", UUID)
ResponseId = NewType("ResponseId", UUID)
UserId = NewType("UserId", str)


# ─── Enums ───────────────────────────────────────────────────────

class SurveyState(str, Enum):
    """Stored lifecycle state. Expiry is derived, never stored."""
    OPEN = "open"
    CLOSED = "closed"


class StatusFilter(str, Enum):
    """Listing filter over the stored flag and the derived expiry predicate."""
    ALL = "all"
    ACTIVE = "active"
    CLOSED = "closed"
    EXPIRED = "expired"


class Role(str, Enum):
    """Actor role relative to one survey (and optionally one response)."""
    CREATOR = "creator"
    RESPONSE_OWNER = "response_owner"
    CREATOR_AND_OWNER = "creator_and_owner"
    OTHER = "other"


class ViewerKind(str, Enum):
    """Read-side identity; decides which parts of a survey are exposed."""
    ANONYMOUS = "anonymous"
    KNOWN_USER = "known_user"
    KNOWN_CREATOR = "known_creator"


class CloseOutcome(str, Enum):
    CLOSED = "closed"
    ALREADY_CLOSED = "already_closed"


class DeleteOutcome(str, Enum):
    DELETED = "deleted"


class ExpiryRejection(str, Enum):
    """Reason an expiry update was refused."""
    CLOSED_SURVEY = "closed_survey"
    PAST_DATE = "past_date"


# ─── Aggregate ───────────────────────────────────────────────────

@dataclass(frozen=True)
class ResponseRecord:
    """One user's answer, embedded in exactly one survey."""
    id: ResponseId
    user_id: UserId
    text: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class SurveySummary:
    text: str
    generated_at: datetime
    is_visible: bool = False


@dataclass
class SurveyAggregate:
    """Survey metadata, lifecycle flags, and its embedded response list."""
    id: SurveyId
    title: str
    area: str
    question: str
    creator_id: UserId
    created_at: datetime
    updated_at: datetime
    guidelines: str = ""
    permitted_domains: list[str] = field(default_factory=list)
    permitted_responses: int | None = None
    summary_instructions: str = ""
    expiry_date: datetime | None = None
    closed: bool = False
    responses: list[ResponseRecord] = field(default_factory=list)
    summary: SurveySummary | None = None
    revision: int = 0

    @property
    def state(self) -> SurveyState:
        return SurveyState.CLOSED if self.closed else SurveyState.OPEN

    def is_expired(self, now: datetime) -> bool:
        """Derived predicate, evaluated at the moment of each gated operation."""
        return self.expiry_date is not None and self.expiry_date < now

    @property
    def respondent_count(self) -> int:
        return len({r.user_id for r in self.responses})

    def find_response(self, response_id: ResponseId) -> ResponseRecord | None:
        for record in self.responses:
            if record.id == response_id:
                return record
        return None

    def find_response_by_user(self, user_id: UserId) -> ResponseRecord | None:
        for record in self.responses:
            if record.user_id == user_id:
                return record
        return None


# ─── Query Values ────────────────────────────────────────────────

@dataclass(frozen=True)
class SurveyFilter:
    creator_id: UserId | None = None
    status: StatusFilter = StatusFilter.ALL
    search_text: str | None = None


@dataclass(frozen=True)
class PageRequest:
    """1-based page number and page size."""
    page: int = 1
    limit: int = 10

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class Viewer:
    kind: ViewerKind
    user_id: UserId | None = None

    @property
    def is_creator(self) -> bool:
        return self.kind == ViewerKind.KNOWN_CREATOR
