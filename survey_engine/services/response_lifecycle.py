"""Response Lifecycle Service — survey creation, close/expiry, and response writes.

Invariants:
    - Every mutation is load -> decide (pure, core/enforce_lifecycle) -> CAS write
    - On PersistenceConflictError the WHOLE cycle repeats against a fresh read;
      the previous patch is never re-applied blindly
    - At most max_write_attempts cycles, then the conflict surfaces (retryable)
    - A decision that yields no patch (e.g. already closed) performs no write
    - Read helpers are pure derivations over one loaded aggregate

Design Decisions:
    - Decisions are passed as closures so the retry loop is written once
    - Clock and id factory are injected: tests pin "now" and response ids
"""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TypeVar

from survey_engine.core import enforce_lifecycle, survey_analytics
from survey_engine.core.domain_types import (
    CloseOutcome, DeleteOutcome, ResponseId, ResponseRecord, SurveyAggregate,
    SurveyId, UserId,
)
from survey_engine.core.errors import (
    ErrorContext, PersistenceConflictError, ResourceNotFoundError, SurveyEngineError,
)
from survey_engine.core.repository_protocols import SurveyRepository

logger = logging.getLogger(__name__)

T = TypeVar("T")

Decision = Callable[[SurveyAggregate, datetime], tuple[dict | None, T]]

DEFAULT_MAX_WRITE_ATTEMPTS = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_response_id() -> ResponseId:
    return ResponseId(uuid.uuid4())


class ResponseLifecycleService:
    """Lifecycle operations over one survey aggregate at a time."""

    def __init__(
        self,
        repository: SurveyRepository,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], ResponseId] = _new_response_id,
        max_write_attempts: int = DEFAULT_MAX_WRITE_ATTEMPTS,
    ):
        self.repository = repository
        self._clock = clock
        self._new_id = id_factory
        self.max_write_attempts = max(1, max_write_attempts)

    # ─── Survey lifecycle ────────────────────────────────────────

    async def create_survey(self, creator_id: UserId, payload: dict) -> SurveyAggregate:
        """Persist a new open survey with an empty response list."""
        data = {**payload, "creator_id": creator_id}
        survey = await self.repository.create(data)
        logger.info(
            f"Survey '{survey.title}' created",
            extra={"survey_id": str(survey.id), "actor_id": creator_id},
        )
        return survey

    async def close_survey(
        self, survey_id: SurveyId, actor_id: UserId,
    ) -> tuple[CloseOutcome, SurveyAggregate]:
        """Creator-only. Closing an already closed survey is a no-op result."""
        outcome = await self._apply(
            survey_id, actor_id, "close",
            lambda survey, now: enforce_lifecycle.decide_close(survey, actor_id),
        )
        return outcome, await self.load(survey_id)

    async def update_expiry(
        self, survey_id: SurveyId, actor_id: UserId, new_expiry: datetime,
    ) -> SurveyAggregate:
        await self._apply(
            survey_id, actor_id, "update_expiry",
            lambda survey, now: enforce_lifecycle.decide_expiry_update(
                survey, actor_id, new_expiry, now,
            ),
        )
        return await self.load(survey_id)

    # ─── Responses ───────────────────────────────────────────────

    async def submit_response(
        self, survey_id: SurveyId, actor_id: UserId, text: str,
    ) -> ResponseRecord:
        """First submission appends; resubmission updates the record in place."""
        response_id = self._new_id()
        return await self._apply(
            survey_id, actor_id, "submit_response",
            lambda survey, now: enforce_lifecycle.decide_submission(
                survey, actor_id, text, now, response_id,
            ),
        )

    async def update_response(
        self,
        survey_id: SurveyId,
        response_id: ResponseId,
        actor_id: UserId,
        text: str,
    ) -> ResponseRecord:
        return await self._apply(
            survey_id, actor_id, "update_response",
            lambda survey, now: enforce_lifecycle.decide_response_edit(
                survey, response_id, actor_id, text, now,
            ),
        )

    async def delete_response(
        self, survey_id: SurveyId, response_id: ResponseId, actor_id: UserId,
    ) -> DeleteOutcome:
        return await self._apply(
            survey_id, actor_id, "delete_response",
            lambda survey, now: enforce_lifecycle.decide_response_removal(
                survey, response_id, actor_id,
            ),
        )

    # ─── Read helpers ────────────────────────────────────────────

    async def get_user_response(
        self, survey_id: SurveyId, user_id: UserId,
    ) -> tuple[ResponseRecord, SurveyAggregate]:
        survey = await self.load(survey_id)
        record = survey.find_response_by_user(user_id)
        if record is None:
            raise ResourceNotFoundError(
                "Response", f"{survey_id}/{user_id}",
                ErrorContext(survey_id=str(survey_id), actor_id=user_id),
            )
        return record, survey

    async def response_count(self, survey_id: SurveyId) -> int:
        return survey_analytics.response_count(await self.load(survey_id))

    async def analytics(self, survey_id: SurveyId, actor_id: UserId | None) -> dict:
        """Creator-only response statistics."""
        survey = await self.load(survey_id)
        error = enforce_lifecycle.check_creator(
            survey, actor_id, "view analytics for this survey",
        )
        if error:
            raise error
        return survey_analytics.build_analytics(survey)

    # ─── Load / write cycle ─────────────────────────────────────

    async def load(self, survey_id: SurveyId) -> SurveyAggregate:
        """Fetch one survey or raise ResourceNotFoundError."""
        survey = await self.repository.find_by_id(survey_id)
        if survey is None:
            raise ResourceNotFoundError(
                "Survey", str(survey_id), ErrorContext(survey_id=str(survey_id)),
            )
        return survey

    async def apply_decision(
        self, survey_id: SurveyId, actor_id: UserId | None, operation: str,
        decide: Decision[T],
    ) -> T:
        """Run a decision under the CAS retry loop. Shared with the assistant service."""
        return await self._apply(survey_id, actor_id, operation, decide)

    async def _apply(
        self,
        survey_id: SurveyId,
        actor_id: UserId | None,
        operation: str,
        decide: Decision[T],
    ) -> T:
        log_extra = {"survey_id": str(survey_id), "actor_id": actor_id}
        for attempt in range(1, self.max_write_attempts + 1):
            survey = await self.load(survey_id)
            try:
                patch, outcome = decide(survey, self._clock())
            except SurveyEngineError as e:
                logger.warning(
                    f"{operation} rejected: {e.message}",
                    extra={**log_extra, "error_code": e.code},
                )
                raise
            if patch is None:
                logger.info(
                    f"{operation}: nothing to write",
                    extra={**log_extra, "outcome": str(getattr(outcome, "value", outcome))},
                )
                return outcome
            try:
                updated = await self.repository.update_by_id(
                    survey.id, patch, expected_revision=survey.revision,
                )
            except PersistenceConflictError:
                logger.warning(
                    f"{operation}: concurrent write detected, re-deciding",
                    extra={**log_extra, "attempt": attempt},
                )
                continue
            if updated is None:
                raise ResourceNotFoundError(
                    "Survey", str(survey_id), ErrorContext(survey_id=str(survey_id)),
                )
            logger.info(f"{operation} committed", extra={**log_extra, "attempt": attempt})
            return outcome

        logger.error(
            f"{operation}: gave up after {self.max_write_attempts} conflicting attempts",
            extra={**log_extra, "error_code": "PERSISTENCE_CONFLICT"},
        )
        raise PersistenceConflictError(
            str(survey_id), ErrorContext(survey_id=str(survey_id), actor_id=actor_id),
        )
