"""Lifecycle Enforcement — gating checks and next-state decisions for a survey.

Invariants:
    - All functions are PURE: no IO, no async, no DB; `now` is always passed in
    - check_* return an error instance on violation, None on success
    - decide_* raise the first violated rule, otherwise return (patch, outcome);
      a None patch means "nothing to write"
    - Decisions never mutate the loaded aggregate; they build a new response list
    - Response order is first-submit order; in-place edits keep the index

Design Decisions:
    - Errors are returned by checks and raised by decisions so the service can
      re-run a decision against a fresh read after a write conflict
"""

from dataclasses import replace
from datetime import datetime

from survey_engine.core import authorization
from survey_engine.core.domain_types import (
    CloseOutcome, DeleteOutcome, ExpiryRejection, ResponseId, ResponseRecord,
    SurveyAggregate, SurveySummary, UserId,
)
from survey_engine.core.errors import (
    ErrorContext, ExpiryRejectedError, QuotaExceededError, ResourceNotFoundError,
    SurveyClosedError, SurveyEngineError, SurveyExpiredError, SummaryUnavailableError,
    UnauthorizedError,
)


def _ctx(
    survey: SurveyAggregate,
    actor_id: UserId | None = None,
    response_id: ResponseId | None = None,
) -> ErrorContext:
    return ErrorContext(
        survey_id=str(survey.id),
        actor_id=actor_id,
        response_id=str(response_id) if response_id else None,
    )


# ─── Checks ──────────────────────────────────────────────────────

def check_not_closed(survey: SurveyAggregate) -> SurveyEngineError | None:
    if survey.closed:
        return SurveyClosedError(_ctx(survey))
    return None


def check_not_expired(
    survey: SurveyAggregate, now: datetime,
) -> SurveyEngineError | None:
    if survey.is_expired(now):
        return SurveyExpiredError(_ctx(survey))
    return None


def check_accepting_writes(
    survey: SurveyAggregate, now: datetime,
) -> SurveyEngineError | None:
    """Closed is reported before expired when both hold."""
    return check_not_closed(survey) or check_not_expired(survey, now)


def check_quota(
    survey: SurveyAggregate, actor_id: UserId,
) -> SurveyEngineError | None:
    """Quota gates new respondents only; an existing respondent may resubmit."""
    quota = survey.permitted_responses
    if quota is None:
        return None
    if survey.find_response_by_user(actor_id) is not None:
        return None
    if survey.respondent_count >= quota:
        return QuotaExceededError(quota, _ctx(survey, actor_id))
    return None


def check_creator(
    survey: SurveyAggregate, actor_id: UserId | None, operation: str,
) -> SurveyEngineError | None:
    role = authorization.resolve_role(survey, actor_id)
    if not authorization.is_creator_role(role):
        return UnauthorizedError(operation, _ctx(survey, actor_id))
    return None


def check_future_expiry(
    survey: SurveyAggregate, new_expiry: datetime, now: datetime,
) -> SurveyEngineError | None:
    if new_expiry <= now:
        return ExpiryRejectedError(ExpiryRejection.PAST_DATE, _ctx(survey))
    return None


def find_response_or_error(
    survey: SurveyAggregate, response_id: ResponseId,
) -> ResponseRecord:
    record = survey.find_response(response_id)
    if record is None:
        raise ResourceNotFoundError(
            "Response", str(response_id), _ctx(survey, response_id=response_id),
        )
    return record


# ─── Decisions ───────────────────────────────────────────────────

def decide_close(
    survey: SurveyAggregate, actor_id: UserId | None,
) -> tuple[dict | None, CloseOutcome]:
    """Open -> Closed. Closing twice is a result, not an error."""
    if not authorization.can_close(survey, actor_id):
        raise UnauthorizedError("close this survey", _ctx(survey, actor_id))
    if survey.closed:
        return None, CloseOutcome.ALREADY_CLOSED
    return {"closed": True}, CloseOutcome.CLOSED


def decide_expiry_update(
    survey: SurveyAggregate,
    actor_id: UserId | None,
    new_expiry: datetime,
    now: datetime,
) -> tuple[dict, datetime]:
    """Extending an expired-but-open survey is allowed."""
    if not authorization.can_extend_expiry(survey, actor_id):
        raise UnauthorizedError(
            "update this survey's expiry", _ctx(survey, actor_id),
        )
    if survey.closed:
        raise ExpiryRejectedError(ExpiryRejection.CLOSED_SURVEY, _ctx(survey))
    error = check_future_expiry(survey, new_expiry, now)
    if error:
        raise error
    return {"expiry_date": new_expiry}, new_expiry


def decide_submission(
    survey: SurveyAggregate,
    actor_id: UserId,
    text: str,
    now: datetime,
    new_response_id: ResponseId,
) -> tuple[dict, ResponseRecord]:
    """Append a first submission or update the actor's record in place."""
    if not authorization.can_submit_new(survey, actor_id):
        raise UnauthorizedError("submit a response", _ctx(survey, actor_id))
    error = check_accepting_writes(survey, now) or check_quota(survey, actor_id)
    if error:
        raise error

    existing = survey.find_response_by_user(actor_id)
    if existing is not None:
        record = replace(existing, text=text, updated_at=now)
        responses = [record if r.id == existing.id else r for r in survey.responses]
    else:
        record = ResponseRecord(
            id=new_response_id, user_id=actor_id, text=text,
            created_at=now, updated_at=now,
        )
        responses = [*survey.responses, record]
    return {"responses": responses}, record


def decide_response_edit(
    survey: SurveyAggregate,
    response_id: ResponseId,
    actor_id: UserId | None,
    text: str,
    now: datetime,
) -> tuple[dict, ResponseRecord]:
    """Owner-only edit; a creator editing their own record skips gating."""
    existing = find_response_or_error(survey, response_id)
    if not authorization.can_update_response(survey, actor_id, response_id):
        raise UnauthorizedError(
            "update this response", _ctx(survey, actor_id, response_id),
        )
    if not authorization.bypasses_gating(survey, actor_id, response_id):
        error = check_accepting_writes(survey, now)
        if error:
            raise error

    record = replace(existing, text=text, updated_at=now)
    responses = [record if r.id == response_id else r for r in survey.responses]
    return {"responses": responses}, record


def decide_response_removal(
    survey: SurveyAggregate,
    response_id: ResponseId,
    actor_id: UserId | None,
) -> tuple[dict, DeleteOutcome]:
    """Owner or creator may delete. No closed/expired gate applies here."""
    find_response_or_error(survey, response_id)
    if not authorization.can_delete_response(survey, actor_id, response_id):
        raise UnauthorizedError(
            "delete this response", _ctx(survey, actor_id, response_id),
        )
    responses = [r for r in survey.responses if r.id != response_id]
    return {"responses": responses}, DeleteOutcome.DELETED


def decide_summary(
    survey: SurveyAggregate, text: str, now: datetime,
) -> tuple[dict, SurveySummary]:
    """New summaries start hidden from non-creators."""
    summary = SurveySummary(text=text, generated_at=now, is_visible=False)
    return {"summary": summary}, summary


def decide_summary_visibility(
    survey: SurveyAggregate, actor_id: UserId | None, is_visible: bool,
) -> tuple[dict | None, SurveySummary]:
    if not authorization.can_manage_summary(survey, actor_id):
        raise UnauthorizedError(
            "change summary visibility for this survey", _ctx(survey, actor_id),
        )
    if survey.summary is None:
        raise SummaryUnavailableError(_ctx(survey))
    if survey.summary.is_visible == is_visible:
        return None, survey.summary
    summary = replace(survey.summary, is_visible=is_visible)
    return {"summary": summary}, summary
