"""Authorization Policy — role resolution and role-gated predicates per survey.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no clock
    - Updating a response is owner-only; creator status alone never grants it
    - Deleting a response is allowed to the owner OR the survey creator
    - Close, expiry and summary operations are creator-only
    - An absent actor (anonymous) holds no write permission

Design Decisions:
    - Predicates answer "may this role act", never "is the survey writable":
      closed/expired gating lives in enforce_lifecycle
"""

from survey_engine.core.domain_types import (
    ResponseId, Role, SurveyAggregate, UserId, Viewer, ViewerKind,
)


def resolve_role(
    survey: SurveyAggregate,
    actor_id: UserId | None,
    response_id: ResponseId | None = None,
) -> Role:
    """Resolve the actor's role for the survey, and for one response if given."""
    if actor_id is None:
        return Role.OTHER
    is_creator = survey.creator_id == actor_id
    is_owner = False
    if response_id is not None:
        record = survey.find_response(response_id)
        is_owner = record is not None and record.user_id == actor_id
    if is_creator and is_owner:
        return Role.CREATOR_AND_OWNER
    if is_creator:
        return Role.CREATOR
    if is_owner:
        return Role.RESPONSE_OWNER
    return Role.OTHER


def is_creator_role(role: Role) -> bool:
    return role in (Role.CREATOR, Role.CREATOR_AND_OWNER)


def is_owner_role(role: Role) -> bool:
    return role in (Role.RESPONSE_OWNER, Role.CREATOR_AND_OWNER)


def can_close(survey: SurveyAggregate, actor_id: UserId | None) -> bool:
    return is_creator_role(resolve_role(survey, actor_id))


def can_extend_expiry(survey: SurveyAggregate, actor_id: UserId | None) -> bool:
    return is_creator_role(resolve_role(survey, actor_id))


def can_manage_summary(survey: SurveyAggregate, actor_id: UserId | None) -> bool:
    return is_creator_role(resolve_role(survey, actor_id))


def can_submit_new(survey: SurveyAggregate, actor_id: UserId | None) -> bool:
    """Any resolved identity may submit; gating is checked separately."""
    return actor_id is not None


def can_update_response(
    survey: SurveyAggregate, actor_id: UserId | None, response_id: ResponseId,
) -> bool:
    return is_owner_role(resolve_role(survey, actor_id, response_id))


def can_delete_response(
    survey: SurveyAggregate, actor_id: UserId | None, response_id: ResponseId,
) -> bool:
    return resolve_role(survey, actor_id, response_id) != Role.OTHER


def bypasses_gating(
    survey: SurveyAggregate, actor_id: UserId | None, response_id: ResponseId,
) -> bool:
    """Creator editing their own response ignores closed/expired."""
    return resolve_role(survey, actor_id, response_id) == Role.CREATOR_AND_OWNER


def resolve_viewer(survey: SurveyAggregate, actor_id: UserId | None) -> Viewer:
    """Three-valued read identity: anonymous, known user, or this survey's creator."""
    if actor_id is None:
        return Viewer(ViewerKind.ANONYMOUS)
    if survey.creator_id == actor_id:
        return Viewer(ViewerKind.KNOWN_CREATOR, actor_id)
    return Viewer(ViewerKind.KNOWN_USER, actor_id)
