"""Survey Routes — creation, listing, single-survey reads, close and expiry.

Invariants:
    - Writes require a bearer identity; reads resolve an optional one
    - Handlers only translate HTTP <-> service calls; rules live in core/
    - Closing an already closed survey answers 200 with outcome "already_closed"
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from survey_engine.api.deps import (
    get_current_actor, get_lifecycle, get_optional_actor, get_query_engine,
)
from survey_engine.config import get_settings
from survey_engine.core.domain_types import (
    CloseOutcome, PageRequest, StatusFilter, SurveyFilter, SurveyId, UserId,
)
from survey_engine.core.survey_views import survey_to_dict
from survey_engine.schemas.survey import ExpiryUpdate, SurveyCreate
from survey_engine.services.response_lifecycle import ResponseLifecycleService
from survey_engine.services.survey_query import SurveyQueryEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/surveys", tags=["surveys"])

_CLOSE_MESSAGES = {
    CloseOutcome.CLOSED: "Survey closed successfully",
    CloseOutcome.ALREADY_CLOSED: "Survey is already closed",
}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_survey(
    body: SurveyCreate,
    actor_id: UserId = Depends(get_current_actor),
    lifecycle: ResponseLifecycleService = Depends(get_lifecycle),
):
    survey = await lifecycle.create_survey(actor_id, body.to_payload())
    return survey_to_dict(survey)


@router.get("")
async def list_surveys(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    creator: str | None = Query(None),
    status_filter: StatusFilter = Query(StatusFilter.ALL, alias="status"),
    search: str | None = Query(None, max_length=200),
    actor_id: UserId | None = Depends(get_optional_actor),
    engine: SurveyQueryEngine = Depends(get_query_engine),
):
    """List surveys with filters and 1-based pagination."""
    survey_filter = SurveyFilter(
        creator_id=UserId(creator) if creator else None,
        status=status_filter,
        search_text=search.strip() if search and search.strip() else None,
    )
    page_request = PageRequest(
        page=page, limit=limit or get_settings().default_page_size,
    )
    return await engine.list_surveys(survey_filter, page_request, actor_id)


@router.get("/responses/{user_id}")
async def list_user_responses(
    user_id: str,
    actor_id: UserId = Depends(get_current_actor),
    engine: SurveyQueryEngine = Depends(get_query_engine),
):
    """Every response the caller has submitted, newest first."""
    return await engine.list_user_responses(UserId(user_id), actor_id)


@router.get("/{survey_id}")
async def get_survey(
    survey_id: UUID,
    actor_id: UserId | None = Depends(get_optional_actor),
    engine: SurveyQueryEngine = Depends(get_query_engine),
):
    return await engine.get_survey(SurveyId(survey_id), actor_id)


@router.patch("/{survey_id}/close")
async def close_survey(
    survey_id: UUID,
    actor_id: UserId = Depends(get_current_actor),
    lifecycle: ResponseLifecycleService = Depends(get_lifecycle),
):
    outcome, survey = await lifecycle.close_survey(SurveyId(survey_id), actor_id)
    return {
        "message": _CLOSE_MESSAGES[outcome],
        "outcome": outcome.value,
        "survey": survey_to_dict(survey),
    }


@router.patch("/{survey_id}/expiry")
async def update_expiry(
    survey_id: UUID,
    body: ExpiryUpdate,
    actor_id: UserId = Depends(get_current_actor),
    lifecycle: ResponseLifecycleService = Depends(get_lifecycle),
):
    survey = await lifecycle.update_expiry(
        SurveyId(survey_id), actor_id, body.expiry_date,
    )
    return {
        "message": "Survey expiry updated successfully",
        "survey": survey_to_dict(survey),
    }


@router.get("/{survey_id}/analytics")
async def survey_analytics(
    survey_id: UUID,
    actor_id: UserId = Depends(get_current_actor),
    lifecycle: ResponseLifecycleService = Depends(get_lifecycle),
):
    return await lifecycle.analytics(SurveyId(survey_id), actor_id)
