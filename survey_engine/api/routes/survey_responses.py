"""Survey Response Routes — submit, read, update and delete one user's response.

Invariants:
    - Every route requires a bearer identity
    - A second submission by the same user updates the existing record (201 both times)
    - Reading a user's response is allowed only to that user
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, status

from survey_engine.api.deps import get_current_actor, get_lifecycle, get_query_engine
from survey_engine.core.domain_types import ResponseId, SurveyId, UserId
from survey_engine.core.survey_views import response_to_dict
from survey_engine.schemas.survey import ResponseSubmit
from survey_engine.services.response_lifecycle import ResponseLifecycleService
from survey_engine.services.survey_query import SurveyQueryEngine

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/surveys", tags=["responses"])


@router.post("/{survey_id}/responses", status_code=status.HTTP_201_CREATED)
async def submit_response(
    survey_id: UUID,
    body: ResponseSubmit,
    actor_id: UserId = Depends(get_current_actor),
    lifecycle: ResponseLifecycleService = Depends(get_lifecycle),
):
    record = await lifecycle.submit_response(SurveyId(survey_id), actor_id, body.text)
    return {
        "message": "Response submitted successfully",
        "response": response_to_dict(record),
    }


@router.get("/{survey_id}/responses/{user_id}")
async def get_user_response(
    survey_id: UUID,
    user_id: str,
    actor_id: UserId = Depends(get_current_actor),
    engine: SurveyQueryEngine = Depends(get_query_engine),
):
    return await engine.get_user_response(SurveyId(survey_id), UserId(user_id), actor_id)


@router.put("/{survey_id}/responses/{response_id}")
async def update_response(
    survey_id: UUID,
    response_id: UUID,
    body: ResponseSubmit,
    actor_id: UserId = Depends(get_current_actor),
    lifecycle: ResponseLifecycleService = Depends(get_lifecycle),
):
    record = await lifecycle.update_response(
        SurveyId(survey_id), ResponseId(response_id), actor_id, body.text,
    )
    return {
        "message": "Response updated successfully",
        "response": response_to_dict(record),
    }


@router.delete("/{survey_id}/responses/{response_id}")
async def delete_response(
    survey_id: UUID,
    response_id: UUID,
    actor_id: UserId = Depends(get_current_actor),
    lifecycle: ResponseLifecycleService = Depends(get_lifecycle),
):
    outcome = await lifecycle.delete_response(
        SurveyId(survey_id), ResponseId(response_id), actor_id,
    )
    return {"message": "Response deleted successfully", "outcome": outcome.value}
