"""Survey Assistant Routes — AI summary, visibility toggle, validation and search.

Invariants:
    - summarize, visibility and validate-responses are creator-only
    - POST /surveys/search is public
    - An upstream AI failure answers 503 and leaves the survey unchanged
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends

from survey_engine.api.deps import get_assistant, get_current_actor
from survey_engine.core.domain_types import SurveyId, UserId
from survey_engine.core.survey_views import summary_to_dict
from survey_engine.schemas.survey import SummaryVisibilityUpdate, SurveySearch
from survey_engine.services.survey_assistant import SurveyAssistant

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/surveys", tags=["assistant"])


@router.post("/search")
async def search_surveys(
    body: SurveySearch,
    assistant: SurveyAssistant = Depends(get_assistant),
):
    """Natural-language search across all surveys."""
    surveys = await assistant.search_surveys(body.query)
    return {"query": body.query, "surveys": surveys, "count": len(surveys)}


@router.post("/{survey_id}/summarize")
async def generate_summary(
    survey_id: UUID,
    actor_id: UserId = Depends(get_current_actor),
    assistant: SurveyAssistant = Depends(get_assistant),
):
    summary = await assistant.generate_summary(SurveyId(survey_id), actor_id)
    return {
        "message": "Summary generated successfully",
        "summary": summary_to_dict(summary),
    }


@router.patch("/{survey_id}/summary/visibility")
async def set_summary_visibility(
    survey_id: UUID,
    body: SummaryVisibilityUpdate,
    actor_id: UserId = Depends(get_current_actor),
    assistant: SurveyAssistant = Depends(get_assistant),
):
    summary = await assistant.set_summary_visibility(
        SurveyId(survey_id), actor_id, body.is_visible,
    )
    state = "visible" if summary.is_visible else "hidden"
    return {
        "message": f"Summary is now {state}",
        "summary": summary_to_dict(summary),
    }


@router.post("/{survey_id}/validate-responses")
async def validate_responses(
    survey_id: UUID,
    actor_id: UserId = Depends(get_current_actor),
    assistant: SurveyAssistant = Depends(get_assistant),
):
    results = await assistant.validate_responses(SurveyId(survey_id), actor_id)
    return {
        "survey_id": str(survey_id),
        "results": results,
        "invalid_count": sum(1 for r in results if not r["is_valid"]),
    }
