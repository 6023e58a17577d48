"""Survey Query Engine — listing, single-survey views, and per-user response reads.

Invariants:
    - Reads take no locks and may observe concurrent writes
    - Every listed survey carries response_count; responses only for its creator
    - Per-user response reads require requesting_user_id == user_id
    - Page numbers are 1-based; limit is clamped to [1, max_page_size]
"""

import logging
import math

from survey_engine.core import survey_views
from survey_engine.core.authorization import resolve_viewer
from survey_engine.core.domain_types import (
    PageRequest, SurveyFilter, SurveyId, UserId,
)
from survey_engine.core.errors import ErrorContext, ResourceNotFoundError, UnauthorizedError
from survey_engine.core.repository_protocols import SurveyRepository

logger = logging.getLogger(__name__)


def _require_self(user_id: UserId, requesting_user_id: UserId | None, what: str) -> None:
    if requesting_user_id is None or requesting_user_id != user_id:
        raise UnauthorizedError(
            f"access {what}", ErrorContext(actor_id=requesting_user_id),
        )


class SurveyQueryEngine:
    """Read-side operations over the survey repository."""

    def __init__(self, repository: SurveyRepository, max_page_size: int = 100):
        self.repository = repository
        self.max_page_size = max_page_size

    async def list_surveys(
        self,
        survey_filter: SurveyFilter,
        page: PageRequest,
        actor_id: UserId | None = None,
    ) -> dict:
        page = PageRequest(
            page=max(1, page.page),
            limit=min(max(1, page.limit), self.max_page_size),
        )
        surveys, total = await self.repository.find_many(survey_filter, page)
        logger.info(
            f"Retrieved {len(surveys)} surveys for page {page.page} "
            f"with limit {page.limit}",
        )
        return {
            "surveys": [
                survey_views.build_listing_item(s, resolve_viewer(s, actor_id))
                for s in surveys
            ],
            "current_page": page.page,
            "total_pages": math.ceil(total / page.limit),
            "total_surveys": total,
        }

    async def get_survey(
        self, survey_id: SurveyId, requesting_user_id: UserId | None = None,
    ) -> dict:
        survey = await self.repository.find_by_id(survey_id)
        if survey is None:
            raise ResourceNotFoundError(
                "Survey", str(survey_id), ErrorContext(survey_id=str(survey_id)),
            )
        viewer = resolve_viewer(survey, requesting_user_id)
        logger.debug(
            f"Survey view for {viewer.kind.value}",
            extra={"survey_id": str(survey_id), "actor_id": requesting_user_id},
        )
        return survey_views.build_survey_view(survey, viewer)

    async def get_user_response(
        self,
        survey_id: SurveyId,
        user_id: UserId,
        requesting_user_id: UserId | None,
    ) -> dict:
        _require_self(user_id, requesting_user_id, "this response")
        survey = await self.repository.find_by_id(survey_id)
        if survey is None:
            raise ResourceNotFoundError(
                "Survey", str(survey_id), ErrorContext(survey_id=str(survey_id)),
            )
        record = survey.find_response_by_user(user_id)
        if record is None:
            raise ResourceNotFoundError(
                "Response", f"{survey_id}/{user_id}",
                ErrorContext(survey_id=str(survey_id), actor_id=user_id),
            )
        return survey_views.response_with_context(record, survey)

    async def list_user_responses(
        self, user_id: UserId, requesting_user_id: UserId | None,
    ) -> list[dict]:
        _require_self(user_id, requesting_user_id, "these responses")
        surveys = await self.repository.find_by_respondent(user_id)
        responses = survey_views.list_user_responses(surveys, user_id)
        logger.info(
            f"Retrieved {len(responses)} responses for user",
            extra={"actor_id": user_id},
        )
        return responses
