"""Survey Assistant — AI summary, response validation, and natural-language search.

Invariants:
    - Summary, visibility and validation are creator-only; search is public
    - The AI call happens BEFORE any write; a failed call leaves the survey untouched
    - Summary text is stored through the lifecycle CAS loop with is_visible=False
    - Validation results are returned, never persisted
    - Search only returns surveys that exist, in the model's ranking order
"""

import logging

from survey_engine.core import authorization, enforce_lifecycle, format_prompts
from survey_engine.core.domain_types import SurveyId, SurveySummary, UserId
from survey_engine.core.errors import ErrorContext, NoResponsesError, UnauthorizedError
from survey_engine.infrastructure.anthropic_client import ResilientAnthropicClient
from survey_engine.services.response_lifecycle import ResponseLifecycleService

logger = logging.getLogger(__name__)


class SurveyAssistant:
    """Orchestrates the AI collaborator around the survey aggregate."""

    def __init__(
        self,
        lifecycle: ResponseLifecycleService,
        client: ResilientAnthropicClient,
        model: str,
        max_tokens: int = 1024,
    ):
        self.lifecycle = lifecycle
        self.repository = lifecycle.repository
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    async def _load_for_creator(self, survey_id: SurveyId, actor_id: UserId, action: str):
        survey = await self.lifecycle.load(survey_id)
        if not authorization.can_manage_summary(survey, actor_id):
            raise UnauthorizedError(
                action, ErrorContext(survey_id=str(survey_id), actor_id=actor_id),
            )
        return survey

    async def generate_summary(
        self, survey_id: SurveyId, actor_id: UserId,
    ) -> SurveySummary:
        survey = await self._load_for_creator(survey_id, actor_id, "summarize this survey")
        if not survey.responses:
            raise NoResponsesError("summarize", ErrorContext(survey_id=str(survey_id)))

        text = await self.client.complete(
            model=self.model,
            max_tokens=self.max_tokens,
            system=format_prompts.SUMMARY_SYSTEM,
            prompt=format_prompts.build_summary_prompt(survey),
            context=ErrorContext(survey_id=str(survey_id), actor_id=actor_id),
        )
        summary = await self.lifecycle.apply_decision(
            survey_id, actor_id, "store_summary",
            lambda current, now: enforce_lifecycle.decide_summary(current, text, now),
        )
        logger.info("Summary generated", extra={"survey_id": str(survey_id)})
        return summary

    async def set_summary_visibility(
        self, survey_id: SurveyId, actor_id: UserId, is_visible: bool,
    ) -> SurveySummary:
        return await self.lifecycle.apply_decision(
            survey_id, actor_id, "summary_visibility",
            lambda current, now: enforce_lifecycle.decide_summary_visibility(
                current, actor_id, is_visible,
            ),
        )

    async def validate_responses(
        self, survey_id: SurveyId, actor_id: UserId,
    ) -> list[dict]:
        survey = await self._load_for_creator(
            survey_id, actor_id, "validate responses for this survey",
        )
        if not survey.responses:
            raise NoResponsesError("validate", ErrorContext(survey_id=str(survey_id)))

        text = await self.client.complete(
            model=self.model,
            max_tokens=self.max_tokens,
            system=format_prompts.VALIDATION_SYSTEM,
            prompt=format_prompts.build_validation_prompt(survey),
            context=ErrorContext(survey_id=str(survey_id), actor_id=actor_id),
        )
        results = format_prompts.parse_validation_results(text, survey)
        if not results:
            logger.warning(
                "Validation output could not be parsed",
                extra={"survey_id": str(survey_id)},
            )
        return results

    async def search_surveys(self, query: str) -> list[dict]:
        surveys = await self.repository.list_all()
        if not surveys:
            return []
        text = await self.client.complete(
            model=self.model,
            max_tokens=self.max_tokens,
            system=format_prompts.SEARCH_SYSTEM,
            prompt=format_prompts.build_search_prompt(query, surveys),
        )
        by_id = {str(s.id): s for s in surveys}
        matched = format_prompts.parse_search_results(text, set(by_id))
        return [
            {
                "id": survey_id,
                "title": by_id[survey_id].title,
                "area": by_id[survey_id].area,
                "question": by_id[survey_id].question,
                "response_count": len(by_id[survey_id].responses),
            }
            for survey_id in matched
        ]
