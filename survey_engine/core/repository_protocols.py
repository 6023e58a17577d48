"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell; dependency arrows point inward only
    - find_by_id / update_by_id return None for a missing id (NotFound result)
    - update_by_id with expected_revision is a compare-and-swap: a moved revision
      raises PersistenceConflictError, it never silently overwrites
    - Every other persistence failure surfaces as DatabaseError

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Async in Protocol: implementations do IO; the core decisions that consume
      loaded aggregates stay synchronous
"""

from typing import Protocol

from survey_engine.core.domain_types import (
    PageRequest, SurveyAggregate, SurveyFilter, SurveyId, UserId,
)


class SurveyRepository(Protocol):
    """Contract for survey aggregate persistence — implemented by shell."""
    async def create(self, data: dict) -> SurveyAggregate: ...
    async def find_by_id(self, survey_id: SurveyId) -> SurveyAggregate | None: ...
    async def find_many(
        self, survey_filter: SurveyFilter, page: PageRequest,
    ) -> tuple[list[SurveyAggregate], int]: ...
    async def update_by_id(
        self,
        survey_id: SurveyId,
        patch: dict,
        expected_revision: int | None = None,
    ) -> SurveyAggregate | None: ...
    async def find_by_respondent(self, user_id: UserId) -> list[SurveyAggregate]: ...
    async def list_all(self) -> list[SurveyAggregate]: ...
