"""Survey Repository — SQLAlchemy implementation of the SurveyRepository protocol.

Invariants:
    - find_by_id / update_by_id return None for a missing id, never raise
    - update_by_id(expected_revision=n) is a single conditional UPDATE
      (WHERE id = :id AND revision = n); 0 rows on an existing id raises
      PersistenceConflictError
    - Only closed, expiry_date, responses and summary are patchable
    - survey_respondents rows are rewritten in the same transaction as responses
    - SQLAlchemy failures are rolled back and re-raised as DatabaseError

Design Decisions:
    - Revision compare-and-swap over row locks: works identically on PostgreSQL
      and SQLite, and leaves retry policy to the service
    - populate_existing on reads: the identity map never serves a stale revision
"""

import logging
import uuid
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from sqlalchemy import delete, func, insert, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from survey_engine.core.domain_types import (
    PageRequest, ResponseId, ResponseRecord, StatusFilter, SurveyAggregate,
    SurveyFilter, SurveyId, SurveySummary, UserId,
)
from survey_engine.core.errors import DatabaseError, ErrorContext, PersistenceConflictError
from survey_engine.models.survey import Survey
from survey_engine.models.survey_respondent import SurveyRespondent

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = frozenset({"closed", "expiry_date", "responses", "summary"})

_CREATE_FIELDS = (
    "title", "area", "question", "guidelines", "permitted_domains",
    "permitted_responses", "summary_instructions", "creator_id", "expiry_date",
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ─── JSON <-> domain ────────────────────────────────────────────

def _parse_dt(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def record_to_json(record: ResponseRecord) -> dict:
    return {
        "id": str(record.id),
        "user_id": record.user_id,
        "text": record.text,
        "created_at": record.created_at.isoformat(),
        "updated_at": record.updated_at.isoformat(),
    }


def record_from_json(data: dict) -> ResponseRecord:
    return ResponseRecord(
        id=ResponseId(uuid.UUID(data["id"])),
        user_id=UserId(data["user_id"]),
        text=data["text"],
        created_at=_parse_dt(data["created_at"]),
        updated_at=_parse_dt(data["updated_at"]),
    )


def summary_to_json(summary: SurveySummary | None) -> dict | None:
    if summary is None:
        return None
    return {
        "text": summary.text,
        "generated_at": summary.generated_at.isoformat(),
        "is_visible": summary.is_visible,
    }


def summary_from_json(data: dict | None) -> SurveySummary | None:
    if not data:
        return None
    return SurveySummary(
        text=data.get("text", ""),
        generated_at=_parse_dt(data.get("generated_at")),
        is_visible=bool(data.get("is_visible", False)),
    )


def to_aggregate(row: Survey) -> SurveyAggregate:
    return SurveyAggregate(
        id=SurveyId(row.id),
        title=row.title,
        area=row.area,
        question=row.question,
        guidelines=row.guidelines or "",
        permitted_domains=list(row.permitted_domains or []),
        permitted_responses=row.permitted_responses,
        summary_instructions=row.summary_instructions or "",
        creator_id=UserId(row.creator_id),
        expiry_date=row.expiry_date,
        closed=row.closed,
        responses=[record_from_json(r) for r in row.responses or []],
        summary=summary_from_json(row.summary),
        revision=row.revision,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _patch_to_columns(patch: dict) -> dict:
    values = dict(patch)
    if "responses" in values:
        values["responses"] = [record_to_json(r) for r in values["responses"]]
    if "summary" in values:
        values["summary"] = summary_to_json(values["summary"])
    return values


# ─── Repository ─────────────────────────────────────────────────

class SqlSurveyRepository:
    """Survey persistence over one AsyncSession."""

    def __init__(
        self,
        db: AsyncSession,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self._clock = clock

    @asynccontextmanager
    async def _persistence(self, operation: str, survey_id=None):
        """Roll back and map SQLAlchemy failures to DatabaseError."""
        try:
            yield
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(
                f"Survey {operation} failed: {e}",
                extra={"survey_id": str(survey_id) if survey_id else None},
            )
            raise DatabaseError(
                "Survey persistence failed", operation,
                ErrorContext(survey_id=str(survey_id) if survey_id else None),
            )

    async def create(self, data: dict) -> SurveyAggregate:
        now = self._clock()
        row = Survey(
            **{k: data[k] for k in _CREATE_FIELDS if data.get(k) is not None},
            closed=False,
            responses=[],
            revision=0,
            created_at=now,
            updated_at=now,
        )
        async with self._persistence("create"):
            self.db.add(row)
            await self.db.commit()
        logger.info(
            "Survey created",
            extra={"survey_id": str(row.id), "actor_id": row.creator_id},
        )
        return await self.find_by_id(SurveyId(row.id))

    async def find_by_id(self, survey_id: SurveyId) -> SurveyAggregate | None:
        async with self._persistence("find", survey_id):
            result = await self.db.execute(
                select(Survey)
                .where(Survey.id == survey_id)
                .execution_options(populate_existing=True),
            )
            row = result.scalar_one_or_none()
        if row is None:
            logger.debug(f"Survey {survey_id} not found")
            return None
        return to_aggregate(row)

    async def find_many(
        self, survey_filter: SurveyFilter, page: PageRequest,
    ) -> tuple[list[SurveyAggregate], int]:
        conditions = self._filter_conditions(survey_filter, self._clock())
        count_query = select(func.count()).select_from(Survey)
        page_query = select(Survey)
        if conditions:
            count_query = count_query.where(*conditions)
            page_query = page_query.where(*conditions)
        async with self._persistence("find_many"):
            total = await self.db.scalar(count_query)
            result = await self.db.execute(
                page_query
                .order_by(Survey.created_at.desc(), Survey.id)
                .offset(page.skip)
                .limit(page.limit)
                .execution_options(populate_existing=True),
            )
            rows = result.scalars().all()
        return [to_aggregate(r) for r in rows], total or 0

    async def find_by_respondent(self, user_id: UserId) -> list[SurveyAggregate]:
        async with self._persistence("find_by_respondent"):
            result = await self.db.execute(
                select(Survey)
                .join(SurveyRespondent, SurveyRespondent.survey_id == Survey.id)
                .where(SurveyRespondent.user_id == user_id)
                .execution_options(populate_existing=True),
            )
            rows = result.scalars().all()
        return [to_aggregate(r) for r in rows]

    async def list_all(self) -> list[SurveyAggregate]:
        async with self._persistence("list_all"):
            result = await self.db.execute(
                select(Survey)
                .order_by(Survey.created_at.desc())
                .execution_options(populate_existing=True),
            )
            rows = result.scalars().all()
        return [to_aggregate(r) for r in rows]

    async def update_by_id(
        self,
        survey_id: SurveyId,
        patch: dict,
        expected_revision: int | None = None,
    ) -> SurveyAggregate | None:
        """Partial update; compare-and-swap on revision when expected_revision is set."""
        unknown = set(patch) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Survey fields are not patchable: {sorted(unknown)}")

        values = _patch_to_columns(patch)
        values["revision"] = Survey.revision + 1
        values["updated_at"] = self._clock()
        stmt = update(Survey).where(Survey.id == survey_id)
        if expected_revision is not None:
            stmt = stmt.where(Survey.revision == expected_revision)
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        async with self._persistence("update", survey_id):
            result = await self.db.execute(stmt)
            if result.rowcount == 0:
                await self.db.rollback()
                if expected_revision is not None and await self._exists(survey_id):
                    raise PersistenceConflictError(str(survey_id))
                return None
            if "responses" in patch:
                await self._sync_respondents(survey_id, patch["responses"])
            await self.db.commit()
        return await self.find_by_id(survey_id)

    async def _exists(self, survey_id: SurveyId) -> bool:
        found = await self.db.scalar(
            select(Survey.id).where(Survey.id == survey_id),
        )
        return found is not None

    async def _sync_respondents(
        self, survey_id: SurveyId, responses: list[ResponseRecord],
    ) -> None:
        await self.db.execute(
            delete(SurveyRespondent).where(SurveyRespondent.survey_id == survey_id),
        )
        user_ids = sorted({r.user_id for r in responses})
        if user_ids:
            await self.db.execute(
                insert(SurveyRespondent),
                [{"survey_id": survey_id, "user_id": u} for u in user_ids],
            )

    @staticmethod
    def _filter_conditions(survey_filter: SurveyFilter, now: datetime) -> list:
        conditions = []
        if survey_filter.creator_id:
            conditions.append(Survey.creator_id == survey_filter.creator_id)

        status = survey_filter.status
        if status == StatusFilter.ACTIVE:
            conditions.append(Survey.closed.is_(False))
            conditions.append(
                or_(Survey.expiry_date > now, Survey.expiry_date.is_(None)),
            )
        elif status == StatusFilter.CLOSED:
            conditions.append(Survey.closed.is_(True))
        elif status == StatusFilter.EXPIRED:
            conditions.append(Survey.closed.is_(False))
            conditions.append(Survey.expiry_date <= now)

        search = (survey_filter.search_text or "").strip()
        if search:
            conditions.append(or_(
                Survey.title.icontains(search, autoescape=True),
                Survey.area.icontains(search, autoescape=True),
            ))
        return conditions
