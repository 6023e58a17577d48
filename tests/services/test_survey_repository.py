"""Survey Repository — persistence round-trips, filters, and revision compare-and-swap.

Tests:
    - create returns an open aggregate at revision 0
    - Response records and summaries survive the JSON column round-trip
    - Stale expected_revision raises PersistenceConflictError and writes nothing
    - Missing ids return None
    - Status/creator/search filters and 1-based paging
    - find_by_respondent follows the respondent index
    - Mappers configure cleanly with no ORM relationships
"""

import uuid
import warnings
from datetime import timedelta

import pytest
from sqlalchemy import inspect
from sqlalchemy.orm import configure_mappers

from survey_engine.core.domain_types import (
    PageRequest, ResponseId, ResponseRecord, StatusFilter, SurveyFilter, SurveyId,
    SurveySummary, UserId,
)
from survey_engine.core.errors import PersistenceConflictError
from survey_engine.models import Survey, SurveyRespondent
from tests.factories import survey_payload


def _record(user_id: str, text: str, at) -> ResponseRecord:
    return ResponseRecord(
        id=ResponseId(uuid.uuid4()), user_id=UserId(user_id), text=text,
        created_at=at, updated_at=at,
    )


async def test_create_returns_open_survey(repository):
    survey = await repository.create({**survey_payload(), "creator_id": "creator-1"})
    assert survey.closed is False
    assert survey.responses == []
    assert survey.revision == 0
    assert survey.created_at.tzinfo is not None


async def test_responses_and_summary_round_trip(repository, clock):
    survey = await repository.create({**survey_payload(), "creator_id": "creator-1"})
    record = _record("alice", "hello", clock())
    summary = SurveySummary(text="sum", generated_at=clock(), is_visible=True)

    updated = await repository.update_by_id(
        survey.id, {"responses": [record], "summary": summary},
        expected_revision=0,
    )
    assert updated.revision == 1
    assert updated.responses == [record]
    assert updated.summary == summary


async def test_stale_revision_conflicts(repository):
    survey = await repository.create({**survey_payload(), "creator_id": "creator-1"})
    await repository.update_by_id(survey.id, {"closed": True}, expected_revision=0)

    with pytest.raises(PersistenceConflictError):
        await repository.update_by_id(survey.id, {"closed": False}, expected_revision=0)

    current = await repository.find_by_id(survey.id)
    assert current.closed is True
    assert current.revision == 1


async def test_missing_survey_returns_none(repository):
    missing = SurveyId(uuid.uuid4())
    assert await repository.find_by_id(missing) is None
    assert await repository.update_by_id(missing, {"closed": True}, expected_revision=0) is None


async def test_unpatchable_field_rejected(repository):
    survey = await repository.create({**survey_payload(), "creator_id": "creator-1"})
    with pytest.raises(ValueError):
        await repository.update_by_id(survey.id, {"creator_id": "someone-else"})


async def test_status_filters(repository, clock):
    active = await repository.create({
        **survey_payload(title="Active one", expiry_date=clock() + timedelta(days=1)),
        "creator_id": "c1",
    })
    no_expiry = await repository.create({
        **survey_payload(title="Open ended"), "creator_id": "c1",
    })
    expired = await repository.create({
        **survey_payload(title="Expired one", expiry_date=clock() - timedelta(days=1)),
        "creator_id": "c2",
    })
    closed = await repository.create({
        **survey_payload(title="Closed one"), "creator_id": "c2",
    })
    await repository.update_by_id(closed.id, {"closed": True})

    async def ids(status):
        surveys, total = await repository.find_many(
            SurveyFilter(status=status), PageRequest(1, 10),
        )
        assert total == len(surveys)
        return {s.id for s in surveys}

    assert await ids(StatusFilter.ACTIVE) == {active.id, no_expiry.id}
    assert await ids(StatusFilter.EXPIRED) == {expired.id}
    assert await ids(StatusFilter.CLOSED) == {closed.id}
    assert len(await ids(StatusFilter.ALL)) == 4


async def test_creator_and_search_filters(repository):
    await repository.create({**survey_payload(title="Coffee habits", area="Food"), "creator_id": "c1"})
    await repository.create({**survey_payload(title="Tea habits", area="Food"), "creator_id": "c2"})
    await repository.create({**survey_payload(title="Commute", area="Transport"), "creator_id": "c1"})

    mine, total = await repository.find_many(SurveyFilter(creator_id="c1"), PageRequest(1, 10))
    assert total == 2
    assert all(s.creator_id == "c1" for s in mine)

    found, total = await repository.find_many(SurveyFilter(search_text="FOOD"), PageRequest(1, 10))
    assert total == 2

    found, total = await repository.find_many(SurveyFilter(search_text="%"), PageRequest(1, 10))
    assert total == 0


async def test_paging_newest_first(repository, clock):
    for i in range(5):
        clock.advance(minutes=1)
        await repository.create({**survey_payload(title=f"Survey {i}"), "creator_id": "c1"})

    page, total = await repository.find_many(SurveyFilter(), PageRequest(page=2, limit=2))
    assert total == 5
    assert [s.title for s in page] == ["Survey 2", "Survey 1"]


async def test_find_by_respondent(repository, clock):
    first = await repository.create({**survey_payload(title="First"), "creator_id": "c1"})
    second = await repository.create({**survey_payload(title="Second"), "creator_id": "c1"})
    await repository.update_by_id(first.id, {"responses": [_record("alice", "a", clock())]})
    await repository.update_by_id(second.id, {"responses": [_record("bob", "b", clock())]})

    surveys = await repository.find_by_respondent(UserId("alice"))
    assert [s.id for s in surveys] == [first.id]

    await repository.update_by_id(first.id, {"responses": []})
    assert await repository.find_by_respondent(UserId("alice")) == []


def test_mappers_configure_without_warnings():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        configure_mappers()
    assert not inspect(Survey).relationships
    assert not inspect(SurveyRespondent).relationships
