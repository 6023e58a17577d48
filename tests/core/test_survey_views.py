"""Survey Views — what each viewer kind sees of a survey."""

from datetime import timedelta

from survey_engine.core.authorization import resolve_viewer
from survey_engine.core.survey_views import (
    build_listing_item, build_survey_view, list_user_responses, response_with_context,
)
from tests.factories import ALICE, BOB, CREATOR, NOW, make_record, make_summary, make_survey


def test_creator_sees_responses_and_hidden_summary():
    survey = make_survey(responses=[make_record(ALICE)], summary=make_summary(False))
    view = build_survey_view(survey, resolve_viewer(survey, CREATOR))
    assert len(view["responses"]) == 1
    assert view["summary"]["is_visible"] is False
    assert view["response_count"] == 1
    assert "user_has_responded" not in view


def test_known_user_sees_flag_not_responses():
    survey = make_survey(responses=[make_record(ALICE)])
    alice_view = build_survey_view(survey, resolve_viewer(survey, ALICE))
    bob_view = build_survey_view(survey, resolve_viewer(survey, BOB))
    assert "responses" not in alice_view
    assert alice_view["user_has_responded"] is True
    assert bob_view["user_has_responded"] is False
    assert alice_view["response_count"] == 1


def test_anonymous_never_has_responded():
    survey = make_survey(responses=[make_record(ALICE)])
    view = build_survey_view(survey, resolve_viewer(survey, None))
    assert view["user_has_responded"] is False


def test_summary_exposed_only_when_visible():
    hidden = make_survey(summary=make_summary(False))
    visible = make_survey(summary=make_summary(True))
    assert "summary" not in build_survey_view(hidden, resolve_viewer(hidden, ALICE))
    assert build_survey_view(visible, resolve_viewer(visible, ALICE))["summary"]["text"]


def test_listing_item_always_has_count():
    survey = make_survey(responses=[make_record(ALICE), make_record(BOB)])
    item = build_listing_item(survey, resolve_viewer(survey, None))
    assert item["response_count"] == 2
    assert "responses" not in item
    creator_item = build_listing_item(survey, resolve_viewer(survey, CREATOR))
    assert len(creator_item["responses"]) == 2


def test_response_with_context_carries_survey_fields():
    record = make_record(ALICE, "hello")
    survey = make_survey(responses=[record])
    result = response_with_context(record, survey)
    assert result["text"] == "hello"
    assert result["survey"]["title"] == survey.title
    assert "closed" not in result["survey"]


def test_list_user_responses_newest_first():
    older = make_survey(responses=[make_record(ALICE, "old", at=NOW - timedelta(days=2))])
    newer = make_survey(responses=[make_record(ALICE, "new", at=NOW)])
    other = make_survey(responses=[make_record(BOB, "bob", at=NOW)])
    results = list_user_responses([older, newer, other], ALICE)
    assert [r["text"] for r in results] == ["new", "old"]
    assert results[0]["survey"]["closed"] is False
