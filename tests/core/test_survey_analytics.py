"""Survey Analytics — counts, lengths, completion rate, and date distribution."""

from datetime import timedelta

from survey_engine.core.survey_analytics import build_analytics, completion_rate, response_count
from tests.factories import ALICE, BOB, NOW, make_record, make_survey


def test_empty_survey_analytics():
    analytics = build_analytics(make_survey())
    assert analytics["total_responses"] == 0
    assert analytics["average_response_length"] == 0.0
    assert analytics["min_response_length"] == 0
    assert analytics["max_response_length"] == 0
    assert analytics["responses"] == []
    assert analytics["by_date"] == {}


def test_lengths_and_dates():
    survey = make_survey(responses=[
        make_record(ALICE, "abcd", at=NOW - timedelta(days=1)),
        make_record(BOB, "ab", at=NOW),
    ])
    analytics = build_analytics(survey)
    assert analytics["total_responses"] == 2
    assert analytics["average_response_length"] == 3.0
    assert analytics["min_response_length"] == 2
    assert analytics["max_response_length"] == 4
    assert analytics["by_date"] == {"2026-02-28": 1, "2026-03-01": 1}
    assert [r["length"] for r in analytics["responses"]] == [4, 2]


def test_completion_rate_needs_quota():
    survey = make_survey(responses=[make_record(ALICE)])
    assert completion_rate(survey) is None
    survey.permitted_responses = 3
    assert completion_rate(survey) == 0.3333
    assert response_count(survey) == 1
