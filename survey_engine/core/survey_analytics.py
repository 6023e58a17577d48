"""Survey Analytics — pure derivations over a loaded aggregate.

Invariants:
    - No IO; inputs are never mutated
    - average_response_length is 0.0 for a survey without responses
    - completion_rate is None when no quota is set
"""

from collections import Counter

from survey_engine.core.domain_types import SurveyAggregate


def response_count(survey: SurveyAggregate) -> int:
    return len(survey.responses)


def completion_rate(survey: SurveyAggregate) -> float | None:
    """Distinct respondents over the quota, rounded to 4 places."""
    if not survey.permitted_responses:
        return None
    return round(survey.respondent_count / survey.permitted_responses, 4)


def build_analytics(survey: SurveyAggregate) -> dict:
    """Count, average length, and per-response length/date distribution."""
    lengths = [len(r.text) for r in survey.responses]
    by_date = Counter(r.created_at.date().isoformat() for r in survey.responses)
    return {
        "survey_id": str(survey.id),
        "total_responses": len(lengths),
        "average_response_length": (
            round(sum(lengths) / len(lengths), 2) if lengths else 0.0
        ),
        "min_response_length": min(lengths, default=0),
        "max_response_length": max(lengths, default=0),
        "completion_rate": completion_rate(survey),
        "responses": [
            {
                "response_id": str(r.id),
                "length": len(r.text),
                "created_at": r.created_at.isoformat(),
            }
            for r in survey.responses
        ],
        "by_date": dict(sorted(by_date.items())),
    }
