"""Survey Views — viewer-dependent projections of the aggregate for read endpoints.

Invariants:
    - response_count is always present
    - Full responses are exposed only to the survey's creator
    - summary is omitted unless it is visible or the viewer is the creator
    - Non-creators get user_has_responded instead of the response list
    - list_user_responses output is sorted by created_at, newest first
"""

from survey_engine.core.domain_types import (
    ResponseRecord, SurveyAggregate, SurveySummary, UserId, Viewer, ViewerKind,
)


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def response_to_dict(record: ResponseRecord) -> dict:
    return {
        "id": str(record.id),
        "user_id": record.user_id,
        "text": record.text,
        "created_at": _iso(record.created_at),
        "updated_at": _iso(record.updated_at),
    }


def summary_to_dict(summary: SurveySummary) -> dict:
    return {
        "text": summary.text,
        "generated_at": _iso(summary.generated_at),
        "is_visible": summary.is_visible,
    }


def survey_to_dict(survey: SurveyAggregate) -> dict:
    """Full projection, responses included. Creator-facing write results use this."""
    return {
        "id": str(survey.id),
        "title": survey.title,
        "area": survey.area,
        "question": survey.question,
        "guidelines": survey.guidelines,
        "permitted_domains": list(survey.permitted_domains),
        "permitted_responses": survey.permitted_responses,
        "summary_instructions": survey.summary_instructions,
        "creator_id": survey.creator_id,
        "expiry_date": _iso(survey.expiry_date),
        "closed": survey.closed,
        "responses": [response_to_dict(r) for r in survey.responses],
        "response_count": len(survey.responses),
        "summary": summary_to_dict(survey.summary) if survey.summary else None,
        "created_at": _iso(survey.created_at),
        "updated_at": _iso(survey.updated_at),
    }


def build_survey_view(survey: SurveyAggregate, viewer: Viewer) -> dict:
    """Project the survey for one viewer."""
    view = survey_to_dict(survey)
    if viewer.is_creator:
        return view

    del view["responses"]
    view["user_has_responded"] = (
        viewer.kind == ViewerKind.KNOWN_USER
        and survey.find_response_by_user(viewer.user_id) is not None
    )
    if survey.summary is None or not survey.summary.is_visible:
        del view["summary"]
    return view


def build_listing_item(survey: SurveyAggregate, viewer: Viewer) -> dict:
    """Listing row: response_count always, responses only for the creator."""
    item = survey_to_dict(survey)
    if not viewer.is_creator:
        del item["responses"]
        if survey.summary is None or not survey.summary.is_visible:
            del item["summary"]
    return item


def response_with_context(
    record: ResponseRecord, survey: SurveyAggregate, detailed: bool = False,
) -> dict:
    """A response plus the parent-survey fields a respondent needs."""
    context = {
        "id": str(survey.id),
        "title": survey.title,
        "area": survey.area,
        "question": survey.question,
    }
    if detailed:
        context.update(
            closed=survey.closed,
            expiry_date=_iso(survey.expiry_date),
            creator_id=survey.creator_id,
        )
    return {**response_to_dict(record), "survey": context}


def list_user_responses(
    surveys: list[SurveyAggregate], user_id: UserId,
) -> list[dict]:
    """Every response by user_id across surveys, newest first."""
    pairs = [
        (record, survey)
        for survey in surveys
        for record in survey.responses
        if record.user_id == user_id
    ]
    pairs.sort(key=lambda p: p[0].created_at, reverse=True)
    return [response_with_context(r, s, detailed=True) for r, s in pairs]
