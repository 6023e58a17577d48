"""Survey Routes — HTTP surface over the lifecycle, query and assistant services.

Tests:
    - Authentication: 401 without a bearer token, anonymous reads allowed
    - Create/list/get with snake_case envelopes
    - Close answers 200 twice with distinct outcomes
    - Submission conflicts map to 400 with distinct codes
    - Pydantic validation maps to 400 VALIDATION_ERROR
    - Upstream AI failure maps to 503
    - Health probes
"""

from datetime import datetime, timedelta, timezone

from survey_engine.core.errors import UpstreamServiceError
from tests.factories import auth_headers

CREATOR = auth_headers("creator-1")
ALICE = auth_headers("alice")
BOB = auth_headers("bob")

BODY = {
    "title": "Remote work",
    "area": "Workplace",
    "question": "How has remote work changed your week?",
}


async def _create(client, **extra) -> dict:
    response = await client.post("/api/v1/surveys", json={**BODY, **extra}, headers=CREATOR)
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_requires_auth(client):
    response = await client.post("/api/v1/surveys", json=BODY)
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "NOT_AUTHENTICATED"


async def test_invalid_token_rejected(client):
    response = await client.post(
        "/api/v1/surveys", json=BODY, headers={"Authorization": "Bearer nope"},
    )
    assert response.status_code == 401


async def test_create_validates_payload(client):
    response = await client.post(
        "/api/v1/surveys",
        json={**BODY, "title": "ab", "permittedDomains": ["not a domain"]},
        headers=CREATOR,
    )
    assert response.status_code == 400
    body = response.json()["error"]
    assert body["code"] == "VALIDATION_ERROR"
    fields = {d["field"] for d in body["details"]}
    assert "body.title" in fields


async def test_create_and_get_survey(client):
    created = await _create(client, permittedResponses=5, permittedDomains=["Example.com"])
    assert created["permitted_responses"] == 5
    assert created["permitted_domains"] == ["example.com"]
    assert created["closed"] is False

    anon = await client.get(f"/api/v1/surveys/{created['id']}")
    assert anon.status_code == 200
    assert anon.json()["user_has_responded"] is False
    assert "responses" not in anon.json()


async def test_get_unknown_survey_is_404(client):
    response = await client.get("/api/v1/surveys/00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "RESOURCE_NOT_FOUND"


async def test_list_surveys_envelope(client):
    await _create(client)
    await _create(client, title="Second survey")
    response = await client.get("/api/v1/surveys", params={"limit": 1, "page": 2})
    body = response.json()
    assert response.status_code == 200
    assert body["current_page"] == 2
    assert body["total_pages"] == 2
    assert body["total_surveys"] == 2
    assert len(body["surveys"]) == 1


async def test_list_surveys_rejects_unknown_status(client):
    response = await client.get("/api/v1/surveys", params={"status": "archived"})
    assert response.status_code == 400


async def test_close_twice(client):
    survey = await _create(client)
    first = await client.patch(f"/api/v1/surveys/{survey['id']}/close", headers=CREATOR)
    second = await client.patch(f"/api/v1/surveys/{survey['id']}/close", headers=CREATOR)
    assert first.json()["outcome"] == "closed"
    assert second.status_code == 200
    assert second.json()["outcome"] == "already_closed"

    forbidden = await client.patch(f"/api/v1/surveys/{survey['id']}/close", headers=ALICE)
    assert forbidden.status_code == 403


async def test_submit_update_delete_flow(client):
    survey = await _create(client, permittedResponses=1)
    url = f"/api/v1/surveys/{survey['id']}/responses"

    submitted = await client.post(url, json={"text": "Fewer commutes"}, headers=ALICE)
    assert submitted.status_code == 201
    response_id = submitted.json()["response"]["id"]

    quota = await client.post(url, json={"text": "Me too"}, headers=BOB)
    assert quota.status_code == 400
    assert quota.json()["error"]["code"] == "QUOTA_EXCEEDED"

    mine = await client.get(f"{url}/alice", headers=ALICE)
    assert mine.json()["text"] == "Fewer commutes"
    assert (await client.get(f"{url}/alice", headers=BOB)).status_code == 403

    creator_edit = await client.put(
        f"{url}/{response_id}", json={"text": "edited"}, headers=CREATOR,
    )
    assert creator_edit.status_code == 403

    edited = await client.put(f"{url}/{response_id}", json={"text": "edited"}, headers=ALICE)
    assert edited.json()["response"]["text"] == "edited"

    deleted = await client.delete(f"{url}/{response_id}", headers=CREATOR)
    assert deleted.status_code == 200
    assert deleted.json()["outcome"] == "deleted"


async def test_submit_to_closed_survey(client):
    survey = await _create(client)
    await client.patch(f"/api/v1/surveys/{survey['id']}/close", headers=CREATOR)
    response = await client.post(
        f"/api/v1/surveys/{survey['id']}/responses", json={"text": "late"}, headers=ALICE,
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "SURVEY_CLOSED"


async def test_empty_response_rejected(client):
    survey = await _create(client)
    response = await client.post(
        f"/api/v1/surveys/{survey['id']}/responses", json={"text": "   "}, headers=ALICE,
    )
    assert response.status_code == 400


async def test_expiry_update_past_date(client):
    survey = await _create(client)
    past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    response = await client.patch(
        f"/api/v1/surveys/{survey['id']}/expiry", json={"expiryDate": past}, headers=CREATOR,
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "EXPIRY_REJECTED_PAST_DATE"

    future = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()
    response = await client.patch(
        f"/api/v1/surveys/{survey['id']}/expiry", json={"expiryDate": future}, headers=CREATOR,
    )
    assert response.status_code == 200
    assert response.json()["survey"]["expiry_date"] is not None


async def test_list_user_responses_route(client):
    survey = await _create(client)
    await client.post(
        f"/api/v1/surveys/{survey['id']}/responses", json={"text": "hi"}, headers=ALICE,
    )
    response = await client.get("/api/v1/surveys/responses/alice", headers=ALICE)
    assert response.status_code == 200
    assert [r["text"] for r in response.json()] == ["hi"]
    assert (await client.get("/api/v1/surveys/responses/alice", headers=BOB)).status_code == 403


async def test_analytics_route(client):
    survey = await _create(client)
    await client.post(
        f"/api/v1/surveys/{survey['id']}/responses", json={"text": "abc"}, headers=ALICE,
    )
    response = await client.get(f"/api/v1/surveys/{survey['id']}/analytics", headers=CREATOR)
    assert response.json()["total_responses"] == 1
    assert response.json()["average_response_length"] == 3.0


async def test_summarize_and_visibility(client, mock_ai):
    survey = await _create(client)
    await client.post(
        f"/api/v1/surveys/{survey['id']}/responses", json={"text": "abc"}, headers=ALICE,
    )
    mock_ai.complete.return_value = "All good."

    summarized = await client.post(f"/api/v1/surveys/{survey['id']}/summarize", headers=CREATOR)
    assert summarized.status_code == 200
    assert summarized.json()["summary"]["is_visible"] is False
    assert "summary" not in (await client.get(f"/api/v1/surveys/{survey['id']}")).json()

    toggled = await client.patch(
        f"/api/v1/surveys/{survey['id']}/summary/visibility",
        json={"isVisible": True}, headers=CREATOR,
    )
    assert toggled.json()["summary"]["is_visible"] is True
    public = (await client.get(f"/api/v1/surveys/{survey['id']}")).json()
    assert public["summary"]["text"] == "All good."


async def test_visibility_body_must_be_bool(client):
    survey = await _create(client)
    response = await client.patch(
        f"/api/v1/surveys/{survey['id']}/summary/visibility",
        json={"isVisible": "yes"}, headers=CREATOR,
    )
    assert response.status_code == 400


async def test_summarize_upstream_failure_is_503(client, mock_ai):
    survey = await _create(client)
    await client.post(
        f"/api/v1/surveys/{survey['id']}/responses", json={"text": "abc"}, headers=ALICE,
    )
    mock_ai.complete.side_effect = UpstreamServiceError("timeout", "timeout")

    response = await client.post(f"/api/v1/surveys/{survey['id']}/summarize", headers=CREATOR)
    assert response.status_code == 503
    assert response.json()["error"]["code"] == "UPSTREAM_SERVICE_ERROR"
    detail = (await client.get(f"/api/v1/surveys/{survey['id']}", headers=CREATOR)).json()
    assert detail["summary"] is None


async def test_search_is_public(client, mock_ai):
    survey = await _create(client)
    mock_ai.complete.return_value = f'["{survey["id"]}"]'
    response = await client.post("/api/v1/surveys/search", json={"query": "remote work"})
    assert response.status_code == 200
    assert response.json()["count"] == 1
    assert response.json()["surveys"][0]["id"] == survey["id"]


async def test_validate_responses_route(client, mock_ai):
    survey = await _create(client)
    await client.post(
        f"/api/v1/surveys/{survey['id']}/responses", json={"text": "abc"}, headers=ALICE,
    )
    mock_ai.complete.return_value = '[{"index": 0, "is_valid": false, "feedback": "too short"}]'
    response = await client.post(
        f"/api/v1/surveys/{survey['id']}/validate-responses", headers=CREATOR,
    )
    assert response.json()["invalid_count"] == 1


async def test_health_probes(client):
    assert (await client.get("/api/v1/health/")).json()["status"] == "healthy"
    ready = await client.get("/api/v1/health/ready")
    assert ready.status_code == 200
