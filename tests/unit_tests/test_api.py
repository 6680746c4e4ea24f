import pytest

from conftest import FakeSentenceProvider
from smartwords.api.dependencies.provider import get_sentence_provider
from smartwords.services.openrouter import OpenRouterError

SET_PAYLOAD = {
    "name": "Animals",
    "level": "A1",
    "words": [{"pl": "pies", "en": "dog"}, {"pl": "kot", "en": "cat"}],
}
GENERATE_PAYLOAD = {"model_id": "openai/gpt-4o-mini", "temperature": 0.7, "prompt_version": "v1.0.0"}


@pytest.mark.asyncio
async def test_health_is_public(client):
    response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_protected_routes_require_bearer_token(client):
    missing = await client.get("/api/sets")
    invalid = await client.get("/api/usage/daily", headers={"Authorization": "Bearer not-a-jwt"})

    assert missing.status_code == 401
    assert missing.json() == {"error": {"code": "UNAUTHORIZED", "message": "Missing bearer token"}}
    assert invalid.status_code == 401
    assert invalid.json()["error"]["code"] == "UNAUTHORIZED"


@pytest.mark.asyncio
async def test_learning_flow_end_to_end(client, auth_headers, provider):
    created = await client.post("/api/sets", json=SET_PAYLOAD, headers=auth_headers)
    assert created.status_code == 201
    set_id = created.json()["id"]
    assert created.json()["words_count"] == 2

    generated = await client.post(
        f"/api/sets/{set_id}/generate", json=GENERATE_PAYLOAD, headers={**auth_headers, "X-Idempotency-Key": "k1"}
    )
    assert generated.status_code == 200
    generation = generated.json()
    assert len(generation["sentences"]) == 2
    assert generation["usage"]["remaining_generations_today"] == 9

    replay = await client.post(
        f"/api/sets/{set_id}/generate", json=GENERATE_PAYLOAD, headers={**auth_headers, "X-Idempotency-Key": "k1"}
    )
    assert replay.json()["generation_id"] == generation["generation_id"]
    assert len(provider.calls) == 1

    started = await client.post("/api/sessions", json={"set_id": set_id, "mode": "translate"}, headers=auth_headers)
    assert started.status_code == 201
    session_id = started.json()["id"]
    assert started.json()["generation_id"] == generation["generation_id"]
    assert started.json()["pending_sentences"] == 2

    attempt = await client.post(
        f"/api/sessions/{session_id}/attempts",
        json={"sentence_id": generation["sentences"][0]["sentence_id"], "answer_raw": "I have a dog"},
        headers=auth_headers,
    )
    assert attempt.status_code == 201
    assert attempt.json()["is_correct"] is True

    progress = await client.get(f"/api/sessions/{session_id}", headers=auth_headers)
    assert progress.status_code == 200
    assert progress.json()["progress"] == {"attempted": 1, "correct": 1, "remaining": 1}
    assert progress.json()["finished_at"] is None

    finished = await client.patch(
        f"/api/sessions/{session_id}/finish", json={"completed_reason": "manual_exit"}, headers=auth_headers
    )
    assert finished.status_code == 200
    assert finished.json()["message"] == "SESSION_FINISHED"
    assert finished.json()["finished_at"].endswith("Z")

    again = await client.patch(
        f"/api/sessions/{session_id}/finish", json={"completed_reason": "manual_exit"}, headers=auth_headers
    )
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "ALREADY_FINISHED"

    restarted = await client.post("/api/sessions", json={"set_id": set_id, "mode": "translate"}, headers=auth_headers)
    assert restarted.status_code == 201
    assert restarted.json()["id"] != session_id

    usage = await client.get("/api/usage/daily", headers=auth_headers)
    assert usage.json()["used"] == 1
    assert usage.json()["remaining"] == 9

    dashboard = await client.get("/api/dashboard", headers=auth_headers)
    assert dashboard.json()["sets_total"] == 1
    assert dashboard.json()["active_session"]["session_id"] == restarted.json()["id"]


@pytest.mark.asyncio
async def test_delete_with_active_session_changes_nothing(client, auth_headers):
    set_id = (await client.post("/api/sets", json=SET_PAYLOAD, headers=auth_headers)).json()["id"]
    await client.post(
        f"/api/sets/{set_id}/generate", json=GENERATE_PAYLOAD, headers={**auth_headers, "X-Idempotency-Key": "k1"}
    )
    session_id = (
        await client.post("/api/sessions", json={"set_id": set_id, "mode": "translate"}, headers=auth_headers)
    ).json()["id"]

    deleted = await client.delete(f"/api/sets/{set_id}", headers=auth_headers)

    assert deleted.status_code == 409
    assert deleted.json()["error"]["code"] == "ACTIVE_SESSION"
    detail = await client.get(f"/api/sets/{set_id}", headers=auth_headers)
    assert detail.status_code == 200
    assert [word["en"] for word in detail.json()["words"]] == ["dog", "cat"]
    session = await client.get(f"/api/sessions/{session_id}", headers=auth_headers)
    assert session.json()["finished_at"] is None


@pytest.mark.asyncio
async def test_delete_set_without_session(client, auth_headers):
    set_id = (await client.post("/api/sets", json=SET_PAYLOAD, headers=auth_headers)).json()["id"]

    deleted = await client.delete(f"/api/sets/{set_id}", headers=auth_headers)
    missing = await client.get(f"/api/sets/{set_id}", headers=auth_headers)

    assert deleted.status_code == 204
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "SET_NOT_FOUND"


@pytest.mark.asyncio
@pytest.mark.parametrize("headers", [{}, {"X-Idempotency-Key": ""}, {"X-Idempotency-Key": "k" * 256}])
async def test_generate_requires_idempotency_key(client, auth_headers, headers):
    set_id = (await client.post("/api/sets", json=SET_PAYLOAD, headers=auth_headers)).json()["id"]

    response = await client.post(f"/api/sets/{set_id}/generate", json=GENERATE_PAYLOAD, headers={**auth_headers, **headers})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "MISSING_IDEMPOTENCY_KEY"


@pytest.mark.asyncio
async def test_provider_rate_limit_maps_to_429(app, client, auth_headers):
    failing = FakeSentenceProvider(error=OpenRouterError("OPENROUTER_RATE_LIMIT", "Too many requests", status_code=429))
    app.dependency_overrides[get_sentence_provider] = lambda: failing
    set_id = (await client.post("/api/sets", json=SET_PAYLOAD, headers=auth_headers)).json()["id"]

    response = await client.post(
        f"/api/sets/{set_id}/generate", json=GENERATE_PAYLOAD, headers={**auth_headers, "X-Idempotency-Key": "k1"}
    )

    assert response.status_code == 429
    assert response.json()["error"]["code"] == "OPENROUTER_RATE_LIMIT"
    usage = await client.get("/api/usage/daily", headers=auth_headers)
    assert usage.json()["used"] == 0


@pytest.mark.asyncio
async def test_request_validation_errors_render_as_400(client, auth_headers):
    bad_body = await client.post("/api/sets", json={**SET_PAYLOAD, "words": []}, headers=auth_headers)
    bad_query = await client.get("/api/sets", params={"limit": 51}, headers=auth_headers)
    bad_cursor = await client.get("/api/sets", params={"cursor": "garbage"}, headers=auth_headers)
    bad_prompt_version = await client.post(
        "/api/sets/00000000-0000-0000-0000-000000000000/generate",
        json={**GENERATE_PAYLOAD, "prompt_version": "1.0"},
        headers={**auth_headers, "X-Idempotency-Key": "k1"},
    )

    assert bad_body.status_code == 400
    assert bad_body.json()["error"]["code"] == "VALIDATION_ERROR"
    assert bad_query.status_code == 400
    assert bad_cursor.status_code == 400
    assert bad_cursor.json()["error"]["code"] == "INVALID_CURSOR"
    assert bad_prompt_version.status_code == 400


@pytest.mark.asyncio
async def test_duplicate_set_name_is_409_and_duplicate_english_is_422(client, auth_headers):
    await client.post("/api/sets", json=SET_PAYLOAD, headers=auth_headers)

    duplicate_name = await client.post("/api/sets", json=SET_PAYLOAD, headers=auth_headers)
    duplicate_english = await client.post(
        "/api/sets",
        json={"name": "Other", "level": "B1", "words": [{"pl": "pies", "en": "Dog"}, {"pl": "psina", "en": "dog "}]},
        headers=auth_headers,
    )

    assert duplicate_name.status_code == 409
    assert duplicate_name.json()["error"]["code"] == "DUPLICATE_NAME"
    assert duplicate_english.status_code == 422
    assert duplicate_english.json()["error"]["code"] == "DUPLICATE_ENGLISH_WORD"


@pytest.mark.asyncio
async def test_word_routes(client, auth_headers):
    set_id = (await client.post("/api/sets", json=SET_PAYLOAD, headers=auth_headers)).json()["id"]

    added = await client.post(f"/api/sets/{set_id}/words", json={"words": [{"pl": "koń", "en": "horse"}]}, headers=auth_headers)
    assert added.status_code == 201
    horse_id = added.json()["added"][0]["id"]

    renamed = await client.patch(f"/api/sets/{set_id}/words/{horse_id}", json={"en": "pony"}, headers=auth_headers)
    assert renamed.status_code == 200
    assert renamed.json()["en"] == "pony"

    removed = await client.delete(f"/api/sets/{set_id}/words/{horse_id}", headers=auth_headers)
    assert removed.json() == {"message": "WORD_DELETED", "words_count": 2}

    generations = await client.get(f"/api/sets/{set_id}/generations", headers=auth_headers)
    assert generations.json()["data"] == []
