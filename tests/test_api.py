from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient

from api.features.chat.exceptions import (
    AuthFailureError,
    GenerationFailedError,
    ProviderRateLimitedError,
    ProviderUnavailableError,
    StorageUnavailableError,
)
from core.settings import SETTINGS


def test_send_message_then_fetch_history(app, reply_generator):
    reply_generator.reply = "You can return unused items within 30 days."

    with TestClient(app) as client:
        response = client.post(
            "/chat/message", json={"message": "What's your return policy?"}
        )
        assert response.status_code == 200
        payload = response.json()
        assert payload["reply"] == "You can return unused items within 30 days."
        session_id = payload["sessionId"]

        history = client.get(f"/chat/history/{session_id}")

    assert history.status_code == 200
    body = history.json()
    assert body["conversation"]["id"] == session_id
    assert [(m["sender"], m["text"]) for m in body["messages"]] == [
        ("user", "What's your return policy?"),
        ("ai", "You can return unused items within 30 days."),
    ]
    assert all(m["conversation_id"] == session_id for m in body["messages"])


def test_follow_up_uses_same_session(app, reply_generator):
    with TestClient(app) as client:
        first = client.post("/chat/message", json={"message": "Do you ship to USA?"})
        session_id = first.json()["sessionId"]

        second = client.post(
            "/chat/message",
            json={"message": "How long does it take?", "sessionId": session_id},
        )
        history = client.get(f"/chat/history/{session_id}")

    assert second.status_code == 200
    assert second.json()["sessionId"] == session_id
    assert len(history.json()["messages"]) == 4
    assert len(reply_generator.calls[-1]["history"]) == 2


def test_message_is_trimmed_before_processing(app, reply_generator):
    with TestClient(app) as client:
        response = client.post("/chat/message", json={"message": "  hello  "})

    assert response.status_code == 200
    assert reply_generator.calls[-1]["new_message"] == "hello"


def test_empty_or_blank_message_is_rejected(app, message_store):
    with TestClient(app) as client:
        empty = client.post("/chat/message", json={"message": ""})
        blank = client.post("/chat/message", json={"message": "   "})
        missing = client.post("/chat/message", json={})

    for response in (empty, blank, missing):
        assert response.status_code == 400
        assert response.json()["errorCode"] == "VALIDATION_FAILED"
    assert message_store.messages == []


def test_too_long_message_is_rejected(app, reply_generator):
    with TestClient(app) as client:
        response = client.post("/chat/message", json={"message": "x" * 2001})

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"
    assert reply_generator.calls == []


def test_malformed_session_id_in_body_is_rejected(app):
    with TestClient(app) as client:
        response = client.post(
            "/chat/message", json={"message": "hi", "sessionId": "not-a-uuid"}
        )

    assert response.status_code == 400


def test_unknown_session_is_404(app, message_store):
    with TestClient(app) as client:
        response = client.post(
            "/chat/message", json={"message": "hi", "sessionId": str(uuid4())}
        )

    assert response.status_code == 404
    payload = response.json()
    assert payload["errorCode"] == "SESSION_NOT_FOUND"
    assert payload["error"] == "Session not found. Please start a new conversation."
    assert message_store.messages == []


def test_history_for_unknown_session_is_404(app):
    with TestClient(app) as client:
        response = client.get(f"/chat/history/{uuid4()}")

    assert response.status_code == 404
    assert response.json()["errorCode"] == "CONVERSATION_NOT_FOUND"


def test_history_with_malformed_session_id_is_400(app):
    with TestClient(app) as client:
        response = client.get("/chat/history/not-a-uuid")

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid session ID format"


def test_rate_limited_provider_maps_to_429(app, reply_generator):
    reply_generator.error = ProviderRateLimitedError("throttled", retry_after="7")

    with TestClient(app) as client:
        response = client.post("/chat/message", json={"message": "hi"})

    assert response.status_code == 429
    assert response.headers["retry-after"] == "7"
    assert response.json()["errorCode"] == "PROVIDER_RATE_LIMITED"


def test_provider_failures_map_to_service_errors(app, reply_generator):
    cases = [
        (AuthFailureError("bad key", status_code=401), 503, "PROVIDER_AUTH_FAILED"),
        (ProviderUnavailableError("down", status_code=502), 503, "PROVIDER_UNAVAILABLE"),
        (
            ProviderUnavailableError("Request timed out", timed_out=True),
            504,
            "PROVIDER_UNAVAILABLE",
        ),
        (GenerationFailedError("empty"), 503, "GENERATION_FAILED"),
    ]

    with TestClient(app) as client:
        for error, status, code in cases:
            reply_generator.error = error
            response = client.post("/chat/message", json={"message": "hi"})
            assert response.status_code == status
            assert response.json()["errorCode"] == code


def test_provider_error_body_does_not_leak_internal_message(app, reply_generator):
    reply_generator.error = AuthFailureError("sk-secret rejected by provider")

    with TestClient(app) as client:
        response = client.post("/chat/message", json={"message": "hi"})

    assert "sk-secret" not in response.json()["error"]


def test_storage_failure_maps_to_503(app, message_store):
    message_store.fail_on_create["user"] = StorageUnavailableError("create_message", "down")

    with TestClient(app) as client:
        response = client.post("/chat/message", json={"message": "hi"})

    assert response.status_code == 503
    assert response.json()["errorCode"] == "STORAGE_UNAVAILABLE"


def test_unexpected_error_is_structured_500(app, reply_generator):
    reply_generator.error = RuntimeError("boom")

    with TestClient(app, raise_server_exceptions=False) as client:
        response = client.post("/chat/message", json={"message": "hi"})

    assert response.status_code == 500
    assert response.json()["errorCode"] == "INTERNAL_ERROR"


def test_chat_health(app):
    with TestClient(app) as client:
        response = client.get("/chat/health")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "healthy"
    assert payload["timestamp"]


def test_ready_reports_dependencies(app, reply_generator, mock_database):
    with TestClient(app) as client:
        healthy = client.get("/ready")
        reply_generator.healthy = False
        degraded = client.get("/ready")

    assert healthy.json()["status"] == "ok"
    assert healthy.json()["dependencies"] == {"database": "ok", "reply_provider": "ok"}
    assert degraded.json()["status"] == "degraded"
    mock_database.init.assert_awaited()


def test_root_and_unknown_route(app):
    with TestClient(app) as client:
        root = client.get("/")
        missing = client.get("/nope")

    assert root.json()["status"] == "running"
    assert missing.status_code == 404
    assert missing.json() == {"error": "Route not found", "path": "/nope"}


def test_error_details_follow_the_app_settings(make_app):
    prod_settings = SETTINGS.model_copy(
        update={"APP": SETTINGS.APP.model_copy(update={"ENVIRONMENT": "prod"})}
    )
    local_settings = SETTINGS.model_copy(
        update={"APP": SETTINGS.APP.model_copy(update={"ENVIRONMENT": "local"})}
    )
    unknown = {"message": "hi", "sessionId": str(uuid4())}

    with TestClient(make_app(prod_settings)) as client:
        prod = client.post("/chat/message", json=unknown)
    with TestClient(make_app(local_settings)) as client:
        local = client.post("/chat/message", json=unknown)

    assert prod.status_code == local.status_code == 404
    assert "details" not in prod.json()
    assert local.json()["details"]["resource"] == "Session"
