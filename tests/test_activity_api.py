"""Tests for the Activity API — CRUD, selection and SSE generation."""

import json
import tempfile
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from clientnote.core.errors import BackendUnreachable
from clientnote.main import create_app
from clientnote.persistence.repository import ActivityRepository

from conftest import ScriptedInferenceClient


# ─── Fixtures ─────────────────────────────────────────────────


@pytest.fixture
def api():
    with tempfile.TemporaryDirectory() as tmpdir:
        backend = ScriptedInferenceClient(chunks=["P: anxiety", "\nPlan: follow up"])
        app = create_app(
            repository=ActivityRepository(db_path=Path(tmpdir) / "test_api.db"),
            client=backend,
        )
        with TestClient(app) as test_client:
            yield test_client, backend, app


def _sse_events(text: str) -> list[dict]:
    return [json.loads(line[len("data: "):]) for line in text.splitlines() if line.startswith("data: ")]


def _create_client(test_client, name="J. Doe") -> str:
    response = test_client.post("/v1/clients", json={"display_name": name})
    assert response.status_code == 201
    return response.json()["client_id"]


def _create_activity(test_client, client_id, activity_type="session_note") -> dict:
    response = test_client.post(f"/v1/clients/{client_id}/activities", json={"type": activity_type})
    assert response.status_code == 201
    return response.json()


# ─── Clients & activities ────────────────────────────────────


def test_backend_started_on_startup(api):
    _, backend, _ = api
    assert backend.started


def test_create_client_requires_name(api):
    test_client, _, _ = api
    assert test_client.post("/v1/clients", json={"display_name": "  "}).status_code == 400


def test_create_activity(api):
    test_client, _, _ = api
    client_id = _create_client(test_client)

    activity = _create_activity(test_client, client_id, "treatment_plan")

    assert activity["client_id"] == client_id
    assert activity["type"] == "treatment_plan"
    assert activity["title"].startswith("Treatment Plan - ")
    assert activity["record"] is None


def test_create_activity_rejects_unknown_type(api):
    test_client, _, _ = api
    client_id = _create_client(test_client)
    response = test_client.post(f"/v1/clients/{client_id}/activities", json={"type": "poem"})
    assert response.status_code == 400


def test_create_activity_for_unknown_client(api):
    test_client, _, _ = api
    response = test_client.post("/v1/clients/ghost/activities", json={"type": "brainstorm"})

    assert response.status_code == 404
    body = response.json()
    assert body["kind"] == "invalid_activity_selection"
    assert body["fallback"] == {"client_id": None, "activity_id": None}


def test_delete_client(api):
    test_client, _, _ = api
    client_id = _create_client(test_client)
    activity = _create_activity(test_client, client_id)

    response = test_client.delete(f"/v1/clients/{client_id}")
    assert response.status_code == 200
    assert response.json()["selection"] == {"client_id": None, "activity_id": None}
    assert test_client.get(f"/v1/activities/{activity['activity_id']}").status_code == 404
    assert test_client.delete(f"/v1/clients/{client_id}").status_code == 404


def test_select_unknown_activity(api):
    test_client, _, _ = api
    assert test_client.post("/v1/activities/nope/select").status_code == 404


# ─── Generation ──────────────────────────────────────────────


def test_generate_streams_sse_and_persists(api):
    test_client, backend, _ = api
    client_id = _create_client(test_client)
    activity_id = _create_activity(test_client, client_id)["activity_id"]

    response = test_client.post(
        f"/v1/activities/{activity_id}/generate",
        json={"raw_input": "Client anxious about deadlines.", "note_format": "PIRP"},
    )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = _sse_events(response.text)
    assert [e["state"] for e in events if e["type"] == "state"] == ["analyzing", "composing", "streaming"]
    assert [e["delta"] for e in events if e["type"] == "delta"] == ["P: anxiety", "\nPlan: follow up"]
    assert events[-1]["type"] == "complete"
    assert events[-1]["final_response"] == "P: anxiety\nPlan: follow up"
    assert events[-1]["format_used"] == "PIRP"
    assert len(backend.analysis_requests) == 2

    activity = test_client.get(f"/v1/activities/{activity_id}").json()
    assert activity["record"] == {
        "display_prompt": "Client anxious about deadlines.",
        "final_response": "P: anxiety\nPlan: follow up",
        "format_used": "PIRP",
        "reasoning": "",
        "answer": "P: anxiety\nPlan: follow up",
    }
    assert activity["active"] is True
    assert activity["job_state"] == "idle"

    buffer = test_client.get("/v1/buffer").json()
    assert buffer["activity_id"] == activity_id
    assert [m["role"] for m in buffer["messages"]] == ["user", "assistant"]


def test_generate_with_form(api):
    test_client, backend, _ = api
    client_id = _create_client(test_client)
    activity_id = _create_activity(test_client, client_id)["activity_id"]

    response = test_client.post(
        f"/v1/activities/{activity_id}/generate",
        json={
            "note_format": "SOAP",
            "form": {"approach": "CBT", "interventions": ["Homework"], "presenting_issue": "Insomnia"},
        },
    )

    complete = _sse_events(response.text)[-1]
    assert complete["type"] == "complete"
    assert "Presenting Issue: Insomnia" in complete["display_prompt"]
    assert len(backend.analysis_requests) == 1


def test_generate_requires_input(api):
    test_client, _, _ = api
    client_id = _create_client(test_client)
    activity_id = _create_activity(test_client, client_id)["activity_id"]

    response = test_client.post(f"/v1/activities/{activity_id}/generate", json={"raw_input": "  "})
    assert response.status_code == 400


@pytest.mark.parametrize(
    "body",
    [
        {"raw_input": None},
        {"raw_input": 42},
        {"raw_input": ["hi"]},
        {"raw_input": "hi", "note_format": 3},
        {"raw_input": "hi", "form": "CBT"},
        {"form": {"interventions": 5}},
        {"form": {"presenting_issue": 5}},
        [1],
        "hi",
    ],
)
def test_generate_rejects_malformed_body(api, body):
    test_client, backend, _ = api
    client_id = _create_client(test_client)
    activity_id = _create_activity(test_client, client_id)["activity_id"]

    response = test_client.post(f"/v1/activities/{activity_id}/generate", json=body)

    assert response.status_code == 400
    assert "error" in response.json()
    assert backend.requests == []


def test_generate_rejects_invalid_json(api):
    test_client, _, _ = api
    client_id = _create_client(test_client)
    activity_id = _create_activity(test_client, client_id)["activity_id"]

    response = test_client.post(
        f"/v1/activities/{activity_id}/generate",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )
    assert response.status_code == 400


@pytest.mark.parametrize("body", [[1], "J. Doe", {"display_name": 7}, {"display_name": None}])
def test_create_client_rejects_malformed_body(api, body):
    test_client, _, _ = api
    assert test_client.post("/v1/clients", json=body).status_code == 400


@pytest.mark.parametrize("body", [[1], {"type": "brainstorm", "title": 5}])
def test_create_activity_rejects_malformed_body(api, body):
    test_client, _, _ = api
    client_id = _create_client(test_client)
    assert test_client.post(f"/v1/clients/{client_id}/activities", json=body).status_code == 400


def test_generate_unknown_activity(api):
    test_client, _, _ = api
    response = test_client.post("/v1/activities/nope/generate", json={"raw_input": "hi"})
    assert response.status_code == 404


def test_generate_without_model(api):
    test_client, _, app = api
    client_id = _create_client(test_client)
    activity_id = _create_activity(test_client, client_id, "brainstorm")["activity_id"]
    app.state.orchestrator.model = ""

    response = test_client.post(f"/v1/activities/{activity_id}/generate", json={"raw_input": "hi"})

    assert response.status_code == 503
    assert response.json()["kind"] == "no_active_model"


def test_backend_error_ends_stream_with_error_event(api):
    test_client, backend, _ = api
    client_id = _create_client(test_client)
    activity_id = _create_activity(test_client, client_id, "brainstorm")["activity_id"]
    backend.stream_error = BackendUnreachable("Ollama is not running")

    response = test_client.post(f"/v1/activities/{activity_id}/generate", json={"raw_input": "hi"})

    last = _sse_events(response.text)[-1]
    assert last["type"] == "error"
    assert last["kind"] == "backend_unreachable"
    assert last["recoverable"] is True
    assert test_client.get(f"/v1/activities/{activity_id}").json()["record"] is None


def test_switching_keeps_records_apart(api):
    test_client, backend, _ = api
    client_id = _create_client(test_client)
    note_id = _create_activity(test_client, client_id, "session_note")["activity_id"]
    test_client.post(f"/v1/activities/{note_id}/generate", json={"raw_input": "session"})

    brainstorm_id = _create_activity(test_client, client_id, "brainstorm")["activity_id"]
    assert test_client.get("/v1/buffer").json()["messages"] == []

    backend.chunks = ["Idea one"]
    test_client.post(f"/v1/activities/{brainstorm_id}/generate", json={"raw_input": "ideas"})

    selected = test_client.post(f"/v1/activities/{note_id}/select").json()
    assert selected["buffer"] == []
    assert selected["record"]["final_response"] == "P: anxiety\nPlan: follow up"
    brainstorm = test_client.get(f"/v1/activities/{brainstorm_id}").json()
    assert brainstorm["record"]["final_response"] == "Idea one"
    assert brainstorm["active"] is False


def test_record_splits_reasoning_from_answer(api):
    test_client, backend, _ = api
    client_id = _create_client(test_client)
    activity_id = _create_activity(test_client, client_id, "brainstorm")["activity_id"]
    backend.chunks = ["<think>weigh options", "</think>", "Try journaling."]

    events = _sse_events(
        test_client.post(f"/v1/activities/{activity_id}/generate", json={"raw_input": "ideas"}).text
    )
    assert [e["in_reasoning"] for e in events if e["type"] == "delta"] == [True, False, False]

    record = test_client.get(f"/v1/activities/{activity_id}").json()["record"]
    assert record["final_response"] == "<think>weigh options</think>Try journaling."
    assert record["reasoning"] == "weigh options"
    assert record["answer"] == "Try journaling."


def test_cancel_without_job(api):
    test_client, _, _ = api
    assert test_client.post("/v1/activities/nope/cancel").json() == {"cancelled": False}


# ─── Backend ─────────────────────────────────────────────────


def test_models(api):
    test_client, _, app = api
    body = test_client.get("/v1/models").json()
    assert body["models"] == ["qwen3:0.6b"]
    assert body["active_model"] == app.state.orchestrator.model


def test_health(api):
    test_client, _, _ = api
    body = test_client.get("/v1/health").json()
    assert body["status"] == "ok"
    assert body["backend_reachable"] is True
    assert body["active_jobs"] == []
    assert "counters" in body["metrics"]
