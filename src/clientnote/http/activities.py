"""
Activity API — client/activity management + SSE generation streaming.

Endpoints:
    POST   /v1/clients                      → Create a client
    DELETE /v1/clients/{id}                 → Delete a client and its activities
    POST   /v1/clients/{id}/activities      → Create (and select) an activity
    POST   /v1/activities/{id}/select       → Make an activity active
    GET    /v1/activities/{id}              → Activity, record and job state
    POST   /v1/activities/{id}/generate     → Start a generation, SSE stream of events
    POST   /v1/activities/{id}/cancel       → Cancel the activity's generation
    GET    /v1/buffer                       → Conversation buffer of the active activity
    GET    /v1/models                       → Models the backend offers
    GET    /v1/health                       → Backend reachability, jobs, metrics

Errors are JSON bodies {"error", "kind", "recoverable"}.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, AsyncGenerator

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse

from clientnote.activity.models import Activity, ActivityType, Record, Selection
from clientnote.core.errors import (
    AlreadyGenerating,
    ClientNoteError,
    InferenceError,
    InvalidActivitySelection,
    NoActiveModel,
    PersistenceError,
)
from clientnote.core.metrics import metrics
from clientnote.generation.reasoning import split_reasoning
from clientnote.prompts.forms import SessionNoteForm, TreatmentPlanForm

if TYPE_CHECKING:
    from clientnote.activity.store import ActivityStore
    from clientnote.generation.orchestrator import GenerationHandle, GenerationOrchestrator

logger = logging.getLogger(__name__)

_STATUS = {
    InvalidActivitySelection: 404,
    AlreadyGenerating: 409,
    NoActiveModel: 503,
    InferenceError: 503,
    PersistenceError: 503,
}


def _error_response(error: ClientNoteError) -> JSONResponse:
    status = next((code for cls, code in _STATUS.items() if isinstance(error, cls)), 500)
    body = error.to_dict()
    if isinstance(error, InvalidActivitySelection):
        body["fallback"] = _selection_dict(error.fallback)
    return JSONResponse(body, status_code=status)


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse({"error": message}, status_code=400)


async def _json_object(request: Request) -> dict[str, Any] | None:
    """The request body if it is a JSON object, else None."""
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


def _selection_dict(selection: Selection | None) -> dict[str, Any]:
    selection = selection or Selection()
    return {"client_id": selection.client_id, "activity_id": selection.activity_id}


def _record_dict(record: Record) -> dict[str, Any]:
    """The record, plus its reasoning split out so clients can fold it."""
    reasoning, answer = split_reasoning(record.final_response)
    return {
        "display_prompt": record.display_prompt,
        "final_response": record.final_response,
        "format_used": record.format_used,
        "reasoning": reasoning,
        "answer": answer,
    }


def _activity_dict(activity: Activity) -> dict[str, Any]:
    record = activity.persisted_record
    return {
        "activity_id": activity.activity_id,
        "client_id": activity.client_id,
        "type": activity.type.value,
        "title": activity.display_title,
        "created_at": activity.created_at,
        "record": _record_dict(record) if record is not None else None,
    }


def create_activity_router(
    store: "ActivityStore",
    orchestrator: "GenerationOrchestrator",
) -> APIRouter:
    """Create the activity management router."""

    router = APIRouter(prefix="/v1", tags=["activities"])

    # ─── Clients ──────────────────────────────────────────────

    @router.post("/clients")
    async def create_client(request: Request) -> JSONResponse:
        body = await _json_object(request)
        if body is None:
            return _bad_request("Request body must be a JSON object")
        display_name = body.get("display_name") or ""
        if not isinstance(display_name, str) or not display_name.strip():
            return _bad_request("display_name is required")

        client = await store.create_client(display_name.strip())
        return JSONResponse(
            {
                "client_id": client.client_id,
                "display_name": client.display_name,
                "created_at": client.created_at,
            },
            status_code=201,
        )

    @router.delete("/clients/{client_id}")
    async def delete_client(client_id: str) -> JSONResponse:
        if not await store.delete_client(client_id):
            return JSONResponse({"error": f"Unknown client {client_id}"}, status_code=404)
        return JSONResponse({"deleted": True, "selection": _selection_dict(store.selection)})

    @router.post("/clients/{client_id}/activities")
    async def create_activity(client_id: str, request: Request) -> JSONResponse:
        body = await _json_object(request)
        if body is None:
            return _bad_request("Request body must be a JSON object")
        try:
            activity_type = ActivityType(body.get("type", ""))
        except ValueError:
            valid = ", ".join(t.value for t in ActivityType)
            return _bad_request(f"type must be one of: {valid}")
        title = body.get("title")
        if title is not None and not isinstance(title, str):
            return _bad_request("title must be a string")

        try:
            activity = await store.create_activity(client_id, activity_type, title)
        except ClientNoteError as e:
            return _error_response(e)
        return JSONResponse(_activity_dict(activity), status_code=201)

    # ─── Activities ───────────────────────────────────────────

    @router.post("/activities/{activity_id}/select")
    async def select_activity(activity_id: str) -> JSONResponse:
        try:
            activity = store.select_activity(activity_id)
        except ClientNoteError as e:
            return _error_response(e)
        return JSONResponse(
            {**_activity_dict(activity), "buffer": store.buffer.as_chat_messages()}
        )

    @router.get("/activities/{activity_id}")
    async def get_activity(activity_id: str) -> JSONResponse:
        activity = store.get_activity(activity_id)
        if activity is None:
            return JSONResponse(
                {"error": f"Unknown activity {activity_id}"}, status_code=404
            )
        return JSONResponse(
            {
                **_activity_dict(activity),
                "active": store.is_active(activity_id),
                "job_state": orchestrator.job_state(activity_id).value,
            }
        )

    @router.post("/activities/{activity_id}/generate")
    async def generate(activity_id: str, request: Request):
        body = await _json_object(request)
        if body is None:
            return _bad_request("Request body must be a JSON object")

        raw_input = body.get("raw_input") or ""
        note_format = body.get("note_format")
        raw_form = body.get("form")
        if not isinstance(raw_input, str):
            return _bad_request("raw_input must be a string")
        if note_format is not None and not isinstance(note_format, str):
            return _bad_request("note_format must be a string")
        if raw_form is not None and not isinstance(raw_form, dict):
            return _bad_request("form must be an object")

        activity = store.get_activity(activity_id)
        form = None
        if activity is not None and raw_form is not None:
            try:
                if activity.type is ActivityType.SESSION_NOTE:
                    form = SessionNoteForm.from_dict(raw_form)
                elif activity.type is ActivityType.TREATMENT_PLAN:
                    form = TreatmentPlanForm.from_dict(raw_form)
            except TypeError:
                return _bad_request("form has fields of the wrong type")

        if not raw_input.strip() and form is None:
            return _bad_request("raw_input or form is required")

        on_busy = "replace" if body.get("on_busy") == "replace" else "reject"
        try:
            handle = await orchestrator.start(
                activity_id,
                raw_input,
                note_format=note_format,
                form=form,
                on_busy=on_busy,
            )
        except ClientNoteError as e:
            return _error_response(e)

        metrics.inc("http.generate")
        return StreamingResponse(
            _sse_generator(handle),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            },
        )

    @router.post("/activities/{activity_id}/cancel")
    async def cancel(activity_id: str) -> JSONResponse:
        return JSONResponse({"cancelled": orchestrator.request_cancel(activity_id)})

    # ─── Buffer & backend ─────────────────────────────────────

    @router.get("/buffer")
    async def get_buffer() -> JSONResponse:
        return JSONResponse(
            {
                "activity_id": store.buffer.activity_id,
                "messages": store.buffer.as_chat_messages(),
            }
        )

    @router.get("/models")
    async def list_models() -> JSONResponse:
        try:
            models = await orchestrator.available_models()
        except ClientNoteError as e:
            return _error_response(e)
        return JSONResponse({"models": models, "active_model": orchestrator.model})

    @router.get("/health")
    async def health() -> JSONResponse:
        reachable = await orchestrator.backend_reachable()
        return JSONResponse(
            {
                "status": "ok" if reachable else "degraded",
                "backend_reachable": reachable,
                "active_model": orchestrator.model,
                "active_jobs": orchestrator.active_jobs(),
                "selection": _selection_dict(store.selection),
                "metrics": metrics.snapshot(),
            }
        )

    return router


async def _sse_generator(handle: "GenerationHandle") -> AsyncGenerator[str, None]:
    """Stream a job's events as SSE. A disconnecting client does not cancel the job."""
    async for event in handle.events():
        yield f"data: {json.dumps(event.to_dict())}\n\n"
