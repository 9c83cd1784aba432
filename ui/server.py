"""FastAPI server: chat thread REST API plus WebSocket chat.

Authentication happens upstream; the session layer forwards the citizen's
id in the ``X-User-Id`` header.
"""

import json
import logging
from typing import Optional

from fastapi import Body, Depends, FastAPI, Header, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from agent.guardrails import RateLimitExceeded, audit_logger, rate_limiter
from agent.threads import ChatService, ThreadNotFound
from memory.store import get_memory_service
from memory.sync import SyncFetchError
from records import get_records
from records.threads import ThreadStore

logger = logging.getLogger(__name__)

app = FastAPI(title="Scheme Sahayak")

_service: Optional[ChatService] = None


def get_chat_service() -> ChatService:
    """Return (and lazily create) the chat service wired to the configured stores."""
    global _service
    if _service is None:
        _service = ChatService(
            threads=ThreadStore(),
            records=get_records(),
            memory_service=get_memory_service(),
            audit=audit_logger,
        )
    return _service


class HTTPError(Exception):
    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message


@app.exception_handler(HTTPError)
async def http_error_handler(_request, exc: HTTPError):
    return JSONResponse(status_code=exc.status, content={"error": exc.message})


@app.exception_handler(ThreadNotFound)
async def not_found_handler(_request, _exc: ThreadNotFound):
    return JSONResponse(status_code=404, content={"error": "Not found"})


@app.exception_handler(ValueError)
async def bad_request_handler(_request, exc: ValueError):
    return JSONResponse(status_code=400, content={"error": str(exc)})


def current_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    if not x_user_id:
        raise HTTPError(401, "Unauthorized")
    return x_user_id


# ── Threads ───────────────────────────────────────────────────────────────────


@app.get("/api/threads")
def list_threads(user_id: str = Depends(current_user),
                 service: ChatService = Depends(get_chat_service)):
    return {"threads": service.list_threads(user_id)}


@app.post("/api/threads")
def create_thread(user_id: str = Depends(current_user),
                  service: ChatService = Depends(get_chat_service)):
    try:
        return {"thread": service.create_thread(user_id)}
    except Exception:
        logger.exception("Creating a thread failed for %s", user_id)
        raise HTTPError(500, "Failed to create thread")


@app.patch("/api/threads/{thread_id}")
def rename_thread(thread_id: str, payload: dict = Body(...),
                  user_id: str = Depends(current_user),
                  service: ChatService = Depends(get_chat_service)):
    title = payload.get("title") if isinstance(payload.get("title"), str) else ""
    return {"thread": service.rename_thread(user_id, thread_id, title)}


@app.delete("/api/threads/{thread_id}")
def delete_thread(thread_id: str, user_id: str = Depends(current_user),
                  service: ChatService = Depends(get_chat_service)):
    service.delete_thread(user_id, thread_id)
    return {"success": True}


# ── Messages ──────────────────────────────────────────────────────────────────


@app.get("/api/threads/{thread_id}/messages")
def list_messages(thread_id: str, user_id: str = Depends(current_user),
                  service: ChatService = Depends(get_chat_service)):
    return {"messages": service.list_messages(user_id, thread_id)}


@app.post("/api/threads/{thread_id}/messages")
def send_message(thread_id: str, payload: dict = Body(...),
                 user_id: str = Depends(current_user),
                 service: ChatService = Depends(get_chat_service)):
    content = payload.get("content") if isinstance(payload.get("content"), str) else ""
    try:
        rate_limiter.check(user_id)
    except RateLimitExceeded as exc:
        raise HTTPError(429, str(exc))
    try:
        return service.send_message(user_id, thread_id, content)
    except (ThreadNotFound, ValueError):
        raise
    except Exception:
        logger.exception("Sending a message failed in thread %s", thread_id)
        raise HTTPError(500, "Failed to send message")


# ── Memories ──────────────────────────────────────────────────────────────────


@app.post("/api/memories/sync")
def sync_memories(user_id: str = Depends(current_user),
                  service: ChatService = Depends(get_chat_service)):
    try:
        report = service.sync_memories(user_id)
    except SyncFetchError as exc:
        raise HTTPError(502, str(exc))
    return {"ok": report.ok, **report.as_dict()}


# ── WebSocket chat ────────────────────────────────────────────────────────────


@app.websocket("/ws/chat/{thread_id}")
async def websocket_chat(websocket: WebSocket, thread_id: str):
    """Chat over a WebSocket; the user id comes from the X-User-Id header."""
    user_id = websocket.headers.get("x-user-id")
    if not user_id:
        await websocket.close(code=4401)
        return
    await websocket.accept()
    service = get_chat_service()

    try:
        while True:
            data = await websocket.receive_text()
            try:
                content = json.loads(data).get("content", "")
            except (ValueError, AttributeError):
                content = ""
            if not isinstance(content, str) or not content.strip():
                continue

            await websocket.send_text(json.dumps({"type": "status", "content": "thinking"}))
            try:
                rate_limiter.check(user_id)
                result = service.send_message(user_id, thread_id, content)
                await websocket.send_text(json.dumps({
                    "type": "response",
                    "content": result["assistantMessage"]["content"],
                    "thread": result["thread"],
                }))
            except (ThreadNotFound, RateLimitExceeded) as e:
                message = "Not found" if isinstance(e, ThreadNotFound) else str(e)
                await websocket.send_text(json.dumps({"type": "error", "content": message}))
            except Exception as e:
                logger.exception("WebSocket chat failed in thread %s", thread_id)
                await websocket.send_text(json.dumps({
                    "type": "error",
                    "content": f"Assistant error: {e}",
                }))

    except WebSocketDisconnect:
        pass


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
