"""Async HTTP API for the chat UI and the logs page.

Uses aiohttp's AppRunner/TCPSite for non-blocking start/stop.  Handlers
translate the error taxonomy into status codes:

- ``ValidationError`` / invalid JSON → 400
- ``StoreUnavailable`` (memory routes) → 503
- ``GenerationFailed`` → 500 with ``details``
- ``PersistenceFailed`` (log routes) → 500
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from aiohttp import web

from brainstore.chat.turn import ChatTurn
from brainstore.config import settings
from brainstore.conversations.store import ConversationLog
from brainstore.errors import GenerationFailed, PersistenceFailed, StoreUnavailable, ValidationError
from brainstore.memory.store import MemoryStore

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

MEMORY_KEY = web.AppKey("memory", MemoryStore)
LOG_KEY = web.AppKey("log", ConversationLog)
CHAT_KEY = web.AppKey("chat", ChatTurn)

DEFAULT_PAGE_SIZE = 100


def _error(message: str, status: int, **extra: Any) -> web.Response:
    return web.json_response({"error": message, **extra}, status=status)


async def _read_json(request: web.Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except Exception as exc:
        raise ValidationError("invalid JSON") from exc
    if not isinstance(body, dict):
        raise ValidationError("JSON body must be an object")
    return body


def _int_param(request: web.Request, name: str, default: int) -> int:
    raw = request.query.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValidationError(f"{name} must be an integer") from exc
    if value < 0:
        raise ValidationError(f"{name} must not be negative")
    return value


# -- Middleware ----------------------------------------------------------------


def _cors_headers(request: web.Request) -> dict[str, str]:
    allowed = settings.get_cors_origins()
    origin = request.headers.get("Origin", "")
    if "*" in allowed:
        allow = "*"
    elif origin and origin in allowed:
        allow = origin
    else:
        return {}
    return {
        "Access-Control-Allow-Origin": allow,
        "Access-Control-Allow-Methods": "GET, POST, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


@web.middleware
async def cors_middleware(
    request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
) -> web.StreamResponse:
    """Answer preflight requests and stamp CORS headers on every response."""
    if request.method == "OPTIONS":
        return web.Response(status=204, headers=_cors_headers(request))
    try:
        response = await handler(request)
    except web.HTTPException as exc:
        exc.headers.update(_cors_headers(request))
        raise
    response.headers.update(_cors_headers(request))
    return response


@web.middleware
async def error_middleware(
    request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
) -> web.StreamResponse:
    """Map request validation errors to 400 for every route."""
    try:
        return await handler(request)
    except ValidationError as exc:
        logger.warning("Bad request to %s: %s", request.path, exc)
        return _error(str(exc), 400)


# -- Service -------------------------------------------------------------------


async def _index(request: web.Request) -> web.Response:
    """GET / — liveness plus an endpoint index."""
    return web.json_response(
        {
            "message": "Brainstore API is running",
            "status": "ok",
            "endpoints": {
                "chat": "/api/chat",
                "sessions": "/api/sessions/{id}",
                "memories": "/api/memories",
                "logs": "/api/logs/stats",
                "conversations": "/api/logs/conversations",
            },
        }
    )


async def _health(request: web.Request) -> web.Response:
    """GET /health — basic liveness check."""
    memory = request.app[MEMORY_KEY]
    return web.json_response({"status": "ok", "memory": memory.initialized})


# -- Chat ----------------------------------------------------------------------


async def _chat(request: web.Request) -> web.Response:
    """POST /api/chat — run one turn."""
    body = await _read_json(request)
    message = body.get("message")
    if not isinstance(message, str):
        raise ValidationError("Message is required")
    session_id = body.get("sessionId")
    if session_id is not None and not isinstance(session_id, str):
        raise ValidationError("sessionId must be a string")

    try:
        result = await request.app[CHAT_KEY].handle(message, session_id)
    except GenerationFailed as exc:
        logger.error("Chat turn failed: %s", exc)
        return _error("Failed to process chat message", 500, details=str(exc))
    return web.json_response(result.to_api())


async def _clear_session(request: web.Request) -> web.Response:
    """DELETE /api/sessions/{id} — forget a session's transcript."""
    removed = await request.app[CHAT_KEY].sessions.clear(request.match_info["id"])
    return web.json_response({"cleared": removed})


# -- Memories ------------------------------------------------------------------


async def _list_memories(request: web.Request) -> web.Response:
    """GET /api/memories"""
    limit = _int_param(request, "limit", settings.memory_list_limit)
    try:
        records = await request.app[MEMORY_KEY].get_all(limit=limit)
    except StoreUnavailable as exc:
        return _error(str(exc), 503)
    return web.json_response([record.model_dump() for record in records])


async def _add_memory(request: web.Request) -> web.Response:
    """POST /api/memories — store a fact by hand."""
    body = await _read_json(request)
    content = body.get("content")
    if not isinstance(content, str) or not content.strip():
        raise ValidationError("content is required")
    metadata = body.get("metadata") or {}
    if not isinstance(metadata, dict):
        raise ValidationError("metadata must be an object")

    try:
        memory_id = await request.app[MEMORY_KEY].add(content, metadata)
    except StoreUnavailable as exc:
        return _error(str(exc), 503)
    return web.json_response({"id": memory_id, "message": "Memory saved to brain"})


async def _delete_memory(request: web.Request) -> web.Response:
    """DELETE /api/memories/{id}"""
    memory_id = request.match_info["id"]
    try:
        deleted = await request.app[MEMORY_KEY].delete(memory_id)
    except StoreUnavailable as exc:
        return _error(str(exc), 503)
    if not deleted:
        return _error("Memory not found", 404)
    return web.json_response({"message": "Memory deleted"})


# -- Logs ----------------------------------------------------------------------


async def _log_stats(request: web.Request) -> web.Response:
    """GET /api/logs/stats"""
    try:
        stats = await request.app[LOG_KEY].stats()
    except PersistenceFailed as exc:
        return _error(str(exc), 500)
    return web.json_response(stats.to_api())


async def _list_conversations(request: web.Request) -> web.Response:
    """GET /api/logs/conversations?search=&limit=&skip=&sessionId="""
    log = request.app[LOG_KEY]
    search = request.query.get("search", "").strip()
    limit = _int_param(request, "limit", DEFAULT_PAGE_SIZE)
    skip = _int_param(request, "skip", 0)
    session_id = request.query.get("sessionId") or None

    try:
        if search:
            entries = await log.search(search, limit=limit)
        else:
            entries = await log.list_recent(limit=limit, skip=skip, session_id=session_id)
    except PersistenceFailed as exc:
        return _error(str(exc), 500)
    return web.json_response([entry.to_api() for entry in entries])


async def _session_conversations(request: web.Request) -> web.Response:
    """GET /api/logs/sessions/{id} — one session, oldest first."""
    try:
        entries = await request.app[LOG_KEY].list_by_session(request.match_info["id"])
    except PersistenceFailed as exc:
        return _error(str(exc), 500)
    return web.json_response([entry.to_api() for entry in entries])


async def _clear_conversations(request: web.Request) -> web.Response:
    """DELETE /api/logs/conversations — admin reset."""
    try:
        removed = await request.app[LOG_KEY].clear()
    except PersistenceFailed as exc:
        return _error(str(exc), 500)
    return web.json_response({"deleted": removed})


def _create_web_app(
    chat: ChatTurn | None = None,
    memory: MemoryStore | None = None,
    log: ConversationLog | None = None,
) -> web.Application:
    """Build the aiohttp Application with routes.

    Stores default to the shared singletons; tests pass their own.
    """
    memory = memory or (chat.memory if chat else MemoryStore.get())
    log = log or (chat.log if chat else ConversationLog.get())
    chat = chat or ChatTurn(memory, log)

    app = web.Application(middlewares=[cors_middleware, error_middleware])
    app[MEMORY_KEY] = memory
    app[LOG_KEY] = log
    app[CHAT_KEY] = chat

    app.router.add_get("/", _index)
    app.router.add_get("/health", _health)
    app.router.add_post("/api/chat", _chat)
    app.router.add_delete("/api/sessions/{id}", _clear_session)
    app.router.add_get("/api/memories", _list_memories)
    app.router.add_post("/api/memories", _add_memory)
    app.router.add_delete("/api/memories/{id}", _delete_memory)
    app.router.add_get("/api/logs/stats", _log_stats)
    app.router.add_get("/api/logs/conversations", _list_conversations)
    app.router.add_delete("/api/logs/conversations", _clear_conversations)
    app.router.add_get("/api/logs/sessions/{id}", _session_conversations)
    return app


class ApiServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(
        self, app: web.Application | None = None, host: str | None = None, port: int | None = None
    ) -> None:
        self.host = host or settings.host
        self.port = settings.port if port is None else port
        self._app = app
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        """Start listening for API requests."""
        app = self._app or _create_web_app()
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("Brainstore API listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Brainstore API stopped")
