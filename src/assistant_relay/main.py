import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict

import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .errors import ChatError, InvalidRequest, UnexpectedError
from .models import ChatRequest, ChatResponse
from .orchestrator import ConversationTurnOrchestrator
from .settings import Settings, get_settings


def setup_server_logging(level: str = "INFO") -> logging.Logger:
    """Configure and return the package logger."""
    logs_dir = Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("assistant_relay")
    if logger.handlers:
        return logger

    logger.setLevel(level)
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    fh = RotatingFileHandler(logs_dir / "server.log", maxBytes=5_000_000, backupCount=3)
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    return logger


def _cors_origins_list(origins: str) -> list[str]:
    """Parse CORS_ORIGINS into a list."""
    if not origins or origins.strip() == "*":
        return ["*"]
    return [o.strip() for o in origins.split(",") if o.strip()]


settings = get_settings()
LOGGER = setup_server_logging(settings.log_level)


app = FastAPI(
    title="Assistant Relay",
    version="0.1.0",
    debug=settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins_list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render framework errors (404, 405) with the same {"error": ...} shape."""
    message = "Method not allowed" if exc.status_code == 405 else str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": message},
        headers=getattr(exc, "headers", None),
    )


def get_orchestrator(
    settings: Settings = Depends(get_settings),
) -> ConversationTurnOrchestrator:
    """Build a ConversationTurnOrchestrator from the process settings."""
    return ConversationTurnOrchestrator(settings.assistant_config())


async def _read_body(request: Request) -> Dict[str, Any]:
    """Parse the JSON body; anything that is not a JSON object reads as {}."""
    try:
        body = await request.json()
    except ValueError as e:
        LOGGER.debug("Unparseable request body: %s", e)
        return {}
    return body if isinstance(body, dict) else {}


@app.get("/health")
async def health() -> dict[str, Any]:
    """Health check for load balancers and monitoring.

    Returns:
        dict[str, Any]: JSON response with status field.
    """
    return {"status": "ok"}


@app.post("/api/chat", response_model=ChatResponse)
async def chat(
    request: Request,
    orchestrator: ConversationTurnOrchestrator = Depends(get_orchestrator),
) -> ChatResponse:
    """Relay one user message to the assistant and return its reply.

    Expected Input (JSON):
        {
            "message": str - user text (required),
            "threadId": str - thread to continue (optional),
            "prevId": str - fallback for threadId (optional)
        }

    Response Format:
        {"reply": str, "threadId": str, "responseId": str} on success,
        {"error": str, "threadId"?: str} otherwise.
    """
    body = await _read_body(request)
    try:
        chat_request = ChatRequest.model_validate(body)
    except ValidationError as e:
        LOGGER.warning("Invalid chat request body: %s", e.errors())
        raise InvalidRequest("Invalid request body") from e

    thread_id = chat_request.continuation_id()
    LOGGER.info("Chat turn start thread_id=%s", thread_id or "<new>")

    try:
        result = await orchestrator.run_turn(chat_request.message, thread_id)
    except ChatError as e:
        LOGGER.warning(
            "Chat turn failed status=%s thread_id=%s reason=%r",
            e.status_code,
            e.thread_id or thread_id,
            e.message,
        )
        raise
    except Exception as e:
        LOGGER.exception("Unexpected error during chat turn thread_id=%s", thread_id)
        raise UnexpectedError(str(e)) from e

    LOGGER.info("Chat turn done thread_id=%s", result.thread_id)
    return ChatResponse.from_result(result)


def run() -> None:
    """Serve the app with uvicorn using HOST / PORT from settings."""
    uvicorn.run(
        "assistant_relay.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
