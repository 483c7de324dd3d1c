from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Any, Dict, Optional

import uvicorn
from fastapi import Depends, FastAPI, File, Request, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from starlette.concurrency import run_in_threadpool

from app.auth import (
    TOKEN_COOKIE,
    authenticate,
    generate_token,
    is_public_path,
    token_from_request,
    verify_token,
)
from app.uploads import UploadRejected, ensure_upload_dir, save_upload
from assistant.completion import CompletionInvoker
from assistant.core.memory import InMemoryConversationStore
from assistant.errors import ChatError, InvalidRequest
from assistant.orchestrator import ChatOrchestrator
from config.settings import get_settings


settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="[%(asctime)s] %(levelname)s - %(message)s",
)
logger = logging.getLogger("visionchat")

app = FastAPI(title="Vision Chat Gateway", version="1.0.0")

# CORS: allow local frontend during development
if settings.is_dev:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: Optional[str] = Field(None, description="User's latest message")
    image_url: Optional[str] = Field(
        None, alias="imageUrl", description="Reference returned by /api/upload"
    )
    conversation_id: Optional[str] = Field(
        None, alias="conversationId", description="Omit to start a new conversation"
    )


class LoginRequest(BaseModel):
    username: str
    password: str


@lru_cache(maxsize=1)
def get_orchestrator() -> ChatOrchestrator:
    store = InMemoryConversationStore(
        unknown_id_policy=settings.unknown_conversation_policy
    )
    return ChatOrchestrator(store=store, invoker=CompletionInvoker())


@app.middleware("http")
async def require_login(request: Request, call_next):
    path = request.url.path
    if request.method == "OPTIONS" or is_public_path(path):
        return await call_next(request)

    token = token_from_request(request)
    user = verify_token(token) if token else None
    if user is None:
        if path == "/":
            return RedirectResponse("/login.html", status_code=302)
        error = "Invalid or expired token" if token else "Authentication required"
        return JSONResponse(status_code=401, content={"error": error})

    request.state.user = user
    return await call_next(request)


@app.post("/api/login")
def login(req: LoginRequest, response: Response) -> Dict[str, Any]:
    if not authenticate(req.username, req.password):
        logger.warning("Failed login for user=%s", req.username)
        return JSONResponse(status_code=401, content={"error": "Invalid credentials"})

    response.set_cookie(
        TOKEN_COOKIE,
        generate_token(req.username),
        httponly=True,
        max_age=settings.token_max_age,
        samesite="lax",
    )
    logger.info("User %s logged in", req.username)
    return {"success": True}


@app.post("/api/logout")
def logout(response: Response) -> Dict[str, Any]:
    response.delete_cookie(TOKEN_COOKIE)
    return {"success": True}


@app.post("/api/upload")
def upload(image: Optional[UploadFile] = File(None)) -> Dict[str, Any]:
    if image is None:
        return JSONResponse(status_code=400, content={"error": "No image file provided"})
    try:
        return save_upload(image, settings)
    except UploadRejected as exc:
        return JSONResponse(status_code=400, content={"error": str(exc)})


async def _parse_chat_request(request: Request) -> ChatRequest:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidRequest("Request body must be valid JSON.") from exc
    if not isinstance(payload, dict):
        raise InvalidRequest("Request body must be a JSON object.")
    try:
        return ChatRequest.model_validate(payload)
    except ValidationError as exc:
        raise InvalidRequest("Malformed chat request.") from exc


@app.post("/api/chat")
async def chat(
    request: Request,
    orchestrator: ChatOrchestrator = Depends(get_orchestrator),
) -> Dict[str, Any]:
    try:
        req = await _parse_chat_request(request)
        result = await run_in_threadpool(
            orchestrator.handle_turn,
            req.conversation_id,
            req.message,
            req.image_url,
        )
    except ChatError as exc:
        logger.warning("Chat turn failed (%s): %s", type(exc).__name__, exc)
        return JSONResponse(status_code=exc.status_code, content=exc.to_body())
    except Exception as e:
        logger.exception("Chat processing failed: %s", e)
        return JSONResponse(
            status_code=500,
            content={"error": "An error occurred while processing your request."},
        )

    return {"reply": result.reply, "conversationId": result.conversation_id}


@app.get("/health")
def health():
    return {"status": "ok"}


ensure_upload_dir(settings)
app.mount("/", StaticFiles(directory=settings.public_dir, html=True), name="public")


def run() -> None:
    uvicorn.run("app.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
