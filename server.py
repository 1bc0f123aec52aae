import json
import math
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from classes import app_config
from classes.app_config import logger
from classes.auth_context import resolve_user
from classes.backend import Backend, ConversationNotFound
from classes.chat_store import ChatStore
from classes.rate_limiter import RateLimitDecision, get_rate_limit_key
from classes.request_gate import (
    API_LIMITER,
    AUTH_LIMITER,
    MODEL_LIMITER,
    RequestGate,
    build_request_gate,
)
from classes.response_pipeline import ReasoningServiceError, ResponsePipeline, generate_thinking_status

MODEL_REQUEST_TYPES = {"send_message"}


class Event(BaseModel):
    type: str
    payload: Optional[Any] = None


def _build_default_backend(gate: RequestGate) -> Backend:
    from classes.db_connection import create_session_factory
    from classes.llm_client import build_chat_llm

    store = ChatStore(create_session_factory())
    store.create_schema()
    return Backend(store=store, gate=gate, pipeline=ResponsePipeline(build_chat_llm()))


def _client_ip(request: Request) -> str | None:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def _enforce(decision: RateLimitDecision) -> None:
    if decision.allowed:
        return
    retry_after = max(1, math.ceil(decision.reset_in))
    raise HTTPException(
        status_code=429,
        detail=f"Too many requests. Try again in {retry_after}s.",
        headers={"Retry-After": str(retry_after), "X-RateLimit-Remaining": "0"},
    )


def create_app(backend: Backend | None = None, gate: RequestGate | None = None) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_gate = gate or (backend.gate if backend else build_request_gate())
        app.state.gate = app_gate
        app.state.backend = backend or _build_default_backend(app_gate)
        app_gate.start_cleanup(app_config.RATE_LIMIT_SWEEP_SECONDS)
        logger.info("[Server] ready")
        try:
            yield
        finally:
            await app_gate.stop_cleanup()

    app = FastAPI(title="Aether", lifespan=lifespan)

    # CORS configuration
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Allow all origins for dev
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    async def current_user(request: Request) -> dict | None:
        token = request.cookies.get(app_config.COOKIE_NAME)
        backend_: Backend = request.app.state.backend
        return await resolve_user(token, request.app.state.gate, backend_.store)

    async def require_user(user: dict | None = Depends(current_user)) -> dict:
        if user is None:
            raise HTTPException(status_code=401, detail="Please login")
        return user

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    @app.get("/auth/me")
    async def auth_me(request: Request):
        _enforce(request.app.state.gate.is_allowed(AUTH_LIMITER, get_rate_limit_key(ip=_client_ip(request))))
        return await current_user(request)

    @app.post("/auth/logout")
    async def auth_logout(response: Response):
        response.delete_cookie(app_config.COOKIE_NAME, path="/")
        return {"success": True}

    @app.post("/events")
    async def send_event(event: Event, request: Request, user: dict = Depends(require_user)):
        app_gate: RequestGate = request.app.state.gate
        key = get_rate_limit_key(user_id=user["id"], ip=_client_ip(request))

        _enforce(app_gate.is_allowed(API_LIMITER, key))
        if event.type in MODEL_REQUEST_TYPES:
            _enforce(app_gate.is_allowed(MODEL_LIMITER, key))

        try:
            return await request.app.state.backend.process_request(
                user, {"type": event.type, "payload": event.payload}
            )
        except ConversationNotFound as e:
            raise HTTPException(status_code=404, detail=str(e))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except ReasoningServiceError as e:
            raise HTTPException(status_code=502, detail=str(e))

    @app.get("/chat/thinking")
    async def thinking_status(user: dict = Depends(require_user)):
        async def _stream():
            async for status in generate_thinking_status(app_config.THINKING_STAGE_DELAY):
                yield json.dumps(status) + "\n"

        return StreamingResponse(_stream(), media_type="application/x-ndjson")

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
