"""FastAPI application and routes for nimbridge."""

import json
import logging
import time
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError
from starlette.background import BackgroundTask
from starlette.exceptions import HTTPException as StarletteHTTPException

from .backends import BackendClient
from .config import ProxySettings, configure_logging
from .errors import (
    AuthConfigError,
    InputValidationError,
    InternalError,
    NotFoundError,
    ProxyError,
)
from .models import ChatCompletionRequest, ModelCard, ModelList
from .streaming import StreamRelay
from .transformer import transform_response
from .translator import build_backend_request

logger = logging.getLogger(__name__)

SERVICE_NAME = "OpenAI to NVIDIA NIM Proxy"


def error_response(error: ProxyError) -> Response:
    return JSONResponse(content=error.to_dict(), status_code=error.status_code)


async def parse_chat_request(request: Request) -> ChatCompletionRequest:
    """Decode and validate the body of a chat completion request."""
    body = await request.body()
    try:
        data = json.loads(body)
    except ValueError:
        raise InputValidationError("Invalid JSON in request body")

    if not isinstance(data, dict):
        raise InputValidationError()

    try:
        return ChatCompletionRequest.model_validate(data)
    except ValidationError as e:
        logger.info(f"Rejected chat request: {e.error_count()} validation error(s)")
        raise InputValidationError()


def create_app(settings: ProxySettings, backend_client: Optional[BackendClient] = None) -> FastAPI:
    """
    Build the proxy application.

    Args:
        settings: Process-wide settings, fixed for the lifetime of the app
        backend_client: Client used for backend calls; built from settings if omitted
    """
    configure_logging(settings)

    app = FastAPI(title="nimbridge")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.backend = backend_client or BackendClient(settings)

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError):
        return error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            return error_response(
                NotFoundError(f"Endpoint {request.method} {request.url.path} not found")
            )
        return error_response(
            ProxyError(
                str(exc.detail),
                status_code=exc.status_code,
                error_type="invalid_request_error",
            )
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.url.path}: {str(exc)}")
        return error_response(InternalError())

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "reasoning_display": settings.show_reasoning,
            "thinking_mode": settings.thinking_mode,
            "api_configured": settings.api_configured,
        }

    @app.get("/")
    async def root():
        return {
            "service": SERVICE_NAME,
            "endpoints": {
                "health": "/health",
                "models": "/v1/models",
                "chat": "/v1/chat/completions",
            },
            "config": {
                "reasoning_display": settings.show_reasoning,
                "thinking_mode": settings.thinking_mode,
            },
        }

    @app.get("/v1/models")
    async def list_models():
        """List the caller-facing aliases (native backend names are omitted)."""
        created = int(time.time())
        models = ModelList(
            data=[
                ModelCard(id=name, created=created)
                for name in settings.model_aliases
                if "/" not in name
            ]
        )
        return models.model_dump()

    @app.get("/v1/models/{model_id:path}")
    async def get_model(model_id: str):
        return ModelCard(id=model_id, created=int(time.time())).model_dump()

    @app.post("/v1/chat/completions")
    async def chat_completions(request: Request) -> Response:
        """
        Translate a chat completion request for the backend and relay the
        answer, either as one JSON body or as an event stream.
        """
        if not settings.api_configured:
            raise AuthConfigError()

        chat_request = await parse_chat_request(request)
        payload = build_backend_request(chat_request, settings)
        backend: BackendClient = request.app.state.backend

        logger.info(
            f"{'STREAM' if payload['stream'] else 'REQUEST'} "
            f"{chat_request.model} -> {payload['model']}"
        )

        try:
            if payload["stream"]:
                upstream = await backend.open_stream(payload)
                relay = StreamRelay(settings)
                return StreamingResponse(
                    relay.relay(upstream, request.is_disconnected),
                    media_type="text/event-stream",
                    headers={"Cache-Control": "no-cache"},
                    background=BackgroundTask(upstream.aclose),
                )

            backend_response = await backend.complete(payload)
            response = transform_response(
                backend_response, chat_request.model, settings.show_reasoning
            )
            return JSONResponse(content=response.model_dump(exclude_none=True))
        except ProxyError:
            raise
        except Exception as e:
            logger.error(f"Proxy error: {str(e)}")
            raise InternalError() from e

    return app
