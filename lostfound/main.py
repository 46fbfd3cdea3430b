# main.py
"""
FastAPI application for the lost-and-found import backend.

Run with ``uvicorn lostfound.main:app`` or ``lostfound serve``.
"""

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from lostfound import __version__
from lostfound.log_config import configure_logging
from lostfound.routes import router
from lostfound.settings import Settings, get_settings

logger = logging.getLogger(__name__)

METHOD_NOT_ALLOWED_MESSAGE = "Method not allowed. Use POST."


def _error_response(status_code: int, message, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render every HTTP error as {"error": message}"""
    message = METHOD_NOT_ALLOWED_MESSAGE if exc.status_code == 405 else exc.detail
    return _error_response(exc.status_code, message, getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed request bodies are client errors (400), not 422"""
    errors = exc.errors()
    if any(e.get("type") == "json_invalid" for e in errors):
        message = "Invalid JSON in request body"
    else:
        details = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg')}" for e in errors
        )
        message = f"Invalid request body: {details}"
    logger.warning("Rejected request to %s: %s", request.url.path, message)
    return _error_response(400, message)


# ============================================
# APPLICATION FACTORY
# ============================================

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI app with CORS, error handlers and routes"""
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    app = FastAPI(
        title="Lost & Found Import API",
        version=__version__,
        description="Normalizes found-item CSV exports with a language model and scores every field.",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        max_age=86400,
    )

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    app.include_router(router)

    @app.get("/health")
    async def health():
        """Liveness and configuration state"""
        return {
            "status": "ok",
            "version": __version__,
            "model": settings.OPENAI_MODEL,
            "api_key_configured": settings.has_api_key,
        }

    logger.info("Import API ready (model %s)", settings.OPENAI_MODEL)
    return app


app = create_app()


def run(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Serve the app with uvicorn"""
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=host or settings.HOST, port=port or settings.PORT)
