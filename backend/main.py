"""FastAPI application entry point and configuration."""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.api.agent_router import router as agent_router
from backend.config import settings
from backend.errors import ParseError, ServiceError, UnregisteredAgentError

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="Routes learner requests to specialized learning agents",
    version="0.1.0",
    debug=settings.debug,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(agent_router)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """The model could not be reached."""
    logger.warning("%s %s: generation service failed: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"error": "service_unavailable", "detail": str(exc)})


@app.exception_handler(ParseError)
async def parse_error_handler(request: Request, exc: ParseError) -> JSONResponse:
    """The model replied, but not in the expected shape."""
    logger.warning("%s %s: malformed model reply: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=502,
        content={"error": "malformed_model_reply", "detail": str(exc), "snippet": exc.snippet},
    )


@app.exception_handler(UnregisteredAgentError)
async def unregistered_agent_handler(request: Request, exc: UnregisteredAgentError) -> JSONResponse:
    logger.error("%s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"error": "agent_unavailable", "detail": str(exc)})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": "invalid_request", "detail": str(exc)})


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Report liveness."""
    return {"status": "ok"}
