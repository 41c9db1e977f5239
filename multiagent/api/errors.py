"""Translate service errors into JSON ``{"error": ...}`` responses."""
from __future__ import annotations

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from multiagent.core.errors import OrchestratorError
from multiagent.core.logging import get_logger

logger = get_logger(__name__)

# Friendlier messages for missing body fields, keyed by wire name.
REQUIRED_FIELD_MESSAGES = {
    "workflowName": "Workflow name is required",
    "agentName": "Agent name is required",
    "task": "Task object is required",
}


def describe_validation_error(exc: RequestValidationError) -> str:
    for error in exc.errors():
        if error.get("type") == "json_invalid":
            return "Request body must be valid JSON"
        loc = [part for part in error.get("loc", ()) if part != "body"]
        if not loc:
            return "Request body must be a JSON object"
        field = str(loc[0])
        if field in REQUIRED_FIELD_MESSAGES:
            return REQUIRED_FIELD_MESSAGES[field]
        return f"{'.'.join(str(part) for part in loc)}: {error.get('msg', 'invalid value')}"
    return "Invalid request"


def register_exception_handlers(app: FastAPI, *, hide_internal_errors: bool = False) -> None:
    @app.exception_handler(OrchestratorError)
    async def orchestrator_error_handler(request: Request, exc: OrchestratorError) -> JSONResponse:
        log = logger.error if exc.status_code >= 500 else logger.warning
        log("request_failed", path=request.url.path, status_code=exc.status_code, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            logger.warning("route_not_found", method=request.method, path=request.url.path)
            message = "Not found"
        else:
            message = str(exc.detail)
        return JSONResponse(
            status_code=exc.status_code, content={"error": message}, headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": describe_validation_error(exc)},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_error", path=request.url.path, method=request.method)
        message = "Internal server error" if hide_internal_errors else str(exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"error": message}
        )
