import logging
import time
from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse

from .config import Config
from .errors import ConfigNotLoadedError


logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def cors_allowed_origins() -> list[str]:
    return Config.allowed_origins()


def _request_id(request: Request) -> str:
    return request.headers.get(REQUEST_ID_HEADER) or f"{int(time.time() * 1000)}-{id(request)}"


def _apply_cors_headers(request: Request, response: JSONResponse) -> None:
    origin = request.headers.get("origin")
    if origin and origin in cors_allowed_origins():
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "*"


async def log_requests(request: Request, call_next: Callable):
    start_time = time.time()
    request_id = _request_id(request)

    try:
        response = await call_next(request)
    except Exception as e:
        process_time = time.time() - start_time
        logger.error(f"[{request_id}] {request.method} {request.url.path} - ERROR: {str(e)} - {process_time:.2f}s")
        raise

    process_time = time.time() - start_time
    response.headers[REQUEST_ID_HEADER] = request_id
    if response.status_code == 303:
        logger.info(f"[{request_id}] {request.method} {request.url.path} - redirected to {response.headers.get('location')}")
    elif process_time > 1.0 or response.status_code >= 400:
        logger.info(f"[{request_id}] {request.method} {request.url.path} - {response.status_code} - {process_time:.2f}s")
    return response


async def global_exception_handler(request: Request, exc: Exception):
    request_id = _request_id(request)
    if isinstance(exc, ConfigNotLoadedError):
        logger.error(f"[{request_id}] {request.method} {request.url.path} served before properties were loaded")
        response = JSONResponse(status_code=503, content={"detail": "Properties not loaded"})
    else:
        logger.error(f"[{request_id}] Unhandled exception in {request.method} {request.url.path}: {str(exc)}", exc_info=True)
        response = JSONResponse(status_code=500, content={"detail": "Internal server error"})

    response.headers[REQUEST_ID_HEADER] = request_id
    _apply_cors_headers(request, response)
    return response
