import time
import traceback
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse
from granian import Granian
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

from radio_relay.api.errors import app_error_handler, upstream_unavailable_handler
from radio_relay.api.radio import router as radio_router
from radio_relay.app_config import get_app_environ_config
from radio_relay.shared.api.errors import E_INTERNAL
from radio_relay.shared.api.health import router as health_router
from radio_relay.shared.api.utils import (
    api_failure,
    init_logger,
    log_routes,
    validation_exception_handler,
)
from radio_relay.utils.app_errors import AppError, UpstreamUnavailable


class HTTPLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):  # type: ignore
        start_time = time.time()
        request_id = str(uuid.uuid4())[:8]

        logger.info(f"[{request_id}] {request.method} {request.url.path}")

        try:
            response = await call_next(request)

            # For streamed audio this is the time to first byte, not the session length
            process_time = (time.time() - start_time) * 1000

            logger.info(
                f"[{request_id}] {request.method} {request.url.path} - "
                f"Status: {response.status_code} - "
                f"Duration: {process_time:.2f}ms"
            )

            return response

        except Exception as exc:
            process_time = (time.time() - start_time) * 1000

            logger.error(
                f"[{request_id}] Unhandled exception in {request.method} {request.url.path} - "
                f"Duration: {process_time:.2f}ms - "
                f"Error: {type(exc).__name__}: {exc}\n"
                f"Traceback:\n{traceback.format_exc()}"
            )

            failure = api_failure(
                errcode=E_INTERNAL,
                errmesg=f"Internal server error (request_id: {request_id})",
            )
            return ORJSONResponse(
                status_code=500,
                content=failure.model_dump(),
            )


@asynccontextmanager
async def lifespan(server: FastAPI):
    init_logger()

    app_config = get_app_environ_config()
    logger.info("Application startup...")
    logger.info("Relaying upstream stream {}", app_config.UPSTREAM_STREAM_URL)

    log_routes(server)

    yield

    logger.info("Application shutdown...")


def create_app() -> FastAPI:
    server = FastAPI(
        version="1.0",
        title="Radio Relay API",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )

    server.add_middleware(HTTPLoggingMiddleware)

    server.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore
    server.add_exception_handler(AppError, app_error_handler)  # type: ignore
    server.add_exception_handler(UpstreamUnavailable, upstream_unavailable_handler)  # type: ignore

    server.include_router(health_router)
    server.include_router(radio_router)

    return server


app = create_app()


def build_granian_kwargs():
    app_config = get_app_environ_config()
    kwargs = {
        "interface": "asgi",
        "address": app_config.API_HOST,
        "port": app_config.API_PORT,
        "workers": app_config.API_WORKERS,
        "reload": app_config.DEBUG,
    }

    return kwargs


def run():
    granian_kwargs = build_granian_kwargs()
    Granian("radio_relay.main:app", **granian_kwargs).serve()


if __name__ == "__main__":
    run()
