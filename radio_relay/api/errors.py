from fastapi import Request
from fastapi.responses import JSONResponse, PlainTextResponse
from loguru import logger

from radio_relay.api.radio import CORS_HEADERS
from radio_relay.shared.api.utils import ApiFailure, make_response
from radio_relay.utils.app_errors import AppError, AppErrorCode, UpstreamUnavailable


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """
    Custom exception handler for AppError.
    Converts AppError to ApiFailure and returns via make_response.
    """
    # Log with the caller info captured when AppError was raised
    log_msg = f"{exc.errcode} {exc.erresid} msg={exc.errmesg} caller={exc.caller_info}"
    if exc.errcode == AppErrorCode.E_INTERNAL_ERROR.value:
        logger.error(log_msg)
    else:
        logger.warning(log_msg)

    failure = ApiFailure(errcode=exc.errcode, errmesg=exc.errmesg, erresid=exc.erresid)
    return make_response(failure, status_code=exc.status_code)


async def upstream_unavailable_handler(request: Request, exc: UpstreamUnavailable) -> PlainTextResponse:
    """
    Render upstream failures as a short plain-text 500.
    No audio bytes have been sent at this point.
    """
    logger.warning(
        f"{exc.errcode} {exc.erresid} path={request.url.path} "
        f"upstream_status={exc.upstream_status} msg={exc.errmesg} caller={exc.caller_info}"
    )
    return PlainTextResponse(
        f"Error fetching radio stream: {exc.errmesg}",
        status_code=exc.status_code,
        headers=CORS_HEADERS,
    )
