import logging
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from app.domain.exceptions import AppError, NotFound, Conflict, Unauthorized, InvalidInput, Forbidden, \
    InvalidState, AlreadyUsed, MalformedInput, UpstreamError
from app.core.ctx import REQUEST_ID_CTX

MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger("app.api")

# Most specific class wins, resolved along the exception's MRO
_PROBLEMS: dict[type[AppError], tuple[int, str]] = {
    NotFound: (status.HTTP_404_NOT_FOUND, "Not Found"),
    Unauthorized: (status.HTTP_401_UNAUTHORIZED, "Unauthorized"),
    Forbidden: (status.HTTP_403_FORBIDDEN, "Forbidden"),
    Conflict: (status.HTTP_409_CONFLICT, "Conflict"),
    AlreadyUsed: (status.HTTP_409_CONFLICT, "Already Used"),
    InvalidState: (status.HTTP_400_BAD_REQUEST, "Invalid State"),
    MalformedInput: (status.HTTP_400_BAD_REQUEST, "Malformed Input"),
    InvalidInput: (status.HTTP_400_BAD_REQUEST, "Bad Request"),
    UpstreamError: (status.HTTP_502_BAD_GATEWAY, "Bad Gateway"),
}
_DEFAULT_PROBLEM = (status.HTTP_400_BAD_REQUEST, "Application Error")

# Server-side failures never echo their message or context to the caller
_OPAQUE: tuple[type[AppError], ...] = (UpstreamError,)


def _problem_for(exc: AppError) -> tuple[int, str]:
    for cls in type(exc).mro():
        if cls in _PROBLEMS:
            return _PROBLEMS[cls]
    return _DEFAULT_PROBLEM


def _bearer_challenge(description: str | None) -> dict[str, str]:
    value = 'Bearer realm="api", error="invalid_token"'
    if description:
        value += f', error_description="{description}"'
    return {"WWW-Authenticate": value}


def _problem(
    request: Request,
    *,
    http_status: int,
    title: str,
    detail: str | None = None,
    context: dict | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = {
        "status": http_status,
        "title": title,
        "detail": detail,
        "instance": str(request.url),
    }
    req_id = REQUEST_ID_CTX.get()
    if req_id:
        body["trace_id"] = req_id
    if context:
        body["context"] = context
    return JSONResponse(status_code=http_status, content=body, media_type=MEDIA_TYPE, headers=headers)


def register_error_handler(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error_handler(request: Request, exc: AppError):
        http_status, title = _problem_for(exc)

        if isinstance(exc, _OPAQUE):
            logger.error("%s: %s", type(exc).__name__, exc, extra={"context": exc.ctx})
            return _problem(request, http_status=http_status, title=title)

        detail = str(exc) or None
        headers = _bearer_challenge(detail) if isinstance(exc, Unauthorized) else None
        return _problem(
            request,
            http_status=http_status,
            title=title,
            detail=detail,
            context=exc.ctx or None,
            headers=headers,
        )
