"""Custom exceptions and error handling for RFC 7807 Problem Details.

Every error body also carries an ``error`` key holding the human readable
detail, which is what the web client displays.
"""

from http import HTTPStatus
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


class AppError(Exception):
    """Base application error with RFC 7807 Problem Details support."""

    def __init__(
        self,
        title: str,
        detail: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_type: str | None = None,
        instance: str | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.title = title
        self.detail = detail
        self.status_code = status_code
        self.error_type = error_type or f"about:blank#{status_code}"
        self.instance = instance
        self.extra = extra or {}
        super().__init__(detail)

    def to_problem_detail(self) -> dict[str, Any]:
        """Convert to RFC 7807 Problem Details format."""
        problem = {
            "type": self.error_type,
            "title": self.title,
            "status": self.status_code,
            "detail": self.detail,
            "error": self.detail,
        }
        if self.instance:
            problem["instance"] = self.instance
        problem.update(self.extra)
        return problem


class NotFoundError(AppError):
    """Resource not found, or not visible to the caller.

    Ownership, assignment and consent failures are all reported through this
    error so that other users' records cannot be probed for existence.
    """

    def __init__(
        self,
        resource: str,
        resource_id: str | None = None,
        detail: str | None = None,
    ) -> None:
        if detail is None:
            detail = f"{resource} not found"
            if resource_id:
                detail = f"{resource} with id '{resource_id}' not found"
        super().__init__(
            title="Not Found",
            detail=detail,
            status_code=status.HTTP_404_NOT_FOUND,
            error_type="about:blank#not-found",
        )


class ValidationError(AppError):
    """Validation error."""

    def __init__(
        self,
        detail: str,
        errors: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(
            title="Validation Error",
            detail=detail,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_type="about:blank#validation-error",
            extra={"errors": errors or []},
        )


class UnauthorizedError(AppError):
    """Authentication required error."""

    def __init__(self, detail: str = "Unauthorized") -> None:
        super().__init__(
            title="Unauthorized",
            detail=detail,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_type="about:blank#unauthorized",
        )


class ForbiddenError(AppError):
    """Caller is authenticated but holds the wrong role.

    Reported with 401, the same status as a missing credential.
    """

    def __init__(self, detail: str = "Forbidden") -> None:
        super().__init__(
            title="Forbidden",
            detail=detail,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_type="about:blank#forbidden",
        )


class ConsentAlreadyApprovedError(AppError):
    """A consent request was made for a chat that is already shared."""

    def __init__(self, consent: dict[str, Any] | None = None) -> None:
        extra = {"consent": consent} if consent is not None else {}
        super().__init__(
            title="Already Approved",
            detail="Consent already approved for this chat",
            status_code=status.HTTP_400_BAD_REQUEST,
            error_type="about:blank#consent-already-approved",
            extra=extra,
        )


class CollaboratorError(AppError):
    """An upstream AI call failed; the request may be retried."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            title="Upstream Failure",
            detail=detail,
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_type="about:blank#collaborator-failure",
            extra={"retryable": True},
        )


class RateLimitError(AppError):
    """Rate limit exceeded error."""

    def __init__(
        self,
        detail: str = "Rate limit exceeded",
        retry_after: int | None = None,
    ) -> None:
        extra = {}
        if retry_after:
            extra["retry_after"] = retry_after
        super().__init__(
            title="Too Many Requests",
            detail=detail,
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            error_type="about:blank#rate-limit",
            extra=extra,
        )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:  # noqa: ARG001
    """Handle AppError exceptions."""
    headers = None
    if "retry_after" in exc.extra:
        headers = {"Retry-After": str(exc.extra["retry_after"])}
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_problem_detail(),
        media_type="application/problem+json",
        headers=headers,
    )


async def request_validation_handler(
    request: Request,  # noqa: ARG001
    exc: RequestValidationError,
) -> JSONResponse:
    """Report malformed or missing request fields as 400."""
    errors = exc.errors()
    fields = [
        ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        for err in errors
    ]
    detail = "Invalid request"
    if fields:
        detail = f"Invalid or missing fields: {', '.join(f for f in fields if f)}"
    error = ValidationError(
        detail=detail,
        errors=[{"loc": list(err.get("loc", ())), "msg": err.get("msg")} for err in errors],
    )
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_problem_detail(),
        media_type="application/problem+json",
    )


async def http_exception_handler(
    request: Request,  # noqa: ARG001
    exc: StarletteHTTPException,
) -> JSONResponse:
    """Render framework HTTP errors (unknown route, wrong method) as problems."""
    try:
        title = HTTPStatus(exc.status_code).phrase
    except ValueError:
        title = "Error"
    error = AppError(title=title, detail=str(exc.detail), status_code=exc.status_code)
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_problem_detail(),
        media_type="application/problem+json",
        headers=exc.headers,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # noqa: ARG001
    """Handle unexpected exceptions."""
    error = AppError(
        title="Internal Server Error",
        detail="An unexpected error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    return JSONResponse(
        status_code=error.status_code,
        content=error.to_problem_detail(),
        media_type="application/problem+json",
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with the FastAPI application."""
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, request_validation_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, generic_exception_handler)
