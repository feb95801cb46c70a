"""
Domain errors and application-level exception handlers.

Domain errors are ``HTTPException`` subclasses so services can raise them
directly, the same way they raise plain ``HTTPException``.
"""

from __future__ import annotations

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

log = structlog.get_logger()


class InvalidPlanError(HTTPException):
    def __init__(self, plan: str, valid_plans: list[str]):
        super().__init__(
            status_code=400,
            detail=f"Invalid plan: {plan}. Must be one of: {', '.join(valid_plans)}",
        )
        self.plan = plan


class InvitationNotFound(HTTPException):
    def __init__(self):
        super().__init__(status_code=404, detail="Invalid or expired invitation link")


class InvitationExpired(HTTPException):
    def __init__(self):
        super().__init__(status_code=410, detail="This invitation has expired")


class InvitationAlreadyAccepted(HTTPException):
    def __init__(self):
        super().__init__(status_code=409, detail="This invitation has already been accepted")


class InvitationEmailMismatch(HTTPException):
    def __init__(self, invited_email: str, user_email: str | None):
        super().__init__(
            status_code=403,
            detail=(
                f"This invitation was sent to {invited_email}, "
                f"but you are logged in as {user_email}"
            ),
        )


def register_exception_handlers(app: FastAPI) -> None:
    """Turn unexpected failures into a JSON 500 after logging them."""

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        log.error(
            "request.unhandled_error",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
