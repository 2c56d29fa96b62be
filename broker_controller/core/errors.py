from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from broker_controller.core.exceptions import (
    ConflictError,
    ControllerError,
    NotFoundError,
    ProblemDetail,
    ProblemDetailException,
)
from broker_controller.core.security import TokenValidationError

_PROBLEM_JSON = "application/problem+json"


def _problem(status: int, title: str, detail: str) -> JSONResponse:
    body = ProblemDetail(status=status, title=title, detail=detail)
    return JSONResponse(status_code=status, content=body.model_dump(mode="json"), media_type=_PROBLEM_JSON)


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ProblemDetailException)
    async def problem_handler(_: Request, exc: ProblemDetailException):
        return JSONResponse(
            status_code=exc.problem.status,
            content=exc.problem.model_dump(mode="json"),
            media_type=_PROBLEM_JSON,
        )

    @app.exception_handler(TokenValidationError)
    async def token_error_handler(_: Request, exc: TokenValidationError):
        return _problem(401, "Unauthorized", str(exc))

    @app.exception_handler(NotFoundError)
    async def not_found_handler(_: Request, exc: NotFoundError):
        return _problem(404, "Not Found", str(exc))

    @app.exception_handler(ConflictError)
    async def conflict_handler(_: Request, exc: ConflictError):
        return _problem(409, "Conflict", str(exc))

    # Catch-all for reconcile failures
    @app.exception_handler(ControllerError)
    async def controller_error_handler(_: Request, exc: ControllerError):
        return _problem(500, type(exc).__name__, str(exc))
