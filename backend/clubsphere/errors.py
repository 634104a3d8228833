"""Domain errors and the handlers that render them as ``{success, message}``."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


class ClubSphereError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(ClubSphereError):
    status_code = 400


class NotFound(ClubSphereError):
    status_code = 404


class Conflict(ClubSphereError):
    status_code = 400


class Forbidden(ClubSphereError):
    status_code = 403


class UpstreamFailure(ClubSphereError):
    status_code = 502


def failure(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


def install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ClubSphereError)
    async def domain_exc_handler(request: Request, exc: ClubSphereError):
        return failure(exc.status_code, exc.message)

    @app.exception_handler(StarletteHTTPException)
    async def http_exc_handler(request: Request, exc: StarletteHTTPException):
        return failure(exc.status_code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exc_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = f"{field}: {first.get('msg', 'invalid request')}" if field else "Invalid request"
        return failure(400, message)
