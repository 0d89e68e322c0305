"""Error kinds returned by request handlers and their HTTP rendering.

Handlers in ``gallery_api.services`` return either their success model or a
:class:`HandlerError`. Routes turn both into a ``JSONResponse`` through
:func:`render`, and :func:`run_handler` converts any unexpected collaborator
exception into an ``INTERNAL`` error after logging it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

log = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ErrorKind(str, Enum):
    AUTH = "auth"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.AUTH: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


@dataclass(frozen=True)
class HandlerError:
    kind: ErrorKind
    message: str

    def to_response(self) -> JSONResponse:
        return error_response(self.kind.status_code, self.message)


AUTH_REQUIRED = HandlerError(ErrorKind.AUTH, "Authentication required")
USER_NOT_FOUND = HandlerError(ErrorKind.NOT_FOUND, "User not found")
INTERNAL_ERROR = HandlerError(ErrorKind.INTERNAL, "Internal server error")
INVALID_BODY = HandlerError(ErrorKind.VALIDATION, "Invalid request body")


def invalid(message: str) -> HandlerError:
    return HandlerError(ErrorKind.VALIDATION, message)


def parse_body(model: type[ModelT], body: Any) -> ModelT | HandlerError:
    if isinstance(body, model):
        return body
    try:
        return model.model_validate(body if body is not None else {})
    except ValidationError as exc:
        log.debug("Rejected %s body: %s", model.__name__, exc.errors())
        return INVALID_BODY


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def render(result: BaseModel | HandlerError) -> JSONResponse:
    if isinstance(result, HandlerError):
        return result.to_response()
    return JSONResponse(content=result.model_dump(mode="json", by_alias=True, exclude_unset=True))


def run_handler(operation: str, handler: Callable[..., Any], *args: Any, **kwargs: Any) -> JSONResponse:
    try:
        result = handler(*args, **kwargs)
    except Exception:
        log.exception("%s failed", operation)
        result = INTERNAL_ERROR
    return render(result)
