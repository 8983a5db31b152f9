from __future__ import annotations

from http import HTTPStatus
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


def _success_code(status_code: int) -> str:
    mapping = {
        200: "ok",
        201: "created",
        202: "accepted",
    }
    return mapping.get(status_code, "ok")


def _success_message(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).phrase
    except ValueError:
        return "Success"


class Envelope(BaseModel, Generic[T]):
    """Uniform response body; errors use the same shape with ``data`` null."""

    code: str
    message: str
    data: T | None = None
    details: dict[str, Any] = Field(default_factory=dict)


def envelope(data: Any, status_code: int = 200, *, message: str | None = None) -> dict[str, Any]:
    return {
        "code": _success_code(status_code),
        "message": message or _success_message(status_code),
        "data": data,
        "details": {},
    }
