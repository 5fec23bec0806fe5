# src/api/models.py — v2
"""API-level models returned by the service facade."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

HTTP_OK = 200
HTTP_ACCEPTED = 202
HTTP_BAD_REQUEST = 400
HTTP_NOT_FOUND = 404
HTTP_SERVER_ERROR = 500
HTTP_BAD_GATEWAY = 502
HTTP_UNAVAILABLE = 503


class ApiResponse(BaseModel):
    """Framework-neutral HTTP response: a status code and a JSON body."""

    status_code: int = HTTP_OK
    body: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300
