from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class ApiMeta(BaseModel):
    request_id: str | None = None

    model_config = ConfigDict(extra="forbid")


class ApiErrorEnvelope(BaseModel):
    error: str
    message: str
    detail: Any | None = None
    status: int
    hint: str | None = None
    meta: ApiMeta

    model_config = ConfigDict(extra="forbid")
