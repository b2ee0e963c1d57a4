from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ApiResult(BaseModel, Generic[T]):
    """
    Standard envelope for ledger API responses.
    """

    data: T
    message: str = Field(min_length=1)
    meta: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="forbid")


class ErrorResponse(BaseModel):
    error: str
    message: str
    request_id: str | None = None
