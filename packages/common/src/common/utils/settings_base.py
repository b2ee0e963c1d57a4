from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseSettings(BaseModel):
    """
    Root settings model for service configuration schemas.
    Unknown keys in the YAML files are rejected.
    """

    model_config = ConfigDict(extra="forbid")
