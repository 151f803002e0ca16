"""Legacy single-workspace persistence format."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LegacyWorkspaceState(BaseModel):
    """The ``state`` section written by the single-workspace model."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    open_workspaces: list[str] = Field(default_factory=list, alias="openWorkspaces")

    @field_validator("open_workspaces", mode="before")
    @classmethod
    def _keep_paths(cls, value: Any) -> list[str]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, str) and item.strip()]


class LegacyWorkspaceBlob(BaseModel):
    """Versioned envelope around the legacy workspace state."""

    model_config = ConfigDict(extra="ignore")

    version: int = 0
    state: LegacyWorkspaceState = Field(default_factory=LegacyWorkspaceState)

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, value: Any) -> int:
        return value if isinstance(value, int) and not isinstance(value, bool) else 0

    @field_validator("state", mode="before")
    @classmethod
    def _coerce_state(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else {}
