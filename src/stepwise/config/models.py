from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Config models map the YAML script file to typed structures; run settings are validated later
# against RunSettings so per-step options and base settings share one schema.


class StepDecl(BaseModel):
    # One entry of the ordered steps list; "use" selects the registry key and defaults to the name.
    model_config = ConfigDict(extra="forbid")
    name: str = Field(min_length=1)
    use: str | None = None
    once: bool = False
    options: dict[str, Any] = Field(default_factory=dict)


class DataConfig(BaseModel):
    # Inline records fed one per iteration.
    model_config = ConfigDict(extra="forbid")
    records: list[dict[str, Any]] = Field(default_factory=list)
    circular: bool = False


class ScriptConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    version: int = 1
    settings: dict[str, Any] = Field(default_factory=dict)
    data: DataConfig | None = None
    steps: list[StepDecl] = Field(min_length=1)
