from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_ALLOWED_MODULES = ("re", "string", "textwrap", "unicodedata", "math", "json")


class PluginsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    directory: str = "plugins"
    suffixes: list[str] = Field(default_factory=lambda: [".py"])
    recursive: bool = True

    @field_validator("suffixes")
    @classmethod
    def _normalize_suffixes(cls, value: list[str]) -> list[str]:
        normalized = []
        for suffix in value:
            suffix = suffix.strip().lower()
            if not suffix:
                raise ValueError("suffixes must be non-empty strings")
            normalized.append(suffix if suffix.startswith(".") else f".{suffix}")
        return normalized


class RuntimeConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    entry_point: str = Field(default="main", min_length=1)
    input_binding: str = Field(default="text_input", min_length=1)
    timeout_s: float | None = Field(default=5.0, gt=0)
    allowed_modules: list[str] = Field(default_factory=lambda: list(DEFAULT_ALLOWED_MODULES))

    @field_validator("entry_point", "input_binding")
    @classmethod
    def _require_identifier(cls, value: str) -> str:
        if not value.isidentifier():
            raise ValueError(f"'{value}' is not a valid identifier")
        return value


class HostBindingsConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    expose_defaults: bool = True


class HostConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    plugins: PluginsConfig = Field(default_factory=PluginsConfig)
    runtime: RuntimeConfig = Field(default_factory=RuntimeConfig)
    host: HostBindingsConfig = Field(default_factory=HostBindingsConfig)

    @field_validator("plugins", "runtime", "host", mode="before")
    @classmethod
    def _coerce_none_section(cls, value: Any) -> Any:
        # An empty YAML section ("runtime:") parses as None
        if value is None:
            return {}
        return value
