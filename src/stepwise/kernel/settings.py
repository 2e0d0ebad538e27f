from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from typing import Any, Protocol, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError


class InvalidSettingsError(ValueError):
    # Raised for unknown setting keys or values the settings model rejects.
    pass


class RunSettings(BaseModel):
    # Run settings are an immutable value object; overlays always produce a new instance.
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str = "untitled"
    description: str = ""
    loop_count: int = Field(default=1, ge=-1, validation_alias=AliasChoices("loop_count", "loopCount"))
    incognito: bool = False
    clear_cache: bool = Field(default=False, validation_alias=AliasChoices("clear_cache", "clearCache"))
    clear_cookies: bool = Field(default=False, validation_alias=AliasChoices("clear_cookies", "clearCookies"))
    disable_cache: bool = Field(default=False, validation_alias=AliasChoices("disable_cache", "disableCache"))
    device: str | None = None
    user_agent: str | None = Field(default=None, validation_alias=AliasChoices("user_agent", "userAgent"))
    extra_http_headers: dict[str, str] | None = Field(
        default=None,
        validation_alias=AliasChoices("extra_http_headers", "extraHTTPHeaders"),
    )
    blocked_domains: tuple[str, ...] = Field(
        default=(),
        validation_alias=AliasChoices("blocked_domains", "blockedDomains"),
    )
    # Delays and timeouts are expressed in seconds.
    step_delay: float = Field(default=0.0, ge=0, validation_alias=AliasChoices("step_delay", "stepDelay"))
    action_delay: float = Field(default=0.0, ge=0, validation_alias=AliasChoices("action_delay", "actionDelay"))
    wait_timeout: float = Field(default=30.0, gt=0, validation_alias=AliasChoices("wait_timeout", "waitTimeout"))
    screenshot_on_failure: bool = Field(
        default=True,
        validation_alias=AliasChoices("screenshot_on_failure", "screenshotOnFailure"),
    )


SettingsT = TypeVar("SettingsT", bound=RunSettings)


class SettingsHolder(Protocol):
    # Anything that exposes the active settings as a plain attribute (e.g. a browser session).
    settings: RunSettings


def settings_from_mapping(raw: Mapping[str, Any] | None) -> RunSettings:
    try:
        return RunSettings.model_validate(dict(raw or {}))
    except ValidationError as exc:
        raise InvalidSettingsError(str(exc)) from exc


def merge_settings(base: SettingsT, override: Mapping[str, Any] | None) -> SettingsT:
    # Shallow merge: override keys replace base fields wholesale; base is never mutated.
    values = {name: getattr(base, name) for name in type(base).model_fields}
    values.update(_canonical_keys(type(base), override or {}))
    try:
        return type(base).model_validate(values)
    except ValidationError as exc:
        raise InvalidSettingsError(str(exc)) from exc


def restore_settings(holder: SettingsHolder, snapshot: RunSettings) -> None:
    # Reinstall the exact pre-overlay object, not an equal copy.
    holder.settings = snapshot


@contextmanager
def overlay_settings(
    holder: SettingsHolder,
    base: RunSettings,
    override: Mapping[str, Any] | None,
) -> Iterator[RunSettings]:
    # Scoped overlay: the snapshot is restored on every exit path, including raised errors.
    snapshot = holder.settings
    merged = merge_settings(base, override)
    holder.settings = merged
    try:
        yield merged
    finally:
        restore_settings(holder, snapshot)


def setting_field_name(model: type[RunSettings], key: str) -> str:
    # Resolves a field name or camelCase alias to the model field name.
    name = _field_names(model).get(key)
    if name is None:
        raise InvalidSettingsError(f"Unknown setting: {key!r}")
    return name


def _canonical_keys(model: type[RunSettings], override: Mapping[str, Any]) -> dict[str, Any]:
    return {setting_field_name(model, key): value for key, value in override.items()}


def _field_names(model: type[RunSettings]) -> dict[str, str]:
    # Maps both field names and their camelCase aliases to the field name.
    names: dict[str, str] = {}
    for name, info in model.model_fields.items():
        names[name] = name
        alias = info.validation_alias
        if isinstance(alias, AliasChoices):
            for choice in alias.choices:
                if isinstance(choice, str):
                    names[choice] = name
    return names
