"""Process-wide settings for recordspine.

Record and model classes declare their policies (strict field names,
reserved-field handling, ...) as class attributes. Attributes left at
``None`` inherit the value from :class:`RecordSpineSettings` when an instance
is built, so a deployment can flip a default with one environment variable
instead of editing every record class.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.

    - **Pydantic validation:** Type-checked when first loaded
    - **Environment-driven:** ``RECORDSPINE_*`` env vars and ``.env`` files
    - **Class attributes win:** Settings only fill in what a class left open
    - **Cached:** One settings object per process until cleared

Examples:
    >>> from recordspine.settings import get_settings
    >>> settings = get_settings()
    >>> settings.strict_fields
    False

Tags:
    settings, configuration, pydantic, environment, recordspine

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from recordspine.patch import MatchMode


class RecordSpineSettings(BaseSettings):
    """Settings shared by every record, model and query in the process.

    Fields
    ──────
    log_level            : structlog level used by configure_logging()
    log_json             : JSON rendering (None → auto-detect from tty)
    database_url         : Default SQLAlchemy URL for create_record_engine()
    strict_fields        : Unknown field names raise UnknownFieldError
    warn_unknown_fields  : Non-strict records log unknown field names
    null_unknown_fields  : Non-strict records resolve unknown names to None
    reserved_match_mode  : Default match mode for reserved-field sanitizing
    reserved_fatal       : Reserved fields in a patch raise instead of strip
    reserved_log         : Log every reserved field that gets stripped
    """

    model_config = SettingsConfigDict(
        env_prefix="RECORDSPINE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_json: bool | None = Field(default=None)

    # ── Database ─────────────────────────────────────────────────
    database_url: str = Field(default="sqlite:///:memory:")

    # ── Field resolution ─────────────────────────────────────────
    strict_fields: bool = Field(default=False)
    warn_unknown_fields: bool = Field(default=False)
    null_unknown_fields: bool = Field(default=False)

    # ── Reserved fields ──────────────────────────────────────────
    reserved_match_mode: MatchMode = Field(default=MatchMode.PREFIX)
    reserved_fatal: bool = Field(default=False)
    reserved_log: bool = Field(default=True)


_settings_cache: dict[str, RecordSpineSettings] = {}


def get_settings(*, _force_reload: bool = False) -> RecordSpineSettings:
    """Load, validate, and cache a :class:`RecordSpineSettings` instance."""
    if not _force_reload and "default" in _settings_cache:
        return _settings_cache["default"]
    settings = RecordSpineSettings()
    _settings_cache["default"] = settings
    return settings


def clear_settings_cache() -> None:
    """Clear the settings cache (primarily for testing)."""
    _settings_cache.clear()


__all__ = [
    "RecordSpineSettings",
    "get_settings",
    "clear_settings_cache",
]
