"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _get_optional_str_env(name: str) -> str | None:
    """
    Read an optional string value from environment variables.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None


@dataclass(frozen=True)
class DocumentImportSettings:
    """
    Runtime settings for the chunked design catalog import.
    """

    chunk_size: int = 2000
    upsert_batch_size: int = 500
    max_validation_errors: int = 500
    log_validation_errors: bool = True
    job_idle_timeout_seconds: int = 3600


@dataclass(frozen=True)
class CanvasSettings:
    """
    Preview surface defaults.
    """

    default_background_color: str = "#f9fafb"
    preview_box_size: float = 250.0
    min_object_size: float = 50.0
    max_background_image_bytes: int = 5 * 1024 * 1024
    webcam_width: int = 1920
    webcam_height: int = 1080
    worksheet_render_scale: float = 1.5
    max_surface_size: int = 4096
    session_idle_timeout_seconds: int = 1800


@dataclass(frozen=True)
class AssetStorageSettings:
    """
    Object storage location of design images and worksheets.
    """

    bucket_name: str | None = None
    region: str | None = None
    image_extension: str = ".PNG"
    worksheet_extensions: tuple[str, ...] = (".pdf", ".PDF")

    @property
    def is_configured(self) -> bool:
        return bool(self.bucket_name and self.region)


@dataclass(frozen=True)
class ExternalHTTPSettings:
    """
    Shared HTTP behavior settings for asset fetches.
    """

    timeout_seconds: float = 15.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0


@dataclass(frozen=True)
class SchedulerSettings:
    """
    Housekeeping cadence for in-process import jobs and preview sessions.
    """

    enabled: bool = True
    eviction_interval_seconds: int = 300


@lru_cache(maxsize=1)
def get_document_import_settings() -> DocumentImportSettings:
    """
    Return cached import settings from environment variables.
    """

    return DocumentImportSettings(
        chunk_size=max(1, _get_int_env("DOCUMENT_IMPORT_CHUNK_SIZE", 2000)),
        upsert_batch_size=max(1, _get_int_env("DOCUMENT_IMPORT_UPSERT_BATCH_SIZE", 500)),
        max_validation_errors=max(1, _get_int_env("DOCUMENT_IMPORT_MAX_VALIDATION_ERRORS", 500)),
        log_validation_errors=_get_bool_env("DOCUMENT_IMPORT_LOG_VALIDATION_ERRORS", True),
        job_idle_timeout_seconds=max(60, _get_int_env("DOCUMENT_IMPORT_JOB_IDLE_TIMEOUT_SECONDS", 3600)),
    )


@lru_cache(maxsize=1)
def get_canvas_settings() -> CanvasSettings:
    """
    Return cached preview surface settings from environment variables.
    """

    return CanvasSettings(
        default_background_color=_get_str_env("CANVAS_DEFAULT_BACKGROUND_COLOR", "#f9fafb"),
        preview_box_size=max(1.0, _get_float_env("CANVAS_PREVIEW_BOX_SIZE", 250.0)),
        min_object_size=max(1.0, _get_float_env("CANVAS_MIN_OBJECT_SIZE", 50.0)),
        max_background_image_bytes=max(1, _get_int_env("CANVAS_MAX_BACKGROUND_IMAGE_BYTES", 5 * 1024 * 1024)),
        webcam_width=max(1, _get_int_env("CANVAS_WEBCAM_WIDTH", 1920)),
        webcam_height=max(1, _get_int_env("CANVAS_WEBCAM_HEIGHT", 1080)),
        worksheet_render_scale=max(0.1, _get_float_env("CANVAS_WORKSHEET_RENDER_SCALE", 1.5)),
        max_surface_size=max(1, _get_int_env("CANVAS_MAX_SURFACE_SIZE", 4096)),
        session_idle_timeout_seconds=max(60, _get_int_env("CANVAS_SESSION_IDLE_TIMEOUT_SECONDS", 1800)),
    )


@lru_cache(maxsize=1)
def get_asset_storage_settings() -> AssetStorageSettings:
    """
    Return object storage settings from environment variables.
    """

    extensions_raw = _get_str_env("ASSET_WORKSHEET_EXTENSIONS", ".pdf,.PDF")
    worksheet_extensions = tuple(
        extension.strip() for extension in extensions_raw.split(",") if extension.strip()
    )
    return AssetStorageSettings(
        bucket_name=_get_optional_str_env("ASSET_BUCKET_NAME"),
        region=_get_optional_str_env("ASSET_REGION"),
        image_extension=_get_str_env("ASSET_IMAGE_EXTENSION", ".PNG"),
        worksheet_extensions=worksheet_extensions or (".pdf", ".PDF"),
    )


@lru_cache(maxsize=1)
def get_external_http_settings() -> ExternalHTTPSettings:
    """
    Return shared HTTP settings from environment variables.
    """

    return ExternalHTTPSettings(
        timeout_seconds=max(1.0, _get_float_env("EXTERNAL_HTTP_TIMEOUT_SECONDS", 15.0)),
        max_retries=max(0, _get_int_env("EXTERNAL_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("EXTERNAL_HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("EXTERNAL_HTTP_BACKOFF_MULTIPLIER", 2.0)),
    )


@lru_cache(maxsize=1)
def get_scheduler_settings() -> SchedulerSettings:
    """
    Return housekeeping scheduler settings.
    """

    return SchedulerSettings(
        enabled=_get_bool_env("SCHEDULER_ENABLED", True),
        eviction_interval_seconds=max(10, _get_int_env("SCHEDULER_EVICTION_INTERVAL_SECONDS", 300)),
    )
