"""
Configuration loading.

All inputs arrive as environment variables (SABnzbd exports ``SAB_*`` to
post-processing scripts) and are gathered once into an explicit
``Settings`` object; nothing downstream reads the environment.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

from .errors import ConfigurationError
from .models import MB, CompletionEvent, UploadConfig, UploadTarget

DEFAULT_CATEGORY = "movies"

REQUIRED_TARGET_VARS = ("S3_BUCKET", "S3_ENDPOINT", "ACCESS_KEY", "SECRET_KEY", "REGION")


@dataclass(frozen=True)
class Settings:
    """Everything one invocation needs."""
    event: CompletionEvent
    target: UploadTarget
    upload: UploadConfig = field(default_factory=UploadConfig)


def _get(environ: Mapping[str, str], name: str) -> str:
    return (environ.get(name) or "").strip()


def _positive_number(environ: Mapping[str, str], name: str, default, cast):
    raw = _get(environ, name)
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got '{raw}'")
    return value


def load_upload_config(environ: Mapping[str, str]) -> UploadConfig:
    defaults = UploadConfig()
    chunk_mb = _positive_number(environ, "SABUPLOAD_CHUNK_SIZE_MB", None, int)
    return UploadConfig(
        chunk_size=chunk_mb * MB if chunk_mb else defaults.chunk_size,
        max_parallel_parts=_positive_number(
            environ, "SABUPLOAD_MAX_PARALLEL", defaults.max_parallel_parts, int
        ),
        request_timeout=_positive_number(
            environ, "SABUPLOAD_TIMEOUT", defaults.request_timeout, float
        ),
    )


def load_settings(
    environ: Mapping[str, str],
    complete_dir: Optional[str] = None,
    final_name: Optional[str] = None,
    category: Optional[str] = None,
) -> Settings:
    """
    Build ``Settings`` from the environment; explicit arguments win.

    Raises:
        ConfigurationError: listing every missing required variable
    """
    complete_dir = complete_dir or _get(environ, "SAB_COMPLETE_DIR")
    final_name = final_name or _get(environ, "SAB_FINAL_NAME")
    category = category or _get(environ, "SAB_CAT") or DEFAULT_CATEGORY

    missing = []
    if not complete_dir:
        missing.append("SAB_COMPLETE_DIR")
    if not final_name:
        missing.append("SAB_FINAL_NAME")
    missing.extend(name for name in REQUIRED_TARGET_VARS if not _get(environ, name))
    if missing:
        raise ConfigurationError(f"Missing required configuration: {', '.join(missing)}")

    event = CompletionEvent(
        completion_dir=Path(complete_dir).expanduser(),
        final_name=final_name,
        category=category,
    )
    target = UploadTarget(
        bucket=_get(environ, "S3_BUCKET"),
        endpoint=_get(environ, "S3_ENDPOINT"),
        region=_get(environ, "REGION"),
        access_key=_get(environ, "ACCESS_KEY"),
        secret_key=_get(environ, "SECRET_KEY"),
        category=category,
    )
    return Settings(event=event, target=target, upload=load_upload_config(environ))
