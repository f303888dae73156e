"""Command line interface for sabupload (SABnzbd post-processing entry point)."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .config import Settings, load_settings
from .errors import ConfigurationError
from .pipeline import PostProcessor

DEFAULT_LOG_DIR = Path.home() / ".cache" / "sabupload"
LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

console = Console(stderr=True)

_log_paths: Tuple[Optional[Path], Optional[Path]] = (None, None)


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _get_log_paths() -> Tuple[Optional[Path], Optional[Path]]:
    """Return ``(info_log, error_log)`` configured by the last ``_setup_logging``."""
    return _log_paths


def _resolve_log_dir() -> Path:
    env_dir = os.getenv("SABUPLOAD_LOG_DIR")
    return Path(env_dir).expanduser() if env_dir else DEFAULT_LOG_DIR


def _file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    return handler


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Two append-only sinks are always installed: ``info.log`` (INFO and up)
    and ``error.log`` (ERROR only). The console gets a RichHandler unless
    ``silent`` is set. Returns a string describing the effective mode.
    """
    global _log_paths

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        if isinstance(handler, logging.FileHandler):
            handler.close()

    if debug:
        level = logging.DEBUG
    elif log_level:
        level = getattr(logging, log_level.upper(), logging.INFO)
    else:
        env_level = os.getenv("LOG_LEVEL")
        level = getattr(logging, (env_level or "INFO").upper(), logging.INFO)

    log_dir = _resolve_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    info_log = log_dir / "info.log"
    error_log = log_dir / "error.log"
    root_logger.addHandler(_file_handler(info_log, logging.INFO))
    root_logger.addHandler(_file_handler(error_log, logging.ERROR))
    _log_paths = (info_log, error_log)

    root_logger.setLevel(min(level, logging.INFO))

    if silent:
        return "silent"

    handler = RichHandler(
        console=console,
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    """``./.env`` first, then a ``.env`` next to the invoked script."""
    candidates = [Path(".env"), Path(sys.argv[0]).resolve().parent / ".env"]
    for candidate in candidates:
        if candidate.exists() and candidate.is_file():
            return candidate
    return None


def _sab_category(sab_args: Sequence[str]) -> Optional[str]:
    """SABnzbd passes ``dir nzb_name clean_name report_no category ...``."""
    if len(sab_args) > 3 and sab_args[3].strip():
        return sab_args[3].strip()
    return None


def _mask(secret: str) -> str:
    if len(secret) <= 4:
        return "****"
    return f"{secret[:2]}{'*' * (len(secret) - 4)}{secret[-2:]}"


def render_configuration_summary(config: Dict[str, Any]) -> None:
    """Render startup configuration summary."""
    table = Table.grid(padding=(0, 2))
    table.add_column(style="bold cyan", justify="right")
    table.add_column(style="white")

    for key, value in config.items():
        rendered = "-" if value is None else str(value)
        table.add_row(key, rendered)

    console.print(
        Panel(
            table,
            title="[bold green]sabupload[/bold green]",
            subtitle="[dim]SABnzbd post-processing[/dim]",
            border_style="blue",
        )
    )


def _summary(settings: Settings, env_file: Optional[Path], log_mode: str) -> Dict[str, Any]:
    event, target, upload = settings.event, settings.target, settings.upload
    info_log, error_log = _get_log_paths()
    return {
        "Completion Dir": str(event.completion_dir),
        "Final Name": event.final_name,
        "Category": event.category,
        "Bucket": target.bucket,
        "Endpoint": target.endpoint,
        "Region": target.region,
        "Access Key": _mask(target.access_key),
        "Part Size": f"{upload.chunk_size // (1024 * 1024)} MiB",
        "Parallel Parts": upload.max_parallel_parts,
        "Timeout": f"{upload.request_timeout:g}s",
        "Env File": str(env_file) if env_file else "-",
        "Logs": f"{info_log}, {error_log}",
        "Logging": log_mode,
    }


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sabupload",
        description=(
            "Rename a completed SABnzbd download to <hash><ext> and upload it "
            "to an S3-compatible bucket."
        ),
    )
    parser.add_argument(
        "complete_dir",
        nargs="?",
        default=None,
        help="Completed download directory (default: $SAB_COMPLETE_DIR)",
    )
    parser.add_argument(
        "sab_args",
        nargs="*",
        help="Remaining SABnzbd script arguments (the 4th one is the category)",
    )
    parser.add_argument(
        "-n",
        "--final-name",
        default=None,
        help="Final name, hash--[[id]]<ext> (default: $SAB_FINAL_NAME)",
    )
    parser.add_argument(
        "-c",
        "--category",
        default=None,
        help="Category used in the object key (default: $SAB_CAT or 'movies')",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only write the log files")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"sabupload {__version__}",
    )
    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )
    logger = logging.getLogger("sabupload")

    try:
        settings = load_settings(
            os.environ,
            complete_dir=args.complete_dir,
            final_name=args.final_name,
            category=args.category or _sab_category(args.sab_args),
        )
    except ConfigurationError as exc:
        logger.error(str(exc))
        return 1

    if not args.silent:
        render_configuration_summary(_summary(settings, used_env_file, effective_log_mode))

    try:
        result = asyncio.run(PostProcessor(settings).run())
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130

    if result.success:
        logger.info(f"Done: {result.receipt.object_key} ({result.receipt.strategy.value})")
    return result.exit_code


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
