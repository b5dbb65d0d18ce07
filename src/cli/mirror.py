"""CLI entry point for the record mirror."""

import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import click
import structlog

from src.cache.errors import UnknownSourceError
from src.config.loader import ConfigValidationError, load_config
from src.mirror.factory import build_service
from src.mirror.service import MirrorService
from src.normalize.rules import TypeInferenceEngine
from src.observability.logging import configure_logging
from src.remote.errors import SourceError
from src.settings.app import AppSettings


logger = structlog.get_logger()


@dataclass
class CliOptions:
    """Global options shared by every command."""

    config_path: Path | None
    cache_dir: Path | None
    log_level: str
    json_logs: bool


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps(payload, indent=2, sort_keys=True, default=str))


def _dump(model: Any) -> Any:
    return model.model_dump(mode="json")


def _build(options: CliOptions) -> MirrorService:
    """Load configuration and settings and assemble the service.

    Exits with status 1 when the configuration file is invalid.
    """
    settings = AppSettings()
    updates: dict[str, Any] = {}
    if options.cache_dir is not None:
        updates["cache_dir"] = options.cache_dir
    if updates:
        settings = settings.model_copy(update=updates)

    config_path = options.config_path or settings.config_path
    try:
        config = load_config(config_path)
    except ConfigValidationError as e:
        click.echo(f"Configuration validation failed: {e.file_path}", err=True)
        for error in e.errors:
            click.echo(f"  - {error['loc']}: {error['msg']}", err=True)
        sys.exit(1)

    return build_service(config, settings)


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to mirror.yaml (default: built-in sources).",
)
@click.option(
    "--cache-dir",
    "cache_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory for cached datasets (overrides MIRROR_CACHE_DIR).",
)
@click.option(
    "--log-level",
    default="INFO",
    show_default=True,
    help="Logging level.",
)
@click.option(
    "--json-logs/--console-logs",
    default=True,
    help="Render logs as JSON (default) or for the console.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Path | None,
    cache_dir: Path | None,
    log_level: str,
    json_logs: bool,
) -> None:
    """Local mirror of remote tabular datasets."""
    configure_logging(level=log_level, json_format=json_logs)
    ctx.obj = CliOptions(
        config_path=config_path,
        cache_dir=cache_dir,
        log_level=log_level,
        json_logs=json_logs,
    )


@cli.command()
@click.option("--force", is_flag=True, help="Page the remote even if fresh.")
@click.option(
    "--source",
    "source_key",
    default=None,
    help="Synchronize only this source key.",
)
@click.pass_obj
def sync(options: CliOptions, force: bool, source_key: str | None) -> None:
    """Synchronize cached datasets with the remote source."""
    service = _build(options)

    if source_key is not None:
        try:
            outcome = service.sync_source(source_key, force_refresh=force)
        except UnknownSourceError:
            click.echo(f"Error: unknown source '{source_key}'", err=True)
            sys.exit(1)
        except SourceError as e:
            _echo_json({"source_key": source_key, "error": e.to_dict()})
            sys.exit(1)
        summary = outcome.model_dump(mode="json", exclude={"records"})
        summary["record_count"] = len(outcome.records)
        _echo_json(summary)
        return

    result = service.refresh_all(force_refresh=force)
    _echo_json(
        {
            "sync_id": result.sync_id,
            "duration_ms": round(result.duration_ms, 2),
            "sources_succeeded": result.sources_succeeded,
            "sources_failed": result.sources_failed,
            "outcomes": {
                key: {
                    "record_count": len(outcome.records),
                    "new_records": outcome.new_records,
                    "pages": outcome.pages,
                    "cache_used": outcome.cache_used,
                    "stale": outcome.stale,
                    "state": outcome.state.value,
                    "error": _dump(outcome.error) if outcome.error else None,
                }
                for key, outcome in result.outcomes.items()
            },
            "errors": {key: _dump(err) for key, err in result.errors.items()},
        }
    )
    if result.errors:
        sys.exit(1)


@cli.command("cache-status")
@click.pass_obj
def cache_status(options: CliOptions) -> None:
    """Show freshness and size of every cache entry."""
    service = _build(options)
    _echo_json({key: _dump(s) for key, s in service.get_cache_status().items()})


@cli.command()
@click.option(
    "--refresh",
    is_flag=True,
    help="Page the item sources before recomputing.",
)
@click.pass_obj
def statuses(options: CliOptions, refresh: bool) -> None:
    """Recompute and show the active-status configuration."""
    service = _build(options)
    snapshot = service.update_status_configuration(force_refresh=refresh)
    _echo_json(
        {
            "configuration": _dump(snapshot),
            "stats": service.status_configuration.stats(),
            "issues": service.status_configuration.validate(),
        }
    )


@cli.command()
@click.pass_obj
def health(options: CliOptions) -> None:
    """Report credentials, cache state and status configuration health."""
    service = _build(options)
    _echo_json(_dump(service.health_check()))


@cli.command()
@click.confirmation_option(prompt="Delete every cached dataset?")
@click.pass_obj
def clear(options: CliOptions) -> None:
    """Delete every cached dataset."""
    service = _build(options)
    service.clear_all()
    _echo_json({"cleared": service.source_keys})


@cli.command("debug-match")
@click.argument("sample_statuses", nargs=-1, required=True)
@click.pass_obj
def debug_match(options: CliOptions, sample_statuses: tuple[str, ...]) -> None:
    """Show the best target pattern for each STATUS."""
    service = _build(options)
    _echo_json(service.status_configuration.debug_matching(sample_statuses))


@cli.command("detect-types")
@click.argument("field_names", nargs=-1, required=True)
def detect_types(field_names: tuple[str, ...]) -> None:
    """Show the inferred normalization type of each FIELD."""
    engine = TypeInferenceEngine()
    _echo_json({name: engine.detect_type(name).value for name in field_names})


if __name__ == "__main__":
    cli()
