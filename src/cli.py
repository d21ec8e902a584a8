"""CRM Desk command line, implemented with Typer."""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import sys
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Awaitable, Callable

import typer

from alerts import Alert, AlertEngine, AlertError, create_alert_engine
from config import settings

SUCCESS_EXIT_CODE = 0
DOMAIN_ERROR_EXIT_CODE = 3


@dataclass(frozen=True)
class CliConfig:
    """Global CLI options shared by every command."""

    as_json: bool


def _build_engine() -> AlertEngine:
    """Return the alert engine used by CLI commands."""
    return create_alert_engine()


def _configure_logging(level_name: str) -> None:
    """Send logs to stderr so command output stays parseable."""
    logging.basicConfig(
        level=getattr(logging, level_name.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def _serialize(value: Any) -> Any:
    """Convert result objects to JSON-serializable structures."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            field.name: _serialize(getattr(value, field.name))
            for field in dataclasses.fields(value)
        }
    if isinstance(value, dict):
        return {str(key): _serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_serialize(item) for item in value]
    return str(value)


def _render_alerts(alerts: list[Alert]) -> str:
    """Render alerts one per line for human scanning."""
    if not alerts:
        return "No alerts."
    lines = []
    for alert in alerts:
        actions = ", ".join(alert.action_types)
        lines.append(
            f"[{alert.priority.value:<6}] {alert.id}: {alert.title} - {alert.message} ({actions})"
        )
    return "\n".join(lines)


def _run(cfg: CliConfig, invoke: Callable[[AlertEngine], Awaitable[Any]], render) -> None:
    """Execute one engine call and map outputs and errors to exit codes."""
    engine = _build_engine()
    try:
        result = asyncio.run(invoke(engine))
    except AlertError as exc:
        if cfg.as_json:
            typer.echo(json.dumps({"error": str(exc)}), err=True)
        else:
            typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=DOMAIN_ERROR_EXIT_CODE) from exc

    if cfg.as_json:
        typer.echo(json.dumps(_serialize(result), sort_keys=True))
    else:
        typer.echo(render(result))
    raise typer.Exit(code=SUCCESS_EXIT_CODE)


def _require_config(ctx: typer.Context) -> CliConfig:
    """Return CLI config from the Typer context."""
    config = ctx.obj
    if not isinstance(config, CliConfig):
        raise RuntimeError("CLI configuration not initialized")
    return config


app = typer.Typer(no_args_is_help=True, help="CRM Desk command-line interface")


@app.callback()
def main(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Emit JSON output"),
    log_level: str = typer.Option(None, help="Override the configured log level"),
) -> None:
    """Store global options and configure logging."""
    _configure_logging(log_level or settings.log_level)
    ctx.obj = CliConfig(as_json=as_json)


@app.command("alerts")
def alerts_command(
    ctx: typer.Context,
    dismiss: list[str] = typer.Option(
        [], "--dismiss", help="Alert id to dismiss before listing (repeatable)"
    ),
) -> None:
    """List current alerts, highest priority first."""
    cfg = _require_config(ctx)

    async def invoke(engine: AlertEngine) -> list[Alert]:
        for alert_id in dismiss:
            await engine.dismiss_alert(alert_id)
        return await engine.get_all()

    _run(cfg, invoke, _render_alerts)


@app.command("complete-task")
def complete_task_command(
    ctx: typer.Context,
    task_id: int = typer.Argument(..., help="Task id to mark complete"),
) -> None:
    """Mark a task complete."""
    cfg = _require_config(ctx)
    _run(
        cfg,
        lambda engine: engine.complete_task(task_id),
        lambda result: f"Task {task_id} completed.",
    )


if __name__ == "__main__":
    app()
