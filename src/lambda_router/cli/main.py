"""
CLI for local experiments: invoke an application with a saved event, print sample events.
"""
import asyncio
import importlib
import json
import logging
import sys
import time
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List

import typer

from lambda_router.core.app import Application
from lambda_router.core.events import EventSource
from lambda_router.log.levels import PRIORITIES, STDLIB_LEVELS

app = typer.Typer(help="lambda-router CLI: run an application against Lambda events locally.")


@dataclass
class LocalContext:
    """Stand-in for the Lambda context object."""

    function_name: str = "lambda-router-local"
    timeout_ms: int = 30_000
    aws_request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    _started: float = field(default_factory=time.monotonic)

    def get_remaining_time_in_millis(self) -> int:
        elapsed = int((time.monotonic() - self._started) * 1000)
        return max(self.timeout_ms - elapsed, 0)


def _load_target(target: str) -> Any:
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise typer.BadParameter("expected MODULE:ATTR, e.g. myservice.handler:app", param_hint="TARGET")
    if "" not in sys.path and "." not in sys.path:
        sys.path.insert(0, "")
    module = importlib.import_module(module_name)
    obj: Any = module
    for part in attr.split("."):
        obj = getattr(obj, part)
    return obj


def _read_event(path: str) -> dict:
    text = sys.stdin.read() if path == "-" else Path(path).read_text(encoding="utf-8")
    event = json.loads(text)
    if not isinstance(event, dict):
        raise typer.BadParameter("event must be a JSON object", param_hint="EVENT")
    return event


def _pairs(values: List[str], sep: str, what: str) -> dict:
    out: dict = {}
    for item in values:
        key, found, value = item.partition(sep)
        if not found or not key:
            raise typer.BadParameter(f"expected NAME{sep}VALUE, got {item!r}", param_hint=what)
        out.setdefault(key.strip(), []).append(value.strip())
    return out


def build_sample_event(
    source: EventSource,
    method: str = "GET",
    path: str = "/",
    headers: dict | None = None,
    query: dict | None = None,
    body: str | None = None,
) -> dict:
    """Minimal event of the given source; `headers` and `query` map names to lists of values."""
    headers = headers or {}
    query = query or {}
    event: dict = {
        "path": path,
        "httpMethod": method.upper(),
        "body": body,
        "isBase64Encoded": False,
        "multiValueHeaders": headers,
        "headers": {k: v[-1] for k, v in headers.items()},
        "multiValueQueryStringParameters": query or None,
        "queryStringParameters": {k: v[-1] for k, v in query.items()} or None,
    }
    if source is EventSource.ALB:
        event["requestContext"] = {
            "elb": {"targetGroupArn": "arn:aws:elasticloadbalancing:us-east-1:123456789012:targetgroup/local/0123456789abcdef"},
        }
    else:
        event["requestContext"] = {
            "httpMethod": method.upper(),
            "path": path,
            "stage": "local",
            "requestId": str(uuid.uuid4()),
            "identity": {"sourceIp": "127.0.0.1"},
        }
        event["resource"] = "/{proxy+}"
        event["pathParameters"] = None
        event["stageVariables"] = None
    return event


@app.command()
def invoke(
    target: str = typer.Argument(..., help="Application or handler function as MODULE:ATTR"),
    event_file: str = typer.Argument(..., metavar="EVENT", help="Event JSON file ('-' reads stdin)"),
    log_level: str = typer.Option("info", "--log-level", "-l", help="trace, debug, info, warn, error, fatal or silent"),
    timeout_ms: int = typer.Option(30_000, "--timeout-ms", help="Remaining time reported by the context"),
) -> None:
    """Run TARGET against one event and print the result JSON."""
    if log_level not in PRIORITIES:
        typer.echo(f"Unknown log level: {log_level}", err=True)
        raise typer.Exit(2)
    logging.basicConfig(
        level=STDLIB_LEVELS.get(log_level, logging.CRITICAL + 10),
        format="%(message)s",
        stream=sys.stderr,
    )

    handler = _load_target(target)
    event = _read_event(event_file)
    context = LocalContext(timeout_ms=timeout_ms)

    if isinstance(handler, Application):
        handler.log_level = log_level  # type: ignore[assignment]
        result = asyncio.run(handler.run_async(event, context))
    elif callable(handler):
        result = handler(event, context)
    else:
        typer.echo(f"{target} is neither an Application nor a callable", err=True)
        raise typer.Exit(1)

    typer.echo(json.dumps(result, indent=2, ensure_ascii=False))


@app.command()
def sample_event(
    source: str = typer.Option("apigw", "--source", "-s", help="apigw or alb"),
    method: str = typer.Option("GET", "--method", "-m"),
    path: str = typer.Option("/", "--path", "-p"),
    header: List[str] = typer.Option([], "--header", "-H", help="Name: value (repeatable)"),
    query: List[str] = typer.Option([], "--query", "-q", help="name=value (repeatable)"),
    body: str = typer.Option(None, "--body", help="Request body"),
) -> None:
    """Print a minimal event to use with `lambda-router invoke`."""
    try:
        event_source = EventSource(source.upper())
    except ValueError:
        typer.echo(f"Unknown source: {source} (expected apigw or alb)", err=True)
        raise typer.Exit(2) from None
    event = build_sample_event(
        event_source,
        method=method,
        path=path,
        headers=_pairs(header, ":", "--header"),
        query=_pairs(query, "=", "--query"),
        body=body,
    )
    typer.echo(json.dumps(event, indent=2))


def main() -> None:
    """Entry point for the lambda-router console command."""
    app()


if __name__ == "__main__":
    main()
