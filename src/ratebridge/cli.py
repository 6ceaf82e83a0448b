"""Click-based CLI for ratebridge.

Thin wrapper around library modules. Every command builds the same
RateService the API uses, runs one lookup, and prints the result.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ratebridge.core.exceptions import RateBridgeError

console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run_async(coro):
    """Drive one coroutine to completion from a click command."""
    return asyncio.run(coro)


def _load_config(ctx: click.Context):
    """Config for this invocation, loaded once."""
    if "config" not in ctx.obj:
        from ratebridge.core import load_config

        ctx.obj["config"] = load_config(config_path=ctx.obj.get("config_path"))
    return ctx.obj["config"]


@asynccontextmanager
async def _rate_service(config):
    """A RateService over a client that lives for one command."""
    from ratebridge.providers import build_chains, create_client
    from ratebridge.rates import RateService

    async with create_client(config.http) as client:
        chains = build_chains(client, config.providers, config.http)
        yield RateService(chains, cache_config=config.cache)


def _run_lookup(ctx: click.Context, lookup):
    """Run ``lookup(service)`` and turn library errors into a clean exit."""
    config = _load_config(ctx)

    async def _run():
        async with _rate_service(config) as service:
            return await lookup(service)

    try:
        return _run_async(_run())
    except RateBridgeError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc


def _format_ts(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC).strftime("%Y-%m-%d %H:%M:%S UTC")


def _echo_json(payload) -> None:
    click.echo(json.dumps(payload, indent=2, default=str))


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.INFO if verbose else logging.WARNING)


_FORMAT_OPTION = click.option(
    "--format",
    "output_format",
    type=click.Choice(["table", "json"], case_sensitive=False),
    default="table",
    help="Output format.",
)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    envvar="RATEBRIDGE_CONFIG",
    default=None,
    help="Path to ratebridge.yml config file.",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    default=False,
    help="Enable debug logging, including provider fallbacks.",
)
@click.version_option(package_name="ratebridge")
@click.pass_context
def cli(ctx: click.Context, config: str | None, verbose: bool) -> None:
    """ratebridge: fiat and crypto conversion with provider fallback."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose)


# ---------------------------------------------------------------------------
# price
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("symbol")
@click.option("--quote", "-q", default="USDT", show_default=True, help="Quote currency.")
@_FORMAT_OPTION
@click.pass_context
def price(ctx: click.Context, symbol: str, quote: str, output_format: str) -> None:
    """Show the spot price of SYMBOL."""
    point = _run_lookup(ctx, lambda s: s.get_price(symbol, quote))

    if output_format == "json":
        _echo_json({"symbol": symbol.upper(), "quote": quote.upper(), **point.model_dump()})
        return

    stale = " [yellow](stale)[/yellow]" if point.stale else ""
    console.print(
        f"[bold]{symbol.upper()}/{quote.upper()}[/bold] = {point.price:,.8g}{stale} "
        f"via {point.provider} at {_format_ts(point.timestamp)}"
    )


# ---------------------------------------------------------------------------
# convert
# ---------------------------------------------------------------------------


@cli.command(context_settings={"ignore_unknown_options": True})
@click.argument("amount")
@click.argument("from_code", metavar="FROM")
@click.argument("to_code", metavar="TO")
@click.option(
    "--kind",
    type=click.Choice(["fiat", "crypto", "crypto_to_fiat", "fiat_to_crypto"]),
    default=None,
    help="Force a conversion route. Default: inferred from the codes.",
)
@_FORMAT_OPTION
@click.pass_context
def convert(
    ctx: click.Context,
    amount: str,
    from_code: str,
    to_code: str,
    kind: str | None,
    output_format: str,
) -> None:
    """Convert AMOUNT of FROM into TO. AMOUNT must be a positive number."""
    from ratebridge.core import ConversionKind
    from ratebridge.rates import ConversionComposer

    async def _lookup(service):
        composer = ConversionComposer(service)
        return await composer.convert(
            from_code, to_code, amount, kind=ConversionKind(kind) if kind else None
        )

    result = _run_lookup(ctx, _lookup)

    if output_format == "json":
        _echo_json(result.model_dump(mode="json"))
        return

    stale = " [yellow](stale)[/yellow]" if result.stale else ""
    console.print(
        f"{result.amount:,.8g} {result.from_code} = "
        f"[bold green]{result.result:,.8g} {result.to_code}[/bold green]{stale}"
    )
    console.print(f"rate {result.rate:.8g} ({result.kind.value}, via {result.source})")


# ---------------------------------------------------------------------------
# history
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("symbol")
@click.option("--quote", "-q", default="USDT", show_default=True)
@click.option("--days", "-d", type=int, default=7, show_default=True, help="1 to 365.")
@click.option("--limit", "-n", type=int, default=10, show_default=True, help="Rows to print.")
@_FORMAT_OPTION
@click.pass_context
def history(
    ctx: click.Context,
    symbol: str,
    quote: str,
    days: int,
    limit: int,
    output_format: str,
) -> None:
    """Show historical closes for SYMBOL."""
    points = _run_lookup(ctx, lambda s: s.get_historical_data(symbol, quote, days))

    if output_format == "json":
        _echo_json([p.model_dump() for p in points])
        return

    table = Table(title=f"{symbol.upper()}/{quote.upper()} - last {days}d ({len(points)} points)")
    table.add_column("Time (UTC)")
    table.add_column("Close", justify="right")
    for point in points[-limit:]:
        table.add_row(_format_ts(point.timestamp), f"{point.price:,.8g}")
    console.print(table)


# ---------------------------------------------------------------------------
# currencies
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("kind", type=click.Choice(["fiat", "crypto"]), default="fiat")
@_FORMAT_OPTION
@click.pass_context
def currencies(ctx: click.Context, kind: str, output_format: str) -> None:
    """List supported fiat currencies or crypto assets."""
    if kind == "fiat":
        items = _run_lookup(ctx, lambda s: s.get_supported_currencies())
        rows = [(c.code, c.name) for c in items]
    else:
        items = _run_lookup(ctx, lambda s: s.get_supported_cryptos())
        rows = [(a.symbol, a.name) for a in items]

    if output_format == "json":
        _echo_json([item.model_dump() for item in items])
        return

    table = Table(title=f"Supported {kind} ({len(rows)})")
    table.add_column("Code", style="bold")
    table.add_column("Name")
    for code, name in rows:
        table.add_row(code, name)
    console.print(table)


# ---------------------------------------------------------------------------
# serve
# ---------------------------------------------------------------------------


@cli.command()
@click.option("--host", type=str, default=None, help="Bind address. Default: api.host.")
@click.option("--port", "-p", type=int, default=None, help="Port number. Default: api.port.")
@click.option("--reload", is_flag=True, default=False, help="Restart when source files change.")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None, reload: bool) -> None:
    """Serve the HTTP API with uvicorn."""
    try:
        import uvicorn
    except ImportError:
        console.print(
            "[red]uvicorn not installed. Install with: "
            "pip install ratebridge[api][/red]"
        )
        raise SystemExit(1)

    config = _load_config(ctx)
    host = host or config.api.host
    port = port or config.api.port
    if ctx.obj.get("config_path"):
        # the app factory loads config itself
        os.environ["RATEBRIDGE_CONFIG"] = ctx.obj["config_path"]

    console.print(f"Starting ratebridge API on [bold]{host}:{port}[/bold]")
    console.print(f"API docs: http://{host}:{port}/docs")

    uvicorn.run(
        "ratebridge.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="debug" if ctx.obj["verbose"] else "info",
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
