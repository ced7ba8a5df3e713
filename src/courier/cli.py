"""CLI interface for Courier"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

import click

from courier.application.client import Client
from courier.domain.config import AppConfig
from courier.domain.errors import ClientError
from courier.infrastructure.config.config_manager import ConfigManager, ConfigurationError
from courier.infrastructure.context import CallContext

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, level: str = "INFO") -> None:
    """Configure the root logger for command line use"""
    log_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        force=True,
    )
    logging.getLogger().setLevel(log_level)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Log ``message`` and abort the command with it"""
    logger.error(message, exc_info=exc if verbose else None)
    raise click.ClickException(message)


def _parse_params(raw: Optional[str]) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        raise click.BadParameter(f"not valid JSON: {e}", param_hint="--params") from e


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .courier.yml config file",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path):
    """Courier - resilient JSON-RPC client"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


@cli.command()
@click.argument("method", type=str)
@click.option("--params", type=str, help="Call parameters as a JSON document")
@click.option("--base-url", type=str, help="JSON-RPC endpoint. Overrides config.")
@click.option("--max-attempts", type=click.IntRange(min=0), help="Attempts per call. Overrides config.")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), help="Overall call deadline in seconds")
@click.pass_context
def call(
    ctx,
    method: str,
    params: Optional[str],
    base_url: Optional[str],
    max_attempts: Optional[int],
    timeout: Optional[float],
):
    """Call a remote JSON-RPC method and print its result.

    METHOD: Remote method name (e.g., 'merchant.GetDetails')
    """
    verbose = ctx.obj.get("verbose", False)
    call_params = _parse_params(params)

    try:
        config_manager = ConfigManager(config_path=ctx.obj.get("config_path"))
    except ConfigurationError as e:
        _die(str(e), verbose=verbose, exc=e)

    logging_config = config_manager.get_logging_config()
    if not verbose:
        setup_logging(level=logging_config.level)

    client_config = config_manager.get_client_config()
    if base_url:
        client_config = client_config.model_copy(update={"base_url": base_url})
    retry_config = config_manager.get_retry_config()
    if max_attempts is not None:
        retry_config = retry_config.model_copy(update={"max_attempts": max_attempts})
    app_config = AppConfig(client=client_config, retry=retry_config, logging=logging_config)

    logger.info(f"Calling {method} at {client_config.base_url}")
    try:
        with Client.from_config(app_config) as client:
            result = client.call(method, call_params, ctx=CallContext(timeout=timeout))
    except (ClientError, ValueError) as e:
        _die(f"Call failed: {e}", verbose=verbose, exc=e)

    click.echo(json.dumps(result, indent=2, ensure_ascii=False))


def main():
    """Console script entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
