"""CLI entry point for chainwatch."""

import asyncio
import logging
import sys
from typing import Optional

import click

from .config import Config
from .exceptions import ConsensusError
from .types import Epoch, hex_to_bytes, to_hex


def setup_logging(level: str) -> None:
    """Set up logging configuration."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    if level.upper() != "DEBUG":
        logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


def load_config(
    config_path: Optional[str],
    beacon_url: Optional[str],
    log_level: Optional[str],
    metrics_port: Optional[int],
) -> Config:
    """Build the config from an optional yaml file plus command line overrides."""
    config = Config.from_yaml(config_path) if config_path else Config()
    if beacon_url:
        config.beacon_url = beacon_url
    if log_level:
        config.log_level = log_level
    if metrics_port is not None:
        config.metrics_port = metrics_port
    config.validate()
    return config


@click.group()
@click.version_option(package_name="chainwatch")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True),
    help="Path to a yaml config file",
    envvar="CHAINWATCH_CONFIG",
)
@click.option(
    "--beacon-url",
    help="Beacon API URL of the upstream node (e.g., http://localhost:5052)",
    envvar="CHAINWATCH_BEACON_URL",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level",
    envvar="CHAINWATCH_LOG_LEVEL",
)
@click.option(
    "--metrics-port",
    type=int,
    help="Port for the Prometheus metrics server (0 disables it)",
    envvar="CHAINWATCH_METRICS_PORT",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[str],
    beacon_url: Optional[str],
    log_level: Optional[str],
    metrics_port: Optional[int],
):
    """Chainwatch - consensus layer data for chain monitoring."""
    try:
        config = load_config(config_path, beacon_url, log_level, metrics_port)
    except ValueError as e:
        raise click.BadParameter(str(e))

    setup_logging(config.log_level)
    if config.metrics_port:
        from .metrics import start_metrics_server
        start_metrics_server(config.metrics_port)

    ctx.obj = config


@cli.command()
@click.pass_obj
def heads(config: Config):
    """Print chain heads as the upstream node announces them."""
    from .consensus import ConsensusClient

    async def run() -> None:
        consensus = ConsensusClient(config)
        queue = consensus.stream_heads()
        try:
            while True:
                head = await queue.get()
                click.echo(f"{int(head.slot)} {to_hex(head.root)}")
        finally:
            await consensus.close()

    _run(run())


@cli.command()
@click.option("--slot", type=int, required=True, help="Slot of the upcoming proposal")
@click.pass_obj
def context(config: Config, slot: int):
    """Print the proposal context for an upcoming slot."""
    from .consensus import ConsensusClient

    async def run() -> None:
        consensus = ConsensusClient(config)
        try:
            head_slot = await consensus.client.get_head_slot()
            await consensus.load_current_context(head_slot, Epoch(int(head_slot) // config.slots_per_epoch))

            click.echo(f"slot:              {slot}")
            click.echo(f"block number:      {await consensus.get_block_number_for_proposal(slot)}")
            click.echo(f"base fee:          {int(await consensus.get_base_fee_for_proposal(slot))}")
            click.echo(f"parent hash:       {to_hex(await consensus.get_parent_hash(slot))}")
            click.echo(f"randomness:        {to_hex(await consensus.get_randomness_for_proposal(slot))}")
            proposer = consensus.get_proposer(slot)
            if proposer is None:
                click.echo("proposer:          unknown")
            else:
                click.echo(f"proposer:          {int(proposer.index)} {to_hex(proposer.public_key)}")
        finally:
            await consensus.close()

    _run(run())


@cli.command()
@click.argument("public_key")
@click.pass_obj
def validator(config: Config, public_key: str):
    """Print the validator record and status for a public key."""
    from .consensus import ConsensusClient

    try:
        key = hex_to_bytes(public_key)
    except ConsensusError as e:
        raise click.BadParameter(str(e), param_hint="PUBLIC_KEY")

    async def run() -> None:
        consensus = ConsensusClient(config)
        try:
            await consensus.fetch_validators()
            record = consensus.get_validator(key)
            if record is None:
                raise click.ClickException(f"Unknown validator {public_key}")
            click.echo(f"index:             {int(record.index)}")
            click.echo(f"status:            {record.status} ({record.coarse_status.value})")
            click.echo(f"balance:           {int(record.balance)}")
            click.echo(f"effective balance: {int(record.effective_balance)}")
            click.echo(f"slashed:           {record.slashed}")
        finally:
            await consensus.close()

    _run(run())


def _run(coro) -> None:
    logger = logging.getLogger(__name__)
    try:
        asyncio.run(coro)
    except ConsensusError as e:
        raise click.ClickException(str(e))
    except KeyboardInterrupt:
        logger.info("Shutting down")
        sys.exit(0)


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
