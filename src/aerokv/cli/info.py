#!/usr/bin/env python3
"""
AeroKV cluster info CLI
"""

import asyncio
import sys

import click
import orjson
import structlog

from ..client import Node
from ..connection import InfoConnection, fetch_info_value
from ..constants import INFO_REPLICAS_MASTER, PARTITIONS
from ..errors import AeroKVError
from ..host import Host
from ..node_validator import bootstrap
from ..partition import PartitionTable

# Configure logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


def _echo_json(data) -> None:
    click.echo(orjson.dumps(data, option=orjson.OPT_INDENT_2).decode("utf-8"))


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx, verbose):
    """AeroKV cluster info CLI"""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    
    if verbose:
        import logging
        logging.basicConfig(level=logging.DEBUG)


@cli.command()
@click.option('--host', '-h', 'host', default='localhost:3000', help='Seed host[:port]')
@click.option('--timeout', '-t', default=1000, help='Timeout in milliseconds')
def node(host, timeout):
    """Validate a seed host and print its identity"""
    try:
        identity = asyncio.run(bootstrap(Host.parse(host), timeout))
    except AeroKVError as e:
        click.echo(f"AeroKV error: {e}", err=True)
        sys.exit(1)

    if not identity.is_valid:
        click.echo(f"No alias of {host} answered", err=True)
        sys.exit(1)

    _echo_json({
        "name": identity.name,
        "build": identity.build,
        "address": str(identity.address),
        "new_info": identity.supports_new_info,
        "aliases": [str(a) for a in identity.aliases],
    })


async def _load_partitions(host: Host, timeout: int, key: str) -> PartitionTable:
    identity = await bootstrap(host, timeout)
    target = Node.from_identity(identity)
    async with InfoConnection(target.host, timeout) as conn:
        response = await fetch_info_value(conn, key)
    table = PartitionTable()
    table.update(target, response)
    return table


@cli.command()
@click.option('--host', '-h', 'host', default='localhost:3000', help='Node host[:port]')
@click.option('--timeout', '-t', default=1000, help='Timeout in milliseconds')
@click.option('--key', '-k', default=INFO_REPLICAS_MASTER, help='Partition info key')
def partitions(host, timeout, key):
    """Print how many partitions a node masters per namespace"""
    try:
        table = asyncio.run(_load_partitions(Host.parse(host), timeout, key))
    except AeroKVError as e:
        click.echo(f"AeroKV error: {e}", err=True)
        sys.exit(1)

    snapshot = table.snapshot()
    _echo_json({
        namespace: {
            "owned": sum(1 for slot in snapshot[namespace] if slot is not None),
            "total": PARTITIONS,
        }
        for namespace in table.namespaces()
    })


def main():
    """Main entry point"""
    cli()


if __name__ == '__main__':
    main()
