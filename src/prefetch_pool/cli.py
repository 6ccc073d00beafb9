#!/usr/bin/env python3
"""
Prefetch Pool CLI

Validate pool policy files and run a manager against an HTTP provider to
watch pools fill, expire and back off.
"""

import asyncio
import json
import logging
import sys
from typing import Optional

import click

from prefetch_pool import __version__
from prefetch_pool.config import load_manager_config_from_file, load_policies_from_file
from prefetch_pool.core.errors import PrefetchError
from prefetch_pool.pooling.manager import PrefetchManager
from prefetch_pool.providers.base import FetchProvider
from prefetch_pool.providers.http_provider import HttpFetchProvider
from prefetch_pool.testing import ScriptedProvider

logger = logging.getLogger(__name__)


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.version_option(version=__version__, prog_name='prefetch-pool')
def cli(verbose: bool, debug: bool):
    """
    Prefetch Pool - per-key prefetch queues with refill and backoff
    """
    if debug:
        logging.basicConfig(
            level=logging.DEBUG,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
    elif verbose:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(levelname)s - %(message)s'
        )
    else:
        # Production mode - only show warnings and errors
        logging.basicConfig(
            level=logging.WARNING,
            format='%(levelname)s: %(message)s'
        )


@cli.command()
@click.argument('policy_file', type=click.Path(exists=True))
def validate(policy_file: str):
    """Parse a policy file and list its pools"""
    try:
        policies = load_policies_from_file(policy_file)
        config = load_manager_config_from_file(policy_file)
        config.validate()
    except PrefetchError as e:
        click.echo(f"❌ {e}")
        sys.exit(1)

    click.echo(f"✅ {len(policies)} pool(s) in {policy_file}")
    click.echo(f"   Sweep interval: {config.sweep_interval}s")
    for policy in policies:
        stale = policy.effective_stale_age if policy.kind.needs_expiry else None
        click.echo(
            f"   • {policy.key}: kind={policy.kind.value} capacity={policy.capacity} "
            f"failure_threshold={policy.failure_threshold} "
            f"cooldown={policy.cooldown_duration}s"
            + (f" stale_age={stale}s" if stale else "")
        )


@cli.command()
@click.argument('policy_file', type=click.Path(exists=True))
@click.option('--url-template', help='Fetch URL containing {key}; omit for a dry run with generated items')
@click.option('--duration', default=10.0, show_default=True, help='Seconds to run before stopping')
@click.option('--consume-every', type=float, help='Consume one item per pool at this interval (seconds)')
@click.option('--json-stats', is_flag=True, help='Print final stats as JSON')
def run(policy_file: str, url_template: Optional[str], duration: float,
        consume_every: Optional[float], json_stats: bool):
    """Run the pools from POLICY_FILE for a while and report what happened"""
    return asyncio.run(_run(policy_file, url_template, duration, consume_every, json_stats))


async def _run(policy_file: str, url_template: Optional[str], duration: float,
               consume_every: Optional[float], json_stats: bool):
    try:
        policies = load_policies_from_file(policy_file)
        config = load_manager_config_from_file(policy_file)
    except PrefetchError as e:
        click.echo(f"❌ {e}")
        sys.exit(1)

    provider: FetchProvider
    if url_template:
        provider = HttpFetchProvider(url_template, timeout=config.fetch_timeout or 10.0)
    else:
        click.echo("🧪 No --url-template given, using generated items")
        provider = ScriptedProvider()

    manager = PrefetchManager(provider, config=config)
    manager.configure(policies)
    manager.on_pool_updated(lambda key: click.echo(f"   📥 {key}: {len(manager.registry.pools[key])} ready"))

    click.echo(f"🚀 Starting {len(policies)} pool(s) for {duration}s")
    await manager.start()
    try:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + duration
        while loop.time() < deadline:
            step = min(consume_every or duration, deadline - loop.time())
            await asyncio.sleep(max(step, 0))
            if consume_every:
                for policy in policies:
                    item = manager.consume(policy.key)
                    if item is not None:
                        click.echo(f"   📤 {policy.key}: consumed {str(item)[:60]}")
    finally:
        stats = manager.get_stats()
        await manager.stop()

    click.echo("\n📊 Pool Statistics:")
    if json_stats:
        click.echo(json.dumps(stats, indent=2, default=str))
        return

    for key, pool_stats in stats["pools"].items():
        click.echo(
            f"   {key}: {pool_stats['queue_length']}/{pool_stats['capacity']} ready, "
            f"{pool_stats['fetches_succeeded']} fetched, {pool_stats['fetches_failed']} failed, "
            f"{pool_stats['items_expired']} expired, {pool_stats['cooldowns_entered']} cooldown(s)"
        )


def main():
    """Main CLI entry point"""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\n⚠️  Interrupted by user")
        sys.exit(130)


if __name__ == '__main__':
    main()
