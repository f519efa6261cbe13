"""
merklerewards/cli.py

Command line for inspecting distribution files.

Usage:
    merklerewards leaf 0xACCOUNT 0xBENEFICIARY 1000
    merklerewards verify distributions/2024-01-01/MerkleDist.json
    merklerewards show distributions/2024-01-01/MerkleDist.json --account 0x...
"""

import json
import logging
import sys

import click

from .blockchain.merkle import hash_leaf
from .config import RewardsConfig
from .distribution import load_distribution
from .errors import InvalidAddress

logger = logging.getLogger("merklerewards.cli")


@click.group()
@click.option(
    '--log-level',
    type=click.Choice(['debug', 'info', 'warning', 'error'], case_sensitive=False),
    default=None,
    help='Logging level (defaults to MERKLEREWARDS_LOG_LEVEL or WARNING)',
)
@click.pass_context
def main(ctx, log_level):
    """Cumulative merkle reward distribution tools."""
    config = RewardsConfig.from_env()
    if log_level:
        config = RewardsConfig(log_level=log_level, log_format=config.log_format)
    config.apply()
    ctx.obj = config


@main.command()
@click.argument('account')
@click.argument('beneficiary')
@click.argument('amount', type=int)
def leaf(account, beneficiary, amount):
    """Print the leaf hash for ACCOUNT, BENEFICIARY and cumulative AMOUNT."""
    try:
        click.echo(hash_leaf(account, beneficiary, amount))
    except (ValueError, InvalidAddress) as e:
        raise click.BadParameter(str(e))


@main.command()
@click.argument('dist_file', type=click.Path(exists=True, dir_okay=False))
def verify(dist_file):
    """Verify every proof in DIST_FILE against its merkle root."""
    try:
        dist = load_distribution(dist_file)
    except (ValueError, json.JSONDecodeError) as e:
        raise click.ClickException(f"Cannot read {dist_file}: {e}")

    failed = dist.verify()
    if failed:
        for account in failed:
            click.echo(f"FAIL {account}")
        click.echo(f"{len(failed)} of {len(dist.claims)} proofs invalid for {dist.merkle_root}")
        sys.exit(1)
    click.echo(f"OK {len(dist.claims)} proofs verified for {dist.merkle_root}")


@main.command()
@click.argument('dist_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--account', default=None, help='Show only this account\'s claim')
def show(dist_file, account):
    """Summarize DIST_FILE, or print one account's claim as JSON."""
    try:
        dist = load_distribution(dist_file)
    except (ValueError, json.JSONDecodeError) as e:
        raise click.ClickException(f"Cannot read {dist_file}: {e}")

    if account is None:
        click.echo(json.dumps({
            "merkleRoot": dist.merkle_root,
            "totalAmount": str(dist.total_amount),
            "claims": len(dist.claims),
        }, indent=2))
        return

    try:
        claim = dist.claim_for(account)
    except InvalidAddress as e:
        raise click.BadParameter(str(e), param_hint='--account')
    if claim is None:
        raise click.ClickException(f"No claim for {account}")
    click.echo(json.dumps(claim.to_dict(), indent=2))


if __name__ == "__main__":
    main()
