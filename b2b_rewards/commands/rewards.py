"""
CLI Commands for quarterly rewards.

Quarter-end runbook:

# Refresh every customer's reward for the quarter
flask rewards recompute --quarter 1 --year 2025

# Pay out pending rewards into customer wallets
flask rewards process --quarter 1 --year 2025 --actor-id 1
"""

import click
from flask.cli import with_appcontext
from ..services.reward_ledger import RewardLedgerService
from ..services.settlement_processor import RewardSettlementProcessor
from ..utils.exceptions import RewardsError
from ..utils.quarters import (
    format_quarter_label,
    get_current_quarter,
    get_previous_quarter,
)


@click.group('rewards')
def rewards_cli():
    """Quarterly reward commands."""
    pass


@rewards_cli.command('current-quarter')
@with_appcontext
def show_current_quarter():
    """Show the current and previous quarter ranges."""
    current = get_current_quarter()
    previous = get_previous_quarter(current.quarter, current.year)
    for label, info in (('Current', current), ('Previous', previous)):
        click.echo(
            f"{label}: {format_quarter_label(info.quarter, info.year)} "
            f"{info.start_date:%Y-%m-%d} -> {info.end_date:%Y-%m-%d}"
        )


@rewards_cli.command('recompute')
@click.option('--quarter', type=int, required=True, help='Quarter (1-4)')
@click.option('--year', type=int, required=True, help='Year, e.g. 2025')
@with_appcontext
def recompute_quarter(quarter, year):
    """Recompute rewards for all active customers."""
    try:
        result = RewardLedgerService().batch_recompute_for_quarter(quarter, year)
    except RewardsError as e:
        raise click.ClickException(e.message)

    click.echo(f"Recomputed {format_quarter_label(quarter, year)}")
    click.echo(f"  Customers: {result['processed']}")
    click.echo(f"  Created: {result['created']}")
    click.echo(f"  Updated: {result['updated']}")
    click.echo(f"  Locked (already processed): {result['skipped']}")

    if result['errors']:
        click.echo(f"  Errors: {len(result['errors'])}")
        for error in result['errors'][:5]:
            click.echo(f"    - Customer {error['customer_id']}: {error['error']}")


@rewards_cli.command('process')
@click.option('--quarter', type=int, required=True, help='Quarter (1-4)')
@click.option('--year', type=int, required=True, help='Year, e.g. 2025')
@click.option('--actor-id', type=int, required=True, help='Admin user ID recorded as processed_by')
@with_appcontext
def process_quarter(quarter, year, actor_id):
    """Settle pending rewards into customer wallets."""
    try:
        result = RewardSettlementProcessor().process_quarter(quarter, year, actor_id)
    except RewardsError as e:
        raise click.ClickException(e.message)

    click.echo(f"Processed {format_quarter_label(quarter, year)}")
    click.echo(f"  Paid: {result['processed_count']}")
    click.echo(f"  Skipped (zero or negative): {result['skipped_count']}")
    click.echo(f"  Amount: ${result['total_amount']:.2f}")

    if result['errors']:
        click.echo(f"  Errors: {len(result['errors'])}")
        for error in result['errors'][:5]:
            click.echo(f"    - Customer {error['customer_id']}: {error['error']}")


def init_app(app):
    """Register reward CLI commands."""
    app.cli.add_command(rewards_cli)
