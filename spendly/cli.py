# spendly/cli.py
import logging
import os
from datetime import datetime, timezone
from decimal import Decimal

import click

from spendly.config import (
    DEFAULT_CONFIG,
    ConfigError,
    default_config_path,
    load_config,
    resolve_timezone,
    save_config,
)
from spendly.core.engine import summarize, totals_by_category
from spendly.core.models import CATEGORIES, KINDS, WINDOWS, CarryForwardPolicy
from spendly.storage import get_storage
from spendly.store import LedgerStore, TransactionDraft

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def format_money(value: Decimal, symbol: str) -> str:
    value = Decimal(value).quantize(CENT)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):.2f}"


def format_transaction(tx, symbol, tz):
    sign = '+' if tx.kind.value == 'income' else '-'
    day = tx.timestamp.astimezone(tz).strftime('%d/%m/%Y')
    amount = f"{sign}{symbol}{tx.amount.quantize(CENT):.2f}"
    return f"{amount:>14}  {tx.description}  ({tx.category.value} • {day})"


def _open_store(ctx):
    """Build the ledger store for this invocation and load it."""
    cfg = ctx.obj['config']
    try:
        storage = get_storage(cfg)
    except ConfigError as e:
        raise click.UsageError(str(e))
    logger.debug("Using %s at %s", cfg["storage"], cfg.get("data_path"))
    store = LedgerStore(storage)
    ctx.call_on_close(store.close)
    store.load()
    return store


@click.group()
@click.option(
    '--config', 'config_path',
    default=None,
    type=click.Path(dir_okay=False),
    help='Path to spendly.yaml (default: $SPENDLY_CONFIG or ./spendly.yaml)'
)
@click.option(
    '--storage', 'storage',
    default=None,
    help='Dotted path of the storage backend class (overrides config)'
)
@click.option(
    '--data', 'data_path',
    default=None,
    type=click.Path(dir_okay=False),
    help='Ledger file used by the storage backend (overrides config)'
)
@click.option('-v', '--verbose', is_flag=True, default=False, help='Debug logging')
@click.pass_context
def main(ctx, config_path, storage, data_path, verbose):
    """
    Track income and expenses against a baseline balance and view
    day, week or month summaries.
    """
    try:
        cfg = load_config(config_path)
    except ConfigError as e:
        raise click.UsageError(str(e))
    if storage:
        cfg['storage'] = storage
    if data_path:
        cfg['data_path'] = data_path

    level = 'DEBUG' if verbose else str(cfg.get('log_level', 'WARNING')).upper()
    logging.basicConfig(level=level, format='%(levelname)s %(name)s: %(message)s')

    ctx.ensure_object(dict)
    ctx.obj['config'] = cfg
    ctx.obj['config_path'] = config_path


@main.command()
@click.argument('kind', type=click.Choice(KINDS))
@click.argument('amount')
@click.argument('description', nargs=-1, required=True)
@click.option(
    '--category', '-c',
    default=None,
    type=click.Choice(CATEGORIES),
    help='Category (default from config)'
)
@click.pass_context
def add(ctx, kind, amount, description, category):
    """Record an income or expense of AMOUNT."""
    cfg = ctx.obj['config']
    store = _open_store(ctx)
    result = store.add_transaction(TransactionDraft(
        kind=kind,
        description=' '.join(description),
        amount=amount,
        category=category or cfg['default_category'],
    ))
    if not result.ok:
        for error in result.errors:
            click.echo(f"⚠️  {error}", err=True)
        ctx.exit(1)
    symbol = cfg['currency_symbol']
    tz = resolve_timezone(cfg)
    click.echo(f"Added {format_transaction(result.transaction, symbol, tz).strip()}")
    click.echo(f"Balance: {format_money(store.current_balance(), symbol)}")


@main.group()
def balance():
    """Set or carry forward the baseline balance."""


@balance.command('set')
@click.argument('value')
@click.pass_context
def set_balance(ctx, value):
    """Replace the baseline balance with VALUE."""
    store = _open_store(ctx)
    result = store.set_balance(value)
    if not result.ok:
        for error in result.errors:
            click.echo(f"⚠️  {error}", err=True)
        ctx.exit(1)
    symbol = ctx.obj['config']['currency_symbol']
    click.echo(f"Baseline set to {format_money(result.baseline, symbol)}.")
    click.echo(f"Balance: {format_money(store.current_balance(), symbol)}")


@balance.command('carry-forward')
@click.option(
    '--policy',
    default=None,
    type=click.Choice([p.value for p in CarryForwardPolicy]),
    help='retain keeps history active, archive moves it out (default from config)'
)
@click.pass_context
def carry_forward(ctx, policy):
    """Make the current balance the new baseline."""
    cfg = ctx.obj['config']
    store = _open_store(ctx)
    result = store.carry_forward_balance(policy or cfg['carry_forward_policy'])
    symbol = cfg['currency_symbol']
    click.echo(f"Baseline carried forward: {format_money(result.baseline, symbol)}.")
    click.echo(f"Balance: {format_money(store.current_balance(), symbol)}")


def _window_option(func):
    return click.option(
        '--window', '-w',
        default=None,
        type=click.Choice(WINDOWS),
        help='day, week or month (default from config)'
    )(func)


@main.command()
@_window_option
@click.pass_context
def show(ctx, window):
    """Show the balance and the transactions in a window."""
    cfg = ctx.obj['config']
    store = _open_store(ctx)
    tz = resolve_timezone(cfg)
    symbol = cfg['currency_symbol']
    summary = summarize(
        store.snapshot, window or cfg['default_window'], datetime.now(timezone.utc), tz
    )

    click.echo(f"Balance: {format_money(summary.balance, symbol)}")
    click.echo(
        f"This {summary.window.value}: "
        f"income +{format_money(summary.totals.income, symbol)}  "
        f"expense -{format_money(summary.totals.expense, symbol)}"
    )
    click.echo()
    if not summary.transactions:
        click.echo(f"No transactions this {summary.window.value}.")
        return
    for tx in summary.transactions:
        click.echo(format_transaction(tx, symbol, tz))


@main.command()
@_window_option
@click.pass_context
def summary(ctx, window):
    """Totals for a window, broken down by category."""
    cfg = ctx.obj['config']
    store = _open_store(ctx)
    tz = resolve_timezone(cfg)
    symbol = cfg['currency_symbol']
    result = summarize(
        store.snapshot, window or cfg['default_window'], datetime.now(timezone.utc), tz
    )

    click.echo(f"{result.window.value.capitalize()} summary")
    for category, totals in totals_by_category(result.transactions).items():
        click.echo(
            f"  {category.value:<14}"
            f"{format_money(totals.income, symbol):>12}"
            f"{format_money(totals.expense, symbol):>12}"
        )
    click.echo(
        f"  {'total':<14}"
        f"{format_money(result.totals.income, symbol):>12}"
        f"{format_money(result.totals.expense, symbol):>12}"
    )
    click.echo(f"  {'net':<14}{format_money(result.totals.net, symbol):>12}")


@main.command('init-config')
@click.pass_context
def init_config(ctx):
    """Write a config file with every default spelled out."""
    target = ctx.obj['config_path'] or default_config_path()
    if os.path.exists(target):
        raise click.UsageError(f"{target} already exists.")
    save_config(dict(DEFAULT_CONFIG), target)
    click.echo(f"Wrote {target}.")


if __name__ == '__main__':
    main()
