"""
CLI Commands for the config registry.

Usage:
    flask config init-defaults           # Seed a row for every setting
    flask config refresh                 # Reload the registry cache
    flask config show --category points  # Print resolved settings
    flask config set delivery.baseFee 120
    flask config reset delivery.baseFee
"""
import json

import click
from flask.cli import with_appcontext

from ..services.config_service import get_registry
from ..utils.exceptions import TeaShopError


@click.group('config')
def config_cli():
    """Config registry commands."""
    pass


def _parse_cli_value(raw: str):
    """Interpret VALUE as JSON when possible, else as a plain string."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


@config_cli.command('init-defaults')
@with_appcontext
def init_defaults():
    """Write default rows for settings that have none."""
    inserted = get_registry().init_defaults()
    click.echo(f"Inserted {len(inserted)} default configs")
    for key in inserted:
        click.echo(f"  + {key}")


@config_cli.command('refresh')
@with_appcontext
def refresh():
    """Reload every setting from the database."""
    registry = get_registry()
    registry.refresh()
    status = registry.status()
    mode = 'DEGRADED (defaults only)' if status['degraded'] else 'ok'
    click.echo(f"Reloaded {status['cached_keys']} configs, storage: {mode}")


@config_cli.command('show')
@click.option('--category', help='Only show one category (brand, points, ...)')
@with_appcontext
def show(category):
    """Print every setting with its resolved value."""
    registry = get_registry()
    try:
        items = registry.list_by_category(category) if category else registry.list_all()
    except TeaShopError as e:
        raise click.ClickException(e.message)

    for item in items:
        value = json.dumps(item.value, ensure_ascii=False)
        click.echo(f"{item.key:<32} {item.definition.value_type.value:<8} {value}")

    if registry.degraded:
        click.echo("\nWARNING: storage unavailable, showing catalog defaults")


@config_cli.command('set')
@click.argument('key')
@click.argument('value')
@with_appcontext
def set_value(key, value):
    """Set KEY to VALUE (JSON is parsed, anything else is a string)."""
    try:
        stored = get_registry().set(key, _parse_cli_value(value))
    except TeaShopError as e:
        raise click.ClickException(e.message)
    click.echo(f"{key} = {json.dumps(stored, ensure_ascii=False)}")


@config_cli.command('reset')
@click.argument('key')
@with_appcontext
def reset(key):
    """Restore the catalog default for KEY."""
    try:
        stored = get_registry().reset(key)
    except TeaShopError as e:
        raise click.ClickException(e.message)
    click.echo(f"{key} reset to {json.dumps(stored, ensure_ascii=False)}")


def init_app(app):
    """Register config commands with the Flask app."""
    app.cli.add_command(config_cli)
