from datetime import datetime

import click

from . import __version__
from .config import AppConfig, ConfigManager
from .errors import SubscriptionError

CONFIG_DIR_OPTION = click.option(
    "--config-dir",
    type=click.Path(),
    default=None,
    help="Configuration directory"
)


def mask(secret: str) -> str:
    if len(secret) <= 8:
        return "*" * len(secret)
    return f"{secret[:4]}...{secret[-4:]}"


def load_application(config_dir):
    """Build the Application from config_dir, exits when no config exists"""
    config_manager = ConfigManager(config_dir)
    if not config_manager.exists():
        raise click.ClickException("Config file not found, run 'yt-notifier init' first")

    from .app import Application
    from .store import SqliteStore

    cfg = config_manager.load()
    return Application(config=cfg, store=SqliteStore(config_manager.get_db_path()))


@click.group(name="yt-notifier", help="YouTube upload notifications over PubSubHubbub")
def cli():
    pass


@cli.command(help="Show version")
def version():
    click.echo(f"yt-notifier {__version__}")


@cli.command(help="Create the configuration interactively")
@CONFIG_DIR_OPTION
def init(config_dir):
    config_manager = ConfigManager(config_dir)

    click.echo("🚀 YouTube Notifier - setup\n")

    if config_manager.exists():
        existing = config_manager.load()
        click.echo("Existing configuration:")
        click.echo(f"  Domain: {existing.app_domain}")
        click.echo(f"  Webhook: {mask(existing.discord_webhook_url)}")
        if not click.confirm("\nOverwrite it?", default=False):
            click.echo("Cancelled")
            return

    click.echo("\n1. Public domain")
    click.echo("   The hub calls https://<domain>/callback")
    app_domain = click.prompt("   Domain", type=str)

    click.echo("\n2. API secret")
    click.echo("   Used as bearer token for /api/* and to sign push notifications")
    api_secret = click.prompt("   Secret", type=str, hide_input=True)

    click.echo("\n3. Discord webhook URL")
    discord_webhook_url = click.prompt("   Webhook URL", type=str)

    click.echo("\n4. Renewal interval")
    renew_interval_hours = click.prompt("   Hours between renewals (0 disables)", type=int, default=24)

    web_port = click.prompt("\n5. Web server port", type=int, default=8080)

    config = AppConfig(
        api_secret=api_secret,
        app_domain=app_domain,
        discord_webhook_url=discord_webhook_url,
        renew_interval_hours=renew_interval_hours,
        web_port=web_port
    )
    config_manager.save(config)

    click.echo(f"\n✅ Config saved to: {config_manager.config_path}")
    click.echo("\nStart the service with 'yt-notifier run'")


@cli.command(help="Show the current configuration")
@CONFIG_DIR_OPTION
def config(config_dir):
    config_manager = ConfigManager(config_dir)

    if not config_manager.exists():
        click.echo("❌ Config file not found, run 'yt-notifier init' first")
        return

    cfg = config_manager.load()
    click.echo("📋 Current configuration:\n")
    click.echo(f"  Callback URL: {cfg.callback_url}")
    click.echo(f"  API secret: {mask(cfg.api_secret)}")
    click.echo(f"  Discord webhook: {mask(cfg.discord_webhook_url)}")
    click.echo(f"  Hub: {cfg.hub_url}")
    click.echo(f"  Renewal interval: {cfg.renew_interval_hours}h")
    click.echo(f"  Web server: {cfg.web_host}:{cfg.web_port}")
    click.echo(f"\n  Config file: {config_manager.config_path}")
    click.echo(f"  Database: {config_manager.db_path}")


@cli.command(name="list", help="List subscriptions")
@CONFIG_DIR_OPTION
def list_subscriptions(config_dir):
    app = load_application(config_dir)
    subscriptions = app.registry.list_all()
    if not subscriptions:
        click.echo("No subscriptions")
        return
    for subscription in subscriptions:
        renewed = datetime.fromtimestamp(subscription.last_subscribed_at / 1000).isoformat(timespec="seconds")
        click.echo(f"  {subscription.channel_id}  (last subscribed {renewed})")


@cli.command(help="Subscribe to a channel")
@click.argument("channel_id")
@CONFIG_DIR_OPTION
def subscribe(channel_id, config_dir):
    app = load_application(config_dir)
    try:
        app.registry.add(channel_id)
    except SubscriptionError as e:
        raise click.ClickException(str(e))
    click.echo(f"✅ Subscribed to {channel_id}")


@cli.command(help="Unsubscribe from a channel")
@click.argument("channel_id")
@CONFIG_DIR_OPTION
def unsubscribe(channel_id, config_dir):
    app = load_application(config_dir)
    try:
        app.registry.remove(channel_id)
    except SubscriptionError as e:
        raise click.ClickException(str(e))
    click.echo(f"✅ Unsubscribed from {channel_id}")


@cli.command(help="Renew every subscription once (for cron)")
@CONFIG_DIR_OPTION
def renew(config_dir):
    app = load_application(config_dir)

    from .app import setup_logging
    setup_logging(ConfigManager(config_dir).log_dir)

    report = app.renew_all()
    click.echo(f"🔄 Renewed {len(report.renewed)}, failed {len(report.failed)}")
    for channel_id in report.failed:
        click.echo(f"   ❌ {channel_id}")


@cli.command(help="Start the web server and renewal scheduler")
@CONFIG_DIR_OPTION
@click.option(
    "--no-scheduler",
    is_flag=True,
    help="Do not schedule renewals (use 'yt-notifier renew' from cron instead)"
)
def run(config_dir, no_scheduler):
    config_manager = ConfigManager(config_dir)
    if not config_manager.exists():
        click.echo("❌ Config file not found, run 'yt-notifier init' first")
        return

    from .app import setup_logging
    setup_logging(config_manager.log_dir)

    app = load_application(config_dir)
    click.echo("🚀 Starting YouTube Notifier...")
    click.echo(f"   Callback URL: {app.config.callback_url}")
    click.echo(f"   Log directory: {config_manager.log_dir}\n")
    app.run(with_scheduler=not no_scheduler)

