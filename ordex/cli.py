"""
ORDEX CLI commands

This module provides command-line interface for ORDEX operations.
"""

import asyncio
import json
import mimetypes
import sys
from pathlib import Path

import click

from ordex.classification import ContentDetector
from ordex.config import OrdexConfig, setup_logging
from ordex.db import Database
from ordex.errors import RegistryUnavailableError
from ordex.matching import SQLRegistry
from ordex.models import Attachment, Channel, EntityKind, IngestedItem

CHANNELS = [channel.value for channel in Channel]
KINDS = [kind.value for kind in EntityKind]


def _load_config(ctx: click.Context) -> OrdexConfig:
    config_path = ctx.obj.get('config_path')
    if config_path:
        return OrdexConfig.from_file(config_path)
    return OrdexConfig()


def _build_item(text, file_path, url, channel, subject=None, sender=None) -> IngestedItem:
    if not (text or file_path or url):
        raise click.UsageError('Provide at least one of --text, --file or --url')

    attachments = []
    if file_path:
        path = Path(file_path)
        media_type = mimetypes.guess_type(path.name)[0] or ''
        attachments.append(Attachment(
            name=path.name,
            media_type=media_type,
            size=path.stat().st_size,
            storage_path=str(path.resolve()),
        ))

    return IngestedItem(
        channel=Channel(channel),
        body=text,
        subject=subject,
        sender=sender,
        attachments=attachments,
        url=url,
    )


@click.group()
@click.option('--config', 'config_path', type=click.Path(exists=True), help='Path to configuration file')
@click.option('--log-level', type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
              help='Logging level')
@click.pass_context
def cli(ctx, config_path, log_level):
    """ORDEX order intake command-line interface"""
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path
    setup_logging(_load_config(ctx), level=log_level)


@cli.command()
@click.option('--db-url', help='SQLAlchemy database URL (overrides configuration)')
@click.pass_context
def init(ctx, db_url):
    """Create the ORDEX database tables"""
    db = Database(url=db_url, config=_load_config(ctx))
    db.create_all()
    click.echo(f'Database initialized at {db.engine.url.render_as_string(hide_password=True)}')


@cli.command()
@click.option('--text', help='Message body')
@click.option('--file', 'file_path', type=click.Path(exists=True, dir_okay=False), help='Attachment file')
@click.option('--url', help='Referenced URL')
@click.option('--channel', type=click.Choice(CHANNELS), default='api', show_default=True)
def classify(text, file_path, url, channel):
    """Classify content and print the classification as JSON"""
    item = _build_item(text, file_path, url, channel)
    classification = ContentDetector.detect(item)
    processable, reason = ContentDetector.is_processable(classification)

    output = classification.model_dump(mode='json')
    output['priority'] = ContentDetector.get_priority(classification)
    output['processable'] = processable
    output['reason'] = reason
    click.echo(json.dumps(output, indent=2, ensure_ascii=False))


@cli.command()
@click.option('--text', help='Message body')
@click.option('--file', 'file_path', type=click.Path(exists=True, dir_okay=False), help='Attachment file')
@click.option('--url', help='Referenced URL')
@click.option('--channel', type=click.Choice(CHANNELS), default='api', show_default=True)
@click.option('--subject', help='Message subject')
@click.option('--sender', help='Sender address or handle')
@click.pass_context
def process(ctx, text, file_path, url, channel, subject, sender):
    """Run one item through the processing queue and wait for the outcome"""
    from ordex.service import OrderIntakeService

    item = _build_item(text, file_path, url, channel, subject=subject, sender=sender)
    service = OrderIntakeService.from_config(_load_config(ctx))
    service.db.create_all()

    async def run():
        item_id = await service.submit(item)
        await service.queue.join()
        return service.queue.get_item(item_id)

    queue_item = asyncio.run(run())

    output = {
        'item_id': queue_item.id,
        'status': queue_item.status.value,
        'attempts': queue_item.attempts,
        'order_id': queue_item.order_id,
        'error': queue_item.last_error,
        'warnings': [w.model_dump() for w in queue_item.warnings],
        'result': queue_item.result.model_dump(mode='json', exclude={'raw_output'}) if queue_item.result else None,
    }
    click.echo(json.dumps(output, indent=2, ensure_ascii=False))
    if queue_item.order_id is None:
        sys.exit(1)


@cli.command()
@click.argument('kind', type=click.Choice(KINDS))
@click.argument('name')
@click.option('--code', 'code_hint', help='Candidate code')
@click.pass_context
def resolve(ctx, kind, name, code_hint):
    """Resolve a client or product name to its canonical code"""
    from ordex.service import OrderIntakeService

    service = OrderIntakeService.from_config(_load_config(ctx))
    match = asyncio.run(service.resolver.resolve(EntityKind(kind), name, code_hint))
    click.echo(json.dumps(match.model_dump(mode='json'), indent=2))


@cli.command('add-entry')
@click.argument('kind', type=click.Choice(KINDS))
@click.argument('code')
@click.option('--name', help='Display name')
@click.pass_context
def add_entry(ctx, kind, code, name):
    """Add a canonical client or product code"""
    db = Database(config=_load_config(ctx))
    db.create_all()
    created = asyncio.run(SQLRegistry(db).add_entry(EntityKind(kind), code.strip().upper(), name))
    click.echo(f"{'Added' if created else 'Already exists'}: {kind} {code.strip().upper()}")


@cli.command('add-alias')
@click.argument('kind', type=click.Choice(KINDS))
@click.argument('alias')
@click.argument('code')
@click.pass_context
def add_alias(ctx, kind, alias, code):
    """Map a free-text name to an existing canonical code"""
    db = Database(config=_load_config(ctx))
    db.create_all()
    try:
        created = asyncio.run(SQLRegistry(db).add_alias(EntityKind(kind), alias.strip().lower(), code.strip().upper()))
    except RegistryUnavailableError as e:
        raise click.ClickException(str(e))
    click.echo(f"{'Added' if created else 'Already known'}: {alias.strip().lower()} -> {code.strip().upper()}")


if __name__ == '__main__':
    cli()
