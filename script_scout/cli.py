# === FILE: script_scout/cli.py ===
#!/usr/bin/env python3
"""
Command-line entry point for ScriptScout.

Commands:
  crawl     Crawl a site and save the JavaScript and WASM it loads
  probe     Open one page and count the responses it triggers
  config    Show the effective configuration

Common options:
  --config PATH       YAML/JSON config file (optional)
  --log-level LEVEL   Logging level (DEBUG, INFO, ...)
  --log-file PATH     Log file (stdout only when omitted)
  --log-format FORMAT Logging format string

crawl arguments and options:
  START_URL           Page the crawl starts from (or start_url in the config)
  OUTPUT_DIR          Root of the output tree (default: downloads)
  MAX_PAGES           Number of pages to visit (default: 1)
  --headful           Show the browser window
  --json PATH         Also write the crawl summary to a file
  --pretty            Indent the JSON summary

Additionally:
  --version, -v       Show the ScriptScout version

Example:
  script-scout crawl https://example.com downloads 5 --pretty
"""
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import click
from pydantic import ValidationError

from script_scout import __version__
from script_scout.capture.crawler import probe_responses
from script_scout.config import load_config
from script_scout.logger import init_logging
from script_scout.scanner import start_scan

CONTEXT_SETTINGS = dict(help_option_names=["--help"])


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def _build_config(ctx: click.Context, **overrides: Any):
    try:
        return load_config(ctx.obj.get('config_path'), **overrides)
    except ValidationError as e:
        missing = {err['loc'][0] for err in e.errors() if err['type'] == 'missing'}
        if 'start_url' in missing:
            print_error('Missing start URL. Usage: script-scout crawl <START_URL> [OUTPUT_DIR] [MAX_PAGES]')
        print_error(f'Invalid configuration: {e}')
    except Exception as e:
        print_error(f'Failed to load configuration: {e}')


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', '-v', message='ScriptScout, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Path to a YAML or JSON config file.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']),
    help='Logging level'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Log file path (stdout only when omitted)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Logging format string'
)
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format):
    """ScriptScout command group."""
    init_logging(
        level=log_level,
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config_path


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.argument('start_url', required=False)
@click.argument('output_dir', required=False, type=click.Path(file_okay=False, path_type=Path))
@click.argument('max_pages', required=False, type=int)
@click.option('--headful', is_flag=True, help='Show the browser window')
@click.option(
    '--json', '-j', 'json_output',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Write the crawl summary to a JSON file'
)
@click.option('--pretty', is_flag=True, help='Indent the JSON summary (2 spaces)')
@click.pass_context
def crawl(ctx, start_url, output_dir, max_pages, headful, json_output, pretty):
    """Crawl START_URL and save every JavaScript and WASM payload it loads."""
    cfg = _build_config(
        ctx,
        start_url=start_url,
        output_dir=output_dir,
        max_pages=max_pages,
        headless=False if headful else None,
    )
    click.echo(f'Starting crawl of: {cfg.start_url}')
    click.echo(f'Output directory: {cfg.output_dir}')
    click.echo(f'Max pages: {cfg.max_pages}')
    try:
        summary = asyncio.run(start_scan(cfg))
    except Exception as e:
        print_error(f'Crawl failed: {e}')

    output = summary.json(pretty=pretty)
    if json_output:
        try:
            json_output.parent.mkdir(parents=True, exist_ok=True)
            json_output.write_text(output, encoding='utf-8')
            click.echo(f'JSON summary: {json_output}')
        except OSError as e:
            print_error(f'Failed to write JSON summary: {e}')
    else:
        click.echo(output)
    click.echo(f'Crawl completed. Check the output directory: {cfg.output_dir}')


@cli.command('probe', context_settings=CONTEXT_SETTINGS)
@click.argument('url')
@click.option('--headful', is_flag=True, help='Show the browser window')
@click.pass_context
def probe(ctx, url, headful):
    """Open URL once and report how many responses it triggers."""
    cfg = _build_config(ctx, start_url=url, headless=False if headful else None)
    try:
        count = asyncio.run(probe_responses(cfg, url))
    except Exception as e:
        print_error(f'Probe failed: {e}')
    click.echo(f'Total responses captured: {count}')


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.argument('start_url', required=False)
@click.pass_context
def show_config(ctx, start_url):
    """Show the effective configuration as JSON."""
    cfg = _build_config(ctx, start_url=start_url)
    click.echo(json.dumps(cfg.model_dump(mode='json'), indent=2, ensure_ascii=False))


if __name__ == "__main__":
    cli()
