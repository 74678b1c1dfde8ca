# === FILE: site_indexer/cli.py ===
#!/usr/bin/env python3
"""
Command line entry point of SiteIndexer.

Commands:
  crawl     Crawl the site(s) through their sitemaps and index the pages
  config    Show the effective configuration (API keys masked)

Common options:
  --config PATH       YAML/JSON config file (optional; CLI options override it)
  --log-level LEVEL   Logging level (VERBOSE, DEBUG, INFO, ...)
  --log-file PATH     Log file (stdout only when omitted)
  --log-format FORMAT Logging format (e.g. "%(asctime)s %(levelname)s %(message)s")
  --verbose           Shortcut for --log-level VERBOSE

crawl options:
  --root-url URL      Site to crawl
  --sites-file PATH   JSON file with several sites ([{"uri": ..., "maxDepth": ...}])
  --max-pages INT     Maximum number of pages per site
  --max-depth INT     Maximum crawl depth
  --batch-size INT    Documents per bulk upsert
  --dry-run           Crawl without uploading
  --raw-html          Index body HTML instead of extracted text
  --crawl-timeout SEC Timeout of the whole crawl (seconds)
  --service-endpoint, --index-name, --admin-api-key
                      Search service settings (override the config file)
  --embedding-endpoint, --embedding-key, --embedding-deployment, --embedding-dimensions
                      Embedding service settings (override the config file)

Example:
  site-indexer --config configs/default.yaml crawl --root-url https://example.com --max-pages 50
"""
import asyncio
import json
import sys
from pathlib import Path

import click
from pydantic import ValidationError

from site_indexer import __version__
from site_indexer.config import CrawlerConfig, load_sites, read_config_data
from site_indexer.engine import start_crawl
from site_indexer.logger import init_logging

CONTEXT_SETTINGS = dict(help_option_names=["--help"])
LOG_LEVELS = ["VERBOSE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def print_error(message: str):
    click.secho(message, fg='red', err=True)
    sys.exit(1)


def build_config(data: dict) -> CrawlerConfig:
    try:
        return CrawlerConfig(**data)
    except ValidationError as e:
        print_error(f'Invalid configuration: {e}')


def merge_section(data: dict, name: str, values: dict) -> None:
    """Lay the given (non-None) option values over the config section *name*."""
    given = {k: v for k, v in values.items() if v is not None}
    if given:
        data[name] = {**(data.get(name) or {}), **given}


@click.group(context_settings=CONTEXT_SETTINGS)
@click.version_option(__version__, '--version', message='SiteIndexer, version %(version)s')
@click.option(
    '--config', '-c', 'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='Path to a YAML or JSON config file.'
)
@click.option(
    '--log-level', 'log_level',
    default='INFO', show_default=True,
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help='Logging level'
)
@click.option(
    '--log-file', 'log_file',
    default=None,
    type=click.Path(writable=True, dir_okay=False, path_type=Path),
    help='Log file (stdout when omitted)'
)
@click.option(
    '--log-format', 'log_format',
    default='%(asctime)s %(levelname)s %(message)s',
    show_default=True,
    help='Logging format string'
)
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.pass_context
def cli(ctx, config_path, log_level, log_file, log_format, verbose):
    """Crawl sites through their sitemaps and index the pages in Azure AI Search."""
    init_logging(
        level='VERBOSE' if verbose else log_level.upper(),
        log_file=str(log_file) if log_file else None,
        log_format=log_format
    )
    data = {}
    if config_path is not None:
        try:
            data = read_config_data(config_path)
        except Exception as e:
            print_error(f'Failed to load configuration: {e}')
    ctx.ensure_object(dict)
    ctx.obj['config_data'] = data


@cli.command('crawl', context_settings=CONTEXT_SETTINGS)
@click.option('--root-url', '-r', 'root_url', default=None, help='Root URL to start crawling from')
@click.option(
    '--sites-file', '-f', 'sites_file',
    default=None,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help='JSON file with the sites to crawl'
)
@click.option('--max-pages', '-m', 'max_pages', type=int, default=None, help='Maximum number of pages to index')
@click.option('--max-depth', '-d', 'max_depth', type=int, default=None, help='Maximum crawl depth')
@click.option('--batch-size', '-b', 'batch_size', type=int, default=None, help='Documents per bulk upsert')
@click.option('--dry-run', 'dry_run', is_flag=True, help='Test crawling without uploading to the index')
@click.option('--raw-html', 'raw_html', is_flag=True, help='Index raw body HTML instead of extracted text')
@click.option('--crawl-timeout', 'crawl_timeout', type=float, default=None, help='Timeout of the whole crawl (seconds)')
@click.option('--service-endpoint', '-s', 'service_endpoint', default=None, help='Azure AI Search service endpoint')
@click.option('--index-name', '-i', 'index_name', default=None, help='Search index name')
@click.option('--admin-api-key', '-a', 'admin_api_key', default=None, help='Search service admin API key')
@click.option('--embedding-endpoint', 'embedding_endpoint', default=None, help='Azure OpenAI endpoint')
@click.option('--embedding-key', 'embedding_key', default=None, help='Azure OpenAI API key')
@click.option('--embedding-deployment', 'embedding_deployment', default=None, help='Embedding deployment name')
@click.option('--embedding-dimensions', 'embedding_dimensions', type=int, default=None, help='Embedding vector size')
@click.pass_context
def crawl(ctx, root_url, sites_file, max_pages, max_depth, batch_size, dry_run, raw_html, crawl_timeout,
          service_endpoint, index_name, admin_api_key,
          embedding_endpoint, embedding_key, embedding_deployment, embedding_dimensions):
    """Run the crawl and index the pages."""
    data = dict(ctx.obj['config_data'])
    overrides = {
        'root_url': root_url,
        'max_pages': max_pages,
        'max_depth': max_depth,
        'batch_size': batch_size,
    }
    data.update({k: v for k, v in overrides.items() if v is not None})
    merge_section(data, 'search', {
        'endpoint': service_endpoint,
        'index_name': index_name,
        'admin_api_key': admin_api_key,
    })
    merge_section(data, 'embedding', {
        'endpoint': embedding_endpoint,
        'admin_api_key': embedding_key,
        'deployment': embedding_deployment,
        'dimensions': embedding_dimensions,
    })
    if dry_run:
        data['dry_run'] = True
    if raw_html:
        data['extract_text'] = False
    if sites_file is not None:
        try:
            data['sites'] = [site.model_dump() for site in load_sites(sites_file)]
        except Exception as e:
            print_error(f'Error parsing sites file: {e}')

    cfg = build_config(data)
    targets = ', '.join(str(site.uri) for site in cfg.targets())
    click.echo(f'Crawling {targets} (max {cfg.max_pages} pages)')
    try:
        if crawl_timeout:
            pages = asyncio.run(asyncio.wait_for(start_crawl(cfg), timeout=crawl_timeout))
        else:
            pages = asyncio.run(start_crawl(cfg))
    except asyncio.TimeoutError:
        print_error(f'Crawl did not finish within {crawl_timeout} seconds')
    except Exception as e:
        print_error(f'Error: {e}')

    click.echo(f'Crawled {pages} pages')


@cli.command('config', context_settings=CONTEXT_SETTINGS)
@click.pass_context
def show_config(ctx):
    """Show the effective configuration as JSON."""
    cfg = build_config(ctx.obj['config_data'])
    click.echo(json.dumps(cfg.redacted(), indent=2, ensure_ascii=False))


def main():
    cli(prog_name='site-indexer')


if __name__ == "__main__":
    main()
