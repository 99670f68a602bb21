"""Command line entry point: reindex a built site into Typesense."""

from __future__ import annotations

import asyncio
import logging
import sys

import click
from dotenv import load_dotenv

from . import __version__
from .config import DocumentErrorPolicy, NumericFallback, Settings
from .core.errors import ReindexAbortedError, SchemaError
from .indexing.orchestrator import ReindexResult, reindex
from .reporting import LoggingReporter


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


def _summarize(result: ReindexResult) -> None:
    click.echo(
        f"alias={result.alias} collection={result.new_collection} "
        f"stage={result.stage.value} indexed={result.documents_indexed} "
        f"skipped={result.pages_skipped} failed={len(result.document_failures)}"
    )
    for issue in result.issues:
        click.echo(f"  ! {issue}", err=True)


@click.group()
@click.version_option(__version__, prog_name="site-indexer")
def cli():
    """Typesense indexer for statically built sites."""


@cli.command("reindex")
@click.option("--root-dir", "root_dir", help="Built site directory (default: settings root_dir).")
@click.option("--schema", "schema_path", help="Collection schema JSON file.")
@click.option("--exclude", multiple=True, help="Regex of root-relative paths to skip. Repeatable.")
@click.option("--skip-bad-documents", is_flag=True, help="Skip pages that fail instead of aborting.")
@click.option("--lenient-numbers", is_flag=True, help="Index non-numeric values in numeric fields as null.")
@click.option("--dry-run", is_flag=True, help="Extract documents without touching Typesense.")
@click.option("--verbose", "-v", is_flag=True, help="Log every page and document.")
def reindex_command(root_dir, schema_path, exclude, skip_bad_documents, lenient_numbers, dry_run, verbose):
    """Build a new collection generation and swap the alias to it."""
    load_dotenv()
    settings = Settings()
    _configure_logging("DEBUG" if verbose else settings.log_level)

    if schema_path:
        settings.schema_path = schema_path

    overrides = {"dry_run": dry_run}
    if root_dir:
        overrides["root_dir"] = root_dir
    if exclude:
        overrides["exclude"] = list(exclude)
    if skip_bad_documents:
        overrides["document_error_policy"] = DocumentErrorPolicy.SKIP
    if lenient_numbers:
        overrides["numeric_fallback"] = NumericFallback.NULL

    try:
        config = settings.to_reindex_config(**overrides)
    except SchemaError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)

    try:
        result = asyncio.run(reindex(config, reporter=LoggingReporter()))
    except ReindexAbortedError as exc:
        click.echo(f"Reindex aborted after stage '{exc.stage.value}': {exc}", err=True)
        sys.exit(1)

    _summarize(result)

    if result.dry_run and result.document_failures:
        sys.exit(1)


def main():
    cli()


if __name__ == "__main__":
    main()
