"""
Blue/Green Reindex Orchestrator

This module sequences one reindex run of a built site into Typesense:

    discover old generation -> fetch its synonyms -> create new generation
    -> populate it -> carry synonyms forward -> swap alias -> delete old

Consumers only ever query the alias (the base schema name). The alias is
moved only after the new generation is fully populated, and the old
generation is deleted only after the alias has moved away from it. The
engine offers no cross-call transactions, so these guarantees come entirely
from the ordering below.

Failure Policy
--------------
- Fatal (run aborts, ReindexAbortedError): site discovery, naming, new
  collection creation, unknown schema fields in markup, and page failures
  under DocumentErrorPolicy.ABORT.
- Empty default: alias lookup and synonym fetch failures.
- Orphan left behind: alias swap and old collection deletion failures.
- Skip: pages without marker attributes.

Concurrency
-----------
Runs are strictly sequential internally. Two runs against the same alias
must not overlap; callers serialize them. Reading and parsing each page is
offloaded to a worker thread so a host serving HTTP stays responsive.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, NoReturn, Optional, Union

from pydantic import BaseModel, Field

from .discovery import list_html_files, to_page_path
from .extractor import ExtractedDocument, extract_document
from .naming import resolve_collection_name
from .synonyms import SynonymRule, apply_synonyms, fetch_synonyms
from ..config import DocumentErrorPolicy, ReindexConfig
from ..core.errors import (
    ExtractionError,
    ReindexAbortedError,
    SiteIndexerError,
    UnknownFieldError,
)
from ..reporting import LoggingReporter, Reporter
from ..typesense import ObjectNotFound, TypesenseClient, TypesenseError


# ---------------------------------------------------------------------
# Run State
# ---------------------------------------------------------------------

class ReindexStage(str, Enum):
    START = "start"
    OLD_GENERATION_DISCOVERED = "old_generation_discovered"
    NEW_GENERATION_CREATED = "new_generation_created"
    POPULATED = "populated"
    SYNONYMS_CARRIED = "synonyms_carried"
    ALIAS_SWAPPED = "alias_swapped"
    OLD_GENERATION_DELETED = "old_generation_deleted"
    PARTIAL_FAILURE = "partial_failure"
    ABORTED = "aborted"


class DocumentFailure(BaseModel):
    page_path: str
    error: str


class ReindexResult(BaseModel):
    """
    Outcome of a reindex run.

    `stage` is OLD_GENERATION_DELETED on full success, PARTIAL_FAILURE when
    the run finished but left state for manual cleanup, and ABORTED when a
    fatal condition stopped it.
    """

    alias: str
    new_collection: Optional[str] = None
    old_collection: Optional[str] = None
    stage: ReindexStage = ReindexStage.START
    dry_run: bool = False

    documents_indexed: int = 0
    pages_skipped: int = 0
    document_failures: List[DocumentFailure] = Field(default_factory=list)

    synonyms_applied: int = 0
    synonyms_failed: List[str] = Field(default_factory=list)

    alias_swapped: bool = False
    old_deleted: bool = False
    new_collection_discarded: bool = False

    issues: List[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.stage is ReindexStage.OLD_GENERATION_DELETED


@dataclass(frozen=True)
class PageOutcome:
    """Per-page result of the population loop."""

    page_path: str
    status: str  # "indexed" | "skipped" | "failed"
    error: Optional[str] = None
    fatal: bool = False


# ---------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------

class Reindexer:
    """
    Runs one blue/green reindex against an explicit client handle.

    A Reindexer instance is single-use: construct one per run.
    """

    def __init__(
        self,
        config: ReindexConfig,
        client: TypesenseClient,
        reporter: Optional[Reporter] = None,
    ) -> None:
        """
        Parameters
        ----------
        config : ReindexConfig
            Schema, site root, exclusions, naming override and policies.

        client : TypesenseClient
            Open client for the target Typesense cluster.

        reporter : Optional[Reporter]
            Reporting sink. Defaults to a LoggingReporter.
        """
        self._config = config
        self._client = client
        self._reporter = reporter or LoggingReporter()
        self._schema = config.collection_schema
        self._alias = self._schema.name
        self._result = ReindexResult(alias=self._alias, dry_run=config.dry_run)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self) -> ReindexResult:
        """
        Execute the run.

        Returns
        -------
        ReindexResult
            Final state, including any recoverable issues.

        Raises
        ------
        ReindexAbortedError
            If a fatal condition aborted the run.
        """
        config = self._config
        result = self._result
        reporter = self._reporter

        reporter.info("Starting reindex")

        try:
            files = list_html_files(config.root_dir, config.exclude)
            new_name = resolve_collection_name(
                self._schema, config.generate_new_collection_name
            )
        except SiteIndexerError as exc:
            self._abort(str(exc))

        result.new_collection = new_name
        reporter.info(f"New collection name: {new_name}")
        reporter.verbose(f"Found {len(files)} HTML file(s) under {config.root_dir}")

        if config.dry_run:
            return await self._dry_run(files)

        old_name = await self._discover_old_generation()
        rules = await self._fetch_old_synonyms(old_name)

        await self._create_new_generation(new_name)
        await self._populate(files, new_name)
        await self._carry_synonyms(new_name, rules)

        if not await self._swap_alias(new_name):
            result.stage = ReindexStage.PARTIAL_FAILURE
            return self._finish()

        if old_name and old_name != new_name:
            if not await self._delete_old_generation(old_name):
                result.stage = ReindexStage.PARTIAL_FAILURE
                return self._finish()

        result.stage = ReindexStage.OLD_GENERATION_DELETED
        return self._finish()

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _discover_old_generation(self) -> Optional[str]:
        reporter = self._reporter

        try:
            alias_info = await self._client.retrieve_alias(self._alias)
        except ObjectNotFound:
            reporter.info(f"No alias named {self._alias} yet, this is a first run")
            alias_info = None
        except TypesenseError as exc:
            reporter.warn(f"Error retrieving old collection: {exc}")
            alias_info = None

        old_name = (alias_info or {}).get("collection_name") or None
        if old_name:
            reporter.info(f"Old collection name: {old_name}")

        self._result.old_collection = old_name
        self._result.stage = ReindexStage.OLD_GENERATION_DISCOVERED
        return old_name

    async def _fetch_old_synonyms(self, old_name: Optional[str]) -> List[SynonymRule]:
        if not old_name:
            return []

        self._reporter.info(f"Retrieving synonyms from old collection: {old_name}")
        rules = await fetch_synonyms(self._client, old_name, self._reporter)
        self._reporter.info(f"Retrieved {len(rules)} synonyms from old collection")
        return rules

    async def _create_new_generation(self, new_name: str) -> None:
        self._reporter.info(f"Creating new collection: {new_name}")
        payload = self._schema.with_name(new_name).to_engine_payload()

        try:
            await self._client.create_collection(payload)
        except TypesenseError as exc:
            self._abort(f"Could not create collection {new_name}: {exc}")

        self._result.stage = ReindexStage.NEW_GENERATION_CREATED

    async def _populate(self, files: List[Path], new_name: str) -> None:
        result = self._result

        for path in files:
            outcome = await self._index_page(path, new_name)

            if outcome.status == "indexed":
                result.documents_indexed += 1
                continue

            if outcome.status == "skipped":
                result.pages_skipped += 1
                continue

            result.document_failures.append(
                DocumentFailure(page_path=outcome.page_path, error=outcome.error or "")
            )

            if outcome.fatal or self._config.document_error_policy is DocumentErrorPolicy.ABORT:
                await self._discard_new_generation(new_name)
                self._abort(f"Could not index {outcome.page_path}: {outcome.error}")

            self._reporter.error(
                f"Skipping {outcome.page_path}: {outcome.error}"
            )

        if result.document_failures:
            self._reporter.warn(
                f"{len(result.document_failures)} page(s) failed and were skipped"
            )

        self._reporter.info(
            f"Indexed {result.documents_indexed} document(s), "
            f"skipped {result.pages_skipped} page(s) without marked fields"
        )
        result.stage = ReindexStage.POPULATED

    async def _index_page(self, path: Path, new_name: str) -> PageOutcome:
        page_path = to_page_path(path, self._config.root_dir)
        self._reporter.verbose(f"Indexing {page_path}")

        extracted = await asyncio.to_thread(self._extract_page, path, page_path)
        if isinstance(extracted, PageOutcome):
            return extracted

        self._reporter.verbose(f"Creating document: {extracted.fields}")
        try:
            await self._client.create_document(new_name, extracted.fields)
        except TypesenseError as exc:
            return PageOutcome(
                page_path, "failed", error=f"Could not create document: {exc}"
            )

        return PageOutcome(page_path, "indexed")

    def _extract_page(
        self, path: Path, page_path: str
    ) -> Union[ExtractedDocument, PageOutcome]:
        """
        Return an ExtractedDocument, or the PageOutcome that replaces it.

        Runs in a worker thread so file reads and HTML parsing do not stall
        the event loop.
        """
        try:
            html = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            return PageOutcome(page_path, "failed", error=f"Could not read {path}: {exc}")

        try:
            extracted = extract_document(
                html,
                self._schema,
                page_path,
                numeric_fallback=self._config.numeric_fallback,
            )
        except UnknownFieldError as exc:
            return PageOutcome(page_path, "failed", error=str(exc), fatal=True)
        except ExtractionError as exc:
            return PageOutcome(page_path, "failed", error=str(exc))

        if not isinstance(extracted, ExtractedDocument):
            self._reporter.warn(f"{extracted.reason}, skipping page {page_path}")
            return PageOutcome(page_path, "skipped")

        return extracted

    async def _carry_synonyms(self, new_name: str, rules: List[SynonymRule]) -> None:
        result = self._result

        if not rules:
            self._reporter.info("No synonyms to upsert")
            result.stage = ReindexStage.SYNONYMS_CARRIED
            return

        self._reporter.info(f"Upserting {len(rules)} synonyms to new collection")
        report = await apply_synonyms(self._client, new_name, rules)

        result.synonyms_applied = len(report.applied)
        result.synonyms_failed = list(report.failed)

        if report.failed:
            message = (
                f"Could not upsert {len(report.failed)} synonym(s): "
                f"{', '.join(report.failed)}"
            )
            self._reporter.error(message)
            result.issues.append(message)
        else:
            self._reporter.info("Successfully upserted synonyms to new collection")

        result.stage = ReindexStage.SYNONYMS_CARRIED

    async def _swap_alias(self, new_name: str) -> bool:
        self._reporter.info(f"Upserting alias {self._alias} -> {new_name}")

        try:
            await self._client.upsert_alias(self._alias, new_name)
        except TypesenseError as exc:
            message = f"Could not upsert alias {self._alias} -> {new_name}: {exc}"
            self._reporter.error(message)
            self._result.issues.append(message)
            return False

        self._reporter.info("Successfully upserted alias")
        self._result.alias_swapped = True
        self._result.stage = ReindexStage.ALIAS_SWAPPED
        return True

    async def _delete_old_generation(self, old_name: str) -> bool:
        self._reporter.info(f"Deleting old collection {old_name}")

        try:
            await self._client.delete_collection(old_name)
        except TypesenseError as exc:
            message = f"Could not delete old collection {old_name}: {exc}"
            self._reporter.error(message)
            self._result.issues.append(message)
            return False

        self._reporter.info("Successfully deleted old collection")
        self._result.old_deleted = True
        return True

    async def _discard_new_generation(self, new_name: str) -> None:
        # Alias never pointed here, so dropping a partial generation is safe.
        try:
            await self._client.delete_collection(new_name)
        except TypesenseError as exc:
            self._reporter.error(
                f"Could not delete partially populated collection {new_name}: {exc}"
            )
            return
        self._result.new_collection_discarded = True

    async def _dry_run(self, files: List[Path]) -> ReindexResult:
        result = self._result

        for path in files:
            page_path = to_page_path(path, self._config.root_dir)
            extracted = await asyncio.to_thread(self._extract_page, path, page_path)

            if isinstance(extracted, ExtractedDocument):
                result.documents_indexed += 1
            elif extracted.status == "skipped":
                result.pages_skipped += 1
            else:
                result.document_failures.append(
                    DocumentFailure(page_path=page_path, error=extracted.error or "")
                )
                self._reporter.error(f"{page_path}: {extracted.error}")

        self._reporter.info(
            f"Dry run: {result.documents_indexed} document(s) would be indexed, "
            f"{result.pages_skipped} skipped, {len(result.document_failures)} failed"
        )
        return result

    # ------------------------------------------------------------------
    # Internal Helpers
    # ------------------------------------------------------------------

    def _abort(self, message: str) -> NoReturn:
        completed = self._result.stage
        self._reporter.fatal(message)
        self._result.stage = ReindexStage.ABORTED
        self._result.issues.append(message)
        raise ReindexAbortedError(message, stage=completed, result=self._result)

    def _finish(self) -> ReindexResult:
        result = self._result
        self._reporter.info(
            f"Content indexed to \"{self._alias}\" [{result.new_collection}]"
        )
        return result


# ---------------------------------------------------------------------
# Convenience Entry Point
# ---------------------------------------------------------------------

async def reindex(
    config: ReindexConfig,
    reporter: Optional[Reporter] = None,
    client: Optional[TypesenseClient] = None,
) -> ReindexResult:
    """
    Run one reindex, opening a client from `config.server` when none is given.

    A caller-supplied client is left open.
    """
    if client is not None:
        return await Reindexer(config, client, reporter).run()

    async with TypesenseClient(config.server) as owned_client:
        return await Reindexer(config, owned_client, reporter).run()
