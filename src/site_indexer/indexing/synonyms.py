"""
Synonym Carryover

Synonyms are edited at runtime against the live collection, so they are not
part of the build. Each reindex run copies them from the generation the
alias currently points to onto the new generation before the alias moves.

Both directions are best-effort. A missing or unreadable old generation
yields no rules, and a rule that fails to upsert is logged and skipped so
the rest still carry over.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..reporting import Reporter
from ..typesense import TypesenseClient, TypesenseError

logger = logging.getLogger("indexer.synonyms")


# ---------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------

class SynonymRule(BaseModel):
    """
    One synonym set stored on a collection.

    `root` is only set for one-way synonyms; the optional attributes are
    replayed only when present on the source rule.
    """

    id: str = Field(..., min_length=1)
    synonyms: List[str] = Field(default_factory=list)
    root: Optional[str] = None
    locale: Optional[str] = None
    symbols_to_index: Optional[List[str]] = None

    model_config = ConfigDict(extra="ignore", frozen=True)

    def to_upsert_body(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"id"}, exclude_none=True)


@dataclass
class SynonymCarryoverReport:
    """Outcome of replaying rules onto a new generation."""

    applied: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

async def fetch_synonyms(
    client: TypesenseClient,
    collection_name: Optional[str],
    reporter: Optional[Reporter] = None,
) -> List[SynonymRule]:
    """
    Return every synonym rule stored on a generation.

    Returns an empty list when there is no generation, when it has no
    synonyms, or when it cannot be read. Read failures and malformed rules
    are warned about through `reporter` when one is given, otherwise through
    this module's logger.
    """
    if not collection_name:
        return []

    warn = reporter.warn if reporter is not None else logger.warning

    try:
        raw_rules = await client.retrieve_synonyms(collection_name)
    except TypesenseError as exc:
        warn(f"Error retrieving synonyms from {collection_name}: {exc}")
        return []

    rules: List[SynonymRule] = []
    for raw in raw_rules:
        try:
            rules.append(SynonymRule.model_validate(raw))
        except ValidationError as exc:
            warn(
                f"Ignoring malformed synonym rule on {collection_name}: "
                f"{raw!r} ({exc.error_count()} error(s))"
            )
    return rules


async def apply_synonyms(
    client: TypesenseClient,
    collection_name: str,
    rules: List[SynonymRule],
) -> SynonymCarryoverReport:
    """
    Upsert each rule onto a generation under its original id.

    A failing rule is logged and recorded; it never stops the others.
    """
    report = SynonymCarryoverReport()

    for rule in rules:
        try:
            await client.upsert_synonym(collection_name, rule.id, rule.to_upsert_body())
        except TypesenseError as exc:
            logger.warning("Failed to upsert synonym %s: %s", rule.id, exc)
            report.failed.append(rule.id)
            continue
        report.applied.append(rule.id)

    return report
