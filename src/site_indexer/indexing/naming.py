"""
Collection generation naming.

Every reindex run creates a fresh collection whose name is the base schema
name plus a millisecond timestamp, e.g. ``docs_1760712345678``. Sequential
runs therefore never collide and sort in creation order.
"""

from __future__ import annotations

import time
from typing import Callable, Optional

from ..core.errors import CollectionNameError
from ..schema import CollectionSchema

NameGenerator = Callable[[CollectionSchema], str]


def generate_new_collection_name(
    schema: CollectionSchema,
    clock: Callable[[], int] = time.time_ns,
) -> str:
    """
    Derive a unique, time-ordered collection name from a base schema.

    Parameters
    ----------
    schema : CollectionSchema
        The base schema; its name prefixes the generated name.

    clock : Callable[[], int]
        Nanosecond clock, injectable for tests.
    """
    return f"{schema.name}_{clock() // 1_000_000}"


def resolve_collection_name(
    schema: CollectionSchema,
    generator: Optional[NameGenerator] = None,
) -> str:
    """
    Produce the new generation's name, using an override when configured.

    Raises
    ------
    CollectionNameError
        If the name is empty or equal to the alias (base schema) name.
    """
    name = (generator or generate_new_collection_name)(schema)

    if not isinstance(name, str) or not name.strip():
        raise CollectionNameError(
            f"Collection name generator returned an empty name: {name!r}"
        )

    if name == schema.name:
        raise CollectionNameError(
            f"New collection name must differ from the alias name '{schema.name}'"
        )

    return name
