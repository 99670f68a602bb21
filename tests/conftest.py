"""
Shared fixtures: an in-memory Typesense stand-in, a recording reporter, and
helpers for building a small site on disk.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import pytest
from pydantic import SecretStr

from site_indexer.config import ReindexConfig, ServerConfig
from site_indexer.schema import parse_schema
from site_indexer.typesense import (
    ObjectAlreadyExists,
    ObjectNotFound,
    TypesenseRequestError,
)


class RecordingReporter:
    """Reporter that keeps every message in order."""

    def __init__(self) -> None:
        self.records: List[Tuple[str, str]] = []

    def verbose(self, message: str) -> None:
        self.records.append(("verbose", message))

    def info(self, message: str) -> None:
        self.records.append(("info", message))

    def warn(self, message: str) -> None:
        self.records.append(("warn", message))

    def error(self, message: str) -> None:
        self.records.append(("error", message))

    def fatal(self, message: str) -> None:
        self.records.append(("fatal", message))

    def messages(self, level: str) -> List[str]:
        return [msg for lvl, msg in self.records if lvl == level]


class FakeTypesense:
    """
    In-memory engine exposing the TypesenseClient methods the indexer uses.

    `fail` maps an operation name to the exception it raises, optionally
    keyed further by the first argument: {"upsert_synonym": {"syn-2": exc}}.
    Every call is appended to `calls` as (operation, first_argument).
    """

    def __init__(self) -> None:
        self.collections: Dict[str, Dict[str, Any]] = {}
        self.aliases: Dict[str, str] = {}
        self.fail: Dict[str, Any] = {}
        self.calls: List[Tuple[str, Any]] = []
        # Alias target seen at the moment each delete_collection call happened
        self.alias_at_delete: List[Dict[str, str]] = []

    # -- test helpers ---------------------------------------------------

    def add_collection(self, name: str, synonyms: Optional[List[Dict[str, Any]]] = None) -> None:
        self.collections[name] = {
            "schema": {"name": name, "fields": []},
            "documents": [],
            "synonyms": {s["id"]: dict(s) for s in (synonyms or [])},
        }

    def documents(self, name: str) -> List[Dict[str, Any]]:
        return self.collections[name]["documents"]

    def ops(self) -> List[str]:
        return [op for op, _ in self.calls]

    def _check(self, op: str, key: Any) -> None:
        self.calls.append((op, key))
        failure = self.fail.get(op)
        if isinstance(failure, dict):
            failure = failure.get(key)
        if failure is not None:
            raise failure

    def _collection(self, name: str) -> Dict[str, Any]:
        if name not in self.collections:
            raise ObjectNotFound(f"Collection {name} not found", 404)
        return self.collections[name]

    # -- client surface -------------------------------------------------

    async def create_collection(self, schema: Dict[str, Any]) -> Dict[str, Any]:
        self._check("create_collection", schema["name"])
        if schema["name"] in self.collections:
            raise ObjectAlreadyExists(f"Collection {schema['name']} exists", 409)
        self.collections[schema["name"]] = {"schema": schema, "documents": [], "synonyms": {}}
        return schema

    async def delete_collection(self, name: str) -> Dict[str, Any]:
        self.alias_at_delete.append(dict(self.aliases))
        self._check("delete_collection", name)
        collection = self._collection(name)
        del self.collections[name]
        return collection["schema"]

    async def retrieve_alias(self, name: str) -> Dict[str, Any]:
        self._check("retrieve_alias", name)
        if name not in self.aliases:
            raise ObjectNotFound(f"Alias {name} not found", 404)
        return {"name": name, "collection_name": self.aliases[name]}

    async def upsert_alias(self, name: str, collection_name: str) -> Dict[str, Any]:
        self._check("upsert_alias", name)
        self.aliases[name] = collection_name
        return {"name": name, "collection_name": collection_name}

    async def create_document(self, collection_name: str, document: Dict[str, Any]) -> Dict[str, Any]:
        self._check("create_document", document.get("page_path"))
        self._collection(collection_name)["documents"].append(document)
        return document

    async def retrieve_synonyms(self, collection_name: str) -> List[Dict[str, Any]]:
        self._check("retrieve_synonyms", collection_name)
        return list(self._collection(collection_name)["synonyms"].values())

    async def upsert_synonym(self, collection_name: str, synonym_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        self._check("upsert_synonym", synonym_id)
        rule = {"id": synonym_id, **body}
        self._collection(collection_name)["synonyms"][synonym_id] = rule
        return rule


def server_error(message: str = "boom") -> TypesenseRequestError:
    return TypesenseRequestError(f"Request failed with HTTP code 500 | Server said: {message}", 500)


def write_page(root: Path, relative: str, body: str) -> Path:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"<html><body>{body}</body></html>", encoding="utf-8")
    return path


@pytest.fixture
def docs_schema():
    return parse_schema(
        {
            "name": "docs",
            "fields": [
                {"name": "title", "type": "string"},
                {"name": "tags", "type": "string[]"},
                {"name": "page_path", "type": "string"},
                {"name": "page_priority_score", "type": "int32"},
            ],
        }
    )


@pytest.fixture
def engine():
    return FakeTypesense()


@pytest.fixture
def reporter():
    return RecordingReporter()


@pytest.fixture
def site(tmp_path):
    root = tmp_path / "public"
    root.mkdir()
    return root


@pytest.fixture
def make_config(docs_schema, site):
    def _make(**overrides) -> ReindexConfig:
        values = {
            "server": ServerConfig(api_key=SecretStr("test-key")),
            "collection_schema": docs_schema,
            "root_dir": site,
            "generate_new_collection_name": lambda schema: f"{schema.name}_new",
        }
        values.update(overrides)
        return ReindexConfig(**values)

    return _make
