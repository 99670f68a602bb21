import json

import pytest
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from pydantic import SecretStr

from site_indexer.api.dependencies import (
    ReindexBusyError,
    ReindexRunner,
    get_reindex_runner,
    get_settings,
    get_typesense_client,
)
from site_indexer.config import DocumentErrorPolicy, Settings
from site_indexer.core.errors import ReindexAbortedError
from site_indexer.indexing.orchestrator import ReindexResult, ReindexStage
from site_indexer.main import app, create_app
from site_indexer.typesense import TypesenseClient

ADMIN_KEY = "test-admin-key"


@pytest.fixture
def schema_file(tmp_path):
    path = tmp_path / "schema.json"
    path.write_text(
        json.dumps({"name": "docs", "fields": [{"name": "title", "type": "string"}]}),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def test_settings(schema_file, tmp_path):
    return Settings(
        admin_api_key=SecretStr(ADMIN_KEY),
        schema_path=str(schema_file),
        root_dir=str(tmp_path),
        typesense_api_key=SecretStr("ts-key"),
    )


@pytest.fixture
def mock_runner():
    mock = AsyncMock(spec=ReindexRunner)
    mock.last_result = None
    mock.run.return_value = ReindexResult(
        alias="docs",
        new_collection="docs_2",
        old_collection="docs_1",
        stage=ReindexStage.OLD_GENERATION_DELETED,
        documents_indexed=3,
    )
    return mock


@pytest.fixture
def mock_typesense():
    mock = AsyncMock(spec=TypesenseClient)
    mock.health.return_value = True
    return mock


@pytest.fixture
def client(test_settings, mock_runner, mock_typesense):
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_reindex_runner] = lambda: mock_runner
    app.dependency_overrides[get_typesense_client] = lambda: mock_typesense

    with TestClient(app) as c:
        yield c

    app.dependency_overrides = {}


def test_health(client, mock_typesense):
    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.json()["typesense_ok"] is True
    mock_typesense.health.assert_awaited_once()


def test_health_reports_unreachable_engine(client, mock_typesense):
    mock_typesense.health.return_value = False

    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "degraded"
    assert resp.json()["typesense_ok"] is False


def test_reindex_requires_admin_key(client, mock_runner):
    assert client.post("/reindex").status_code == 403
    assert client.post("/reindex", headers={"x-admin-key": "wrong"}).status_code == 403
    mock_runner.run.assert_not_called()


def test_reindex_disabled_without_configured_key(client, test_settings):
    test_settings.admin_api_key = None

    resp = client.post("/reindex", headers={"x-admin-key": ADMIN_KEY})

    assert resp.status_code == 403
    assert "not configured" in resp.json()["detail"]


def test_reindex_runs_and_returns_result(client, mock_runner):
    resp = client.post("/reindex", headers={"x-admin-key": ADMIN_KEY})

    assert resp.status_code == 200
    data = resp.json()
    assert data["new_collection"] == "docs_2"
    assert data["stage"] == "old_generation_deleted"
    assert data["documents_indexed"] == 3

    config = mock_runner.run.await_args.args[0]
    assert config.collection_schema.name == "docs"
    assert config.dry_run is False


def test_reindex_accepts_key_in_query_and_overrides(client, mock_runner):
    resp = client.post(
        "/reindex",
        params={"key": ADMIN_KEY},
        json={"dry_run": True, "document_error_policy": "skip"},
    )

    assert resp.status_code == 200
    config = mock_runner.run.await_args.args[0]
    assert config.dry_run is True
    assert config.document_error_policy is DocumentErrorPolicy.SKIP


def test_concurrent_reindex_conflicts(client, mock_runner):
    mock_runner.run.side_effect = ReindexBusyError("A reindex of 'docs' is already running")

    resp = client.post("/reindex", headers={"x-admin-key": ADMIN_KEY})

    assert resp.status_code == 409


def test_aborted_reindex_returns_partial_result(client, mock_runner):
    partial = ReindexResult(alias="docs", new_collection="docs_2", stage=ReindexStage.ABORTED)
    mock_runner.run.side_effect = ReindexAbortedError(
        "Could not create collection docs_2",
        stage=ReindexStage.OLD_GENERATION_DISCOVERED,
        result=partial,
    )

    resp = client.post("/reindex", headers={"x-admin-key": ADMIN_KEY})

    assert resp.status_code == 500
    data = resp.json()
    assert data["error"] == "reindex_aborted"
    assert data["stage"] == "old_generation_discovered"
    assert data["result"]["stage"] == "aborted"


def test_invalid_schema_file_is_reported(client, schema_file):
    schema_file.write_text("{broken", encoding="utf-8")

    resp = client.post("/reindex", headers={"x-admin-key": ADMIN_KEY})

    assert resp.status_code == 500
    assert "schema" in resp.json()["detail"]


def test_last_result(client, mock_runner):
    assert client.get("/reindex/last", headers={"x-admin-key": ADMIN_KEY}).status_code == 404

    mock_runner.last_result = ReindexResult(alias="docs", stage=ReindexStage.PARTIAL_FAILURE)
    resp = client.get("/reindex/last", headers={"x-admin-key": ADMIN_KEY})

    assert resp.status_code == 200
    assert resp.json()["stage"] == "partial_failure"


@pytest.mark.asyncio
async def test_runner_rejects_overlapping_runs(make_config):
    runner = ReindexRunner()
    await runner._lock.acquire()
    try:
        with pytest.raises(ReindexBusyError):
            await runner.run(make_config())
    finally:
        runner._lock.release()
    assert runner.busy is False


def test_unhandled_errors_return_generic_500():
    broken = create_app()

    @broken.get("/boom")
    def boom():
        raise ValueError("secret internals")

    with TestClient(broken, raise_server_exceptions=False) as c:
        resp = c.get("/boom")

    assert resp.status_code == 500
    assert resp.json() == {"error": "internal_server_error", "detail": "Internal server error"}
