"""
Typesense API Client

This module implements a small asynchronous client for the parts of the
Typesense HTTP API a reindex run needs: collections, aliases, documents and
synonyms.

Design Goals
------------
- One explicit client handle per run (no module-level connection state)
- Node failover and bounded retries on transport errors only
- HTTP error statuses mapped to typed exceptions, never retried
- Fully dependency-injectable for testing (custom httpx transport)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from ..config import ServerConfig

logger = logging.getLogger("indexer.typesense")

API_KEY_HEADER = "X-TYPESENSE-API-KEY"


# ---------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------

class TypesenseError(RuntimeError):
    """Base error for Typesense client failures."""


class TypesenseTransportError(TypesenseError):
    """Raised when no node could be reached after all retries."""


class TypesenseRequestError(TypesenseError):
    """
    Raised when Typesense answers with an error status.

    Attributes
    ----------
    status_code : int
        HTTP status returned by the server.
    """

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class ObjectNotFound(TypesenseRequestError):
    """Raised on 404 (missing collection, alias, or synonym)."""


class ObjectAlreadyExists(TypesenseRequestError):
    """Raised on 409 (e.g. a collection name that is already taken)."""


# ---------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------

class TypesenseClient:
    """
    Asynchronous Typesense client.

    Use as an async context manager so the underlying connection pool is
    closed when the run finishes:

        async with TypesenseClient(server) as client:
            await client.create_collection(schema_payload)
    """

    def __init__(
        self,
        server: ServerConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Parameters
        ----------
        server : ServerConfig
            Nodes, API key, timeout and retry settings.

        transport : Optional[httpx.AsyncBaseTransport]
            Optional transport override (e.g. httpx.MockTransport in tests).
        """
        self._server = server
        self._node_urls = [node.base_url for node in server.nodes]
        self._node_index = 0
        self._http = httpx.AsyncClient(
            timeout=server.connection_timeout_seconds,
            headers={API_KEY_HEADER: server.api_key.get_secret_value()},
            transport=transport,
        )

    async def __aenter__(self) -> "TypesenseClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Internal Helpers
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send one API request, failing over between nodes on transport errors.

        Raises
        ------
        TypesenseRequestError
            If the server answers with a 4xx/5xx status.

        TypesenseTransportError
            If every attempt failed at the transport level.
        """
        attempts = self._server.num_retries + 1
        last_exc: Optional[Exception] = None

        for attempt in range(attempts):
            url = self._node_urls[self._node_index] + path
            try:
                resp = await self._http.request(method, url, json=json)
            except httpx.TransportError as exc:
                last_exc = exc
                logger.warning(
                    "Typesense request %s %s failed (%s), attempt %d/%d",
                    method,
                    url,
                    type(exc).__name__,
                    attempt + 1,
                    attempts,
                )
                self._node_index = (self._node_index + 1) % len(self._node_urls)
                if attempt + 1 < attempts and self._server.retry_interval_seconds:
                    await asyncio.sleep(self._server.retry_interval_seconds)
                continue

            if resp.status_code >= 400:
                raise self._error_for(resp)

            if not resp.content:
                return None
            try:
                return resp.json()
            except ValueError as exc:
                raise TypesenseRequestError(
                    f"Response from {method} {path} is not valid JSON: {resp.text[:200]!r}",
                    resp.status_code,
                ) from exc

        raise TypesenseTransportError(
            f"{method} {path} failed after {attempts} attempt(s): "
            f"{type(last_exc).__name__}: {last_exc}"
        ) from last_exc

    @staticmethod
    def _error_for(resp: httpx.Response) -> TypesenseRequestError:
        try:
            body = resp.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            detail = body.get("message", resp.text)
        else:
            detail = resp.text

        message = f"Request failed with HTTP code {resp.status_code} | Server said: {detail}"

        if resp.status_code == 404:
            return ObjectNotFound(message, resp.status_code)
        if resp.status_code == 409:
            return ObjectAlreadyExists(message, resp.status_code)
        return TypesenseRequestError(message, resp.status_code)

    @staticmethod
    def _segment(value: str) -> str:
        return quote(value, safe="")

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    async def create_collection(self, schema: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/collections", json=schema)

    async def delete_collection(self, name: str) -> Dict[str, Any]:
        return await self._request("DELETE", f"/collections/{self._segment(name)}")

    # ------------------------------------------------------------------
    # Aliases
    # ------------------------------------------------------------------

    async def retrieve_alias(self, name: str) -> Dict[str, Any]:
        """Return {"name": ..., "collection_name": ...} for an alias."""
        return await self._request("GET", f"/aliases/{self._segment(name)}")

    async def upsert_alias(self, name: str, collection_name: str) -> Dict[str, Any]:
        return await self._request(
            "PUT",
            f"/aliases/{self._segment(name)}",
            json={"collection_name": collection_name},
        )

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def create_document(
        self,
        collection_name: str,
        document: Dict[str, Any],
    ) -> Dict[str, Any]:
        return await self._request(
            "POST",
            f"/collections/{self._segment(collection_name)}/documents",
            json=document,
        )

    # ------------------------------------------------------------------
    # Synonyms
    # ------------------------------------------------------------------

    async def retrieve_synonyms(self, collection_name: str) -> List[Dict[str, Any]]:
        data = await self._request(
            "GET",
            f"/collections/{self._segment(collection_name)}/synonyms",
        )
        if not data:
            return []
        synonyms = (data.get("synonyms") or []) if isinstance(data, dict) else data
        if isinstance(synonyms, dict):
            return list(synonyms.values())
        return list(synonyms)

    async def upsert_synonym(
        self,
        collection_name: str,
        synonym_id: str,
        body: Dict[str, Any],
    ) -> Dict[str, Any]:
        return await self._request(
            "PUT",
            f"/collections/{self._segment(collection_name)}/synonyms/{self._segment(synonym_id)}",
            json=body,
        )

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    async def health(self) -> bool:
        try:
            data = await self._request("GET", "/health")
        except TypesenseError:
            return False
        return isinstance(data, dict) and bool(data.get("ok"))
