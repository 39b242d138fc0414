"""Pinecone vector store over the REST data plane.

Handles:
- Index host resolution by index name
- Grouped upserts keyed by record id, rolled back when a later group fails
- Prefix listing and deletion of a document's records
- Top-K similarity queries with metadata
- Separating unreachable-store errors from rejected requests
"""
from typing import Any, Dict, Iterable, List, Optional, Sequence

import httpx
import structlog

from pdfrag import config
from pdfrag.errors import (
    ConfigurationError,
    VectorIndexError,
    VectorIndexRequestError,
    VectorIndexUnavailableError,
)
from pdfrag.rag.vector_index import IndexRecord, RetrievedMatch, VectorIndex

logger = structlog.get_logger()

PINECONE_API_VERSION = "2024-07"
# Pinecone accepts at most 1000 ids per delete request
DELETE_BATCH_SIZE = 1000


class PineconeVectorIndex(VectorIndex):
    """Pinecone index addressed by name."""

    name = "pinecone"

    def __init__(
        self,
        api_key: str,
        index_name: str = None,
        host: Optional[str] = None,
        namespace: str = "",
        control_url: str = None,
        upsert_batch_size: int = 100,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the Pinecone index client.

        Args:
            api_key: Pinecone API key
            index_name: Name of the index (default from config)
            host: Data plane host; resolved from the index name when omitted
            namespace: Pinecone namespace for all records
            control_url: Pinecone control plane URL
            upsert_batch_size: Records per upsert request
            timeout: Request timeout in seconds
            http_client: Optional shared client (not closed by this class)
        """
        if not api_key:
            raise ConfigurationError("PINECONE_API_KEY is not set in environment")

        self.api_key = api_key
        self.index_name = index_name or config.PINECONE_INDEX
        self.namespace = namespace
        self.control_url = (control_url or config.PINECONE_CONTROL_URL).rstrip("/")
        self.upsert_batch_size = upsert_batch_size
        self.timeout = timeout
        self._host = self._normalize_host(host) if host else None
        self._http_client = http_client

        logger.info(
            "pinecone_index_initialized",
            index_name=self.index_name,
            host_configured=self._host is not None,
        )

    @classmethod
    def from_settings(cls, settings, **kwargs) -> "PineconeVectorIndex":
        return cls(
            api_key=settings.pinecone_api_key,
            index_name=settings.pinecone_index,
            host=settings.pinecone_host,
            namespace=settings.pinecone_namespace,
            timeout=settings.http_timeout,
            **kwargs,
        )

    @staticmethod
    def _normalize_host(host: str) -> str:
        host = host.rstrip("/")
        if not host.startswith(("http://", "https://")):
            host = f"https://{host}"
        return host

    def _headers(self) -> Dict[str, str]:
        return {
            "Api-Key": self.api_key,
            "Content-Type": "application/json",
            "X-Pinecone-API-Version": PINECONE_API_VERSION,
        }

    async def _send(
        self,
        method: str,
        url: str,
        payload: Optional[dict] = None,
        params: Optional[dict] = None,
    ) -> Dict[str, Any]:
        """Send a request and map failures onto the index error kinds."""
        try:
            if self._http_client is not None:
                response = await self._http_client.request(
                    method, url, json=payload, params=params, headers=self._headers()
                )
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.request(
                        method, url, json=payload, params=params, headers=self._headers()
                    )
        except (httpx.TimeoutException, httpx.TransportError) as e:
            logger.error("pinecone_unreachable", url=url, error=str(e), error_type=type(e).__name__)
            raise VectorIndexUnavailableError(f"Pinecone unreachable: {e}") from e

        if not response.is_success:
            logger.error("pinecone_http_error", url=url, status_code=response.status_code)
            if response.status_code in (502, 503, 504):
                raise VectorIndexUnavailableError(
                    f"Pinecone returned {response.status_code}: {response.text[:500]}"
                )
            raise VectorIndexRequestError(
                f"Pinecone returned {response.status_code}: {response.text[:500]}",
                status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise VectorIndexRequestError("Pinecone returned invalid JSON") from e

        if not isinstance(data, dict):
            raise VectorIndexRequestError("Pinecone returned an unexpected response body")
        return data

    async def get_host(self) -> str:
        """Resolve (once) the data plane host for the configured index."""
        if self._host is None:
            data = await self._send("GET", f"{self.control_url}/indexes/{self.index_name}")
            host = data.get("host")
            if not host:
                raise VectorIndexRequestError(
                    f"No host returned for Pinecone index {self.index_name!r}"
                )
            self._host = self._normalize_host(host)
            logger.info("pinecone_host_resolved", index_name=self.index_name, host=self._host)
        return self._host

    async def upsert(self, records: Sequence[IndexRecord]) -> int:
        if not records:
            return 0

        host = await self.get_host()
        upserted = 0
        written: List[str] = []

        for start in range(0, len(records), self.upsert_batch_size):
            group = records[start : start + self.upsert_batch_size]
            payload = {
                "vectors": [record.to_dict() for record in group],
                "namespace": self.namespace,
            }
            try:
                data = await self._send("POST", f"{host}/vectors/upsert", payload)
            except VectorIndexError:
                if written:
                    await self._rollback(host, written)
                raise
            written.extend(record.id for record in group)
            upserted += int(data.get("upsertedCount", len(group)))

        logger.info("pinecone_upsert_completed", index_name=self.index_name, upserted=upserted)
        return upserted

    async def _rollback(self, host: str, ids: List[str]) -> None:
        """Remove the groups already written by a failed upsert."""
        logger.warning("pinecone_upsert_rollback", index_name=self.index_name, records=len(ids))
        try:
            await self._delete_ids(host, ids)
        except VectorIndexError as e:
            logger.error("pinecone_rollback_failed", records=len(ids), error=str(e))

    async def _delete_ids(self, host: str, ids: Sequence[str]) -> None:
        for start in range(0, len(ids), DELETE_BATCH_SIZE):
            payload = {"ids": list(ids[start : start + DELETE_BATCH_SIZE]), "namespace": self.namespace}
            await self._send("POST", f"{host}/vectors/delete", payload)

    async def list_ids(self, prefix: str) -> List[str]:
        """List every record id starting with ``prefix``, following pagination."""
        host = await self.get_host()
        ids: List[str] = []
        token = None

        while True:
            params = {"prefix": prefix, "namespace": self.namespace}
            if token:
                params["paginationToken"] = token
            data = await self._send("GET", f"{host}/vectors/list", params=params)

            ids.extend(str(v["id"]) for v in data.get("vectors") or [] if "id" in v)
            token = (data.get("pagination") or {}).get("next")
            if not token:
                return ids

    async def delete_by_prefix(self, prefix: str, keep: Iterable[str] = ()) -> int:
        keep = set(keep)
        stale = [rid for rid in await self.list_ids(prefix) if rid not in keep]
        if stale:
            await self._delete_ids(await self.get_host(), stale)

        logger.info("pinecone_prefix_deleted", prefix=prefix, deleted=len(stale))
        return len(stale)

    async def query(self, vector: List[float], top_k: int = 3) -> List[RetrievedMatch]:
        if top_k <= 0:
            return []

        host = await self.get_host()
        payload = {
            "vector": list(vector),
            "topK": top_k,
            "includeMetadata": True,
            "includeValues": False,
            "namespace": self.namespace,
        }
        data = await self._send("POST", f"{host}/query", payload)

        raw_matches = data.get("matches") or []
        if not isinstance(raw_matches, list):
            raise VectorIndexRequestError("Pinecone query returned malformed matches")

        matches = []
        for raw in raw_matches:
            try:
                matches.append(
                    RetrievedMatch(
                        id=str(raw["id"]),
                        score=float(raw.get("score", 0.0)),
                        metadata=raw.get("metadata") or {},
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                raise VectorIndexRequestError(f"Malformed Pinecone match: {raw!r}") from e

        matches.sort(key=lambda m: m.score, reverse=True)
        matches = matches[:top_k]

        logger.info(
            "pinecone_query_completed",
            top_k=top_k,
            results_found=len(matches),
        )
        return matches

    def get_stats(self) -> Dict[str, Any]:
        return {
            "backend": self.name,
            "index_name": self.index_name,
            "namespace": self.namespace,
            "host_resolved": self._host is not None,
        }
