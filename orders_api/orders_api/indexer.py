"""Elasticsearch projection of orders used for search."""

import threading
from typing import Any

from elasticsearch import BadRequestError, Elasticsearch, NotFoundError

from .logger import search_logger as logger
from .schemas import IndexedOrderDocument, SearchFilters

ORDER_INDEX_MAPPINGS = {
    "properties": {
        "id": {"type": "keyword"},
        "status": {"type": "keyword"},
        "createdAt": {"type": "date"},
        "items": {
            "type": "nested",
            "properties": {
                "productId": {"type": "keyword"},
                "quantity": {"type": "integer"},
                "price": {"type": "scaled_float", "scaling_factor": 100},
            },
        },
    }
}


def build_query(filters: SearchFilters) -> dict[str, Any]:
    """Translate search filters into an Elasticsearch bool query."""
    must: list[dict[str, Any]] = []
    if filters.id:
        must.append({"term": {"id": filters.id}})
    if filters.status:
        must.append({"term": {"status": filters.status.value}})
    if filters.from_date or filters.to_date:
        created_at: dict[str, str] = {}
        if filters.from_date:
            created_at["gte"] = filters.from_date.isoformat()
        if filters.to_date:
            created_at["lte"] = filters.to_date.isoformat()
        must.append({"range": {"createdAt": created_at}})
    if filters.item:
        must.append({"nested": {"path": "items", "query": {"term": {"items.productId": filters.item}}}})
    return {"bool": {"must": must}}


class OrderSearchIndexer:
    """Keeps one document per live order in the orders index.

    The index is created on first use. The check runs once per indexer
    instance and is guarded by a lock, so concurrent first requests create
    it at most once.
    """

    def __init__(self, client: Elasticsearch, index_name: str = "orders", max_results: int = 100):
        self._client = client
        self.index_name = index_name
        self._max_results = max_results
        self._index_ensured = False
        self._lock = threading.Lock()

    def ensure_index(self) -> None:
        if self._index_ensured:
            return
        with self._lock:
            if self._index_ensured:
                return
            if not self._client.indices.exists(index=self.index_name):
                try:
                    self._client.indices.create(index=self.index_name, mappings=ORDER_INDEX_MAPPINGS)
                    logger.info(f"Created search index {self.index_name}")
                except BadRequestError as e:
                    if e.error != "resource_already_exists_exception":
                        raise
                    logger.debug(f"Search index {self.index_name} created concurrently")
            self._index_ensured = True

    def upsert_document(self, order_id: str, document: IndexedOrderDocument) -> None:
        """Replace the whole document of an order."""
        self.ensure_index()
        self._client.index(
            index=self.index_name,
            id=order_id,
            document=document.model_dump(mode="json", by_alias=True),
        )
        logger.debug(f"Indexed order {order_id}")

    def delete_document(self, order_id: str) -> None:
        """Remove an order's document; a missing document is not an error."""
        try:
            self._client.delete(index=self.index_name, id=order_id)
            logger.debug(f"Removed order {order_id} from index")
        except NotFoundError:
            logger.debug(f"Order {order_id} was not indexed")

    def query(self, filters: SearchFilters) -> list[IndexedOrderDocument]:
        """Return the indexed orders matching every given filter."""
        self.ensure_index()
        result = self._client.search(index=self.index_name, query=build_query(filters), size=self._max_results)
        documents = []
        for hit in result["hits"]["hits"]:
            source = hit.get("_source")
            if not source:
                continue
            documents.append(IndexedOrderDocument.model_validate({**source, "id": str(hit["_id"])}))
        return documents

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except Exception as e:
            logger.error(f"Elasticsearch connection failed: {e}")
            return False
