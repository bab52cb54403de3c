"""Order mutations: one transaction, then propagation to Kafka and search."""

from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Optional

from .database import Database
from .errors import NotFoundError
from .indexer import OrderSearchIndexer
from .logger import logger
from .models import Order, OrderStatus
from .producer import OrderEventProducer
from .reconciler import DesiredItem, OrderReconciler
from .repositories import OrderRepository
from .schemas import IndexedOrderDocument, OrderEvent, OrderView, SearchFilters, lean_items


def build_order_view(order: Order) -> OrderView:
    return OrderView.model_validate(order)


def build_order_event(order: Order) -> OrderEvent:
    return OrderEvent(id=order.id, status=order.status, items=lean_items(order.items))


def build_indexed_document(order: Order) -> IndexedOrderDocument:
    return IndexedOrderDocument(
        id=order.id,
        status=order.status,
        created_at=order.created_at,
        items=lean_items(order.items),
    )


class OrderService:
    """Entry point for creating, updating, deleting and reading orders.

    Every mutation runs in a single record-store transaction. Only after it
    commits is the change published to Kafka and written to the search
    index; failures there are logged and do not undo or fail the mutation.

    Attributes:
        _database: Record store.
        _producer: Kafka publisher for order events.
        _indexer: Search index projection.
    """

    def __init__(self, database: Database, producer: OrderEventProducer, indexer: OrderSearchIndexer):
        self._database = database
        self._producer = producer
        self._indexer = indexer

    def create(self, items: Sequence[DesiredItem], status: Optional[OrderStatus] = None) -> OrderView:
        """Create an order and reserve stock for its items.

        Raises:
            NotFoundError: If a product does not exist.
            InsufficientStockError: If a product cannot cover its quantity.
            ValidationFailure: If an item entry is malformed.
        """
        with self._database.session_scope() as session:
            order = OrderRepository(session).add(Order(status=status or OrderStatus.PENDING, deleted=False))
            OrderReconciler.for_session(session).reconcile(order, items)
            view = build_order_view(order)
            event = build_order_event(order)
            document = build_indexed_document(order)
        logger.info(f"Order {view.id} created with {len(view.items)} items")

        self._publish(self._producer.publish_order_created, event)
        self._index(document)
        return view

    def update(
        self,
        order_id: str,
        status: Optional[OrderStatus] = None,
        items: Optional[Sequence[DesiredItem]] = None,
    ) -> OrderView:
        """Change an order's status and/or replace its item list.

        ``items``, when given, is the complete desired list (see
        :class:`OrderReconciler`). With neither argument the order is
        returned unchanged and nothing is propagated.

        Raises:
            NotFoundError: If the order, an item or a product does not exist.
            InsufficientStockError: If a product cannot cover a net debit.
            ValidationFailure: If an item entry is malformed.
        """
        changed = status is not None or items is not None
        with self._database.session_scope() as session:
            orders = OrderRepository(session)
            order = orders.get_live(order_id, for_update=changed)
            if order is None:
                raise NotFoundError("order", order_id)
            if changed:
                if status is not None:
                    order.status = status
                if items is not None:
                    OrderReconciler.for_session(session).reconcile(order, items)
                order.updated_at = datetime.now(timezone.utc)
                orders.save(order)
            view = build_order_view(order)
            event = build_order_event(order)
            document = build_indexed_document(order)

        if not changed:
            return view
        logger.info(f"Order {order_id} updated | status={view.status.value} | items={len(view.items)}")

        self._publish(self._producer.publish_order_updated, event)
        self._index(document)
        return view

    def delete(self, order_id: str) -> None:
        """Soft-delete an order.

        Items and their stock reservations are left as they are.

        Raises:
            NotFoundError: If the order does not exist or is already deleted.
        """
        with self._database.session_scope() as session:
            orders = OrderRepository(session)
            order = orders.get_live(order_id, for_update=True)
            if order is None:
                raise NotFoundError("order", order_id)
            order.deleted = True
            order.updated_at = datetime.now(timezone.utc)
            orders.save(order)
        logger.info(f"Order {order_id} deleted")

        try:
            self._indexer.delete_document(order_id)
        except Exception as e:
            logger.error(f"Failed to remove order {order_id} from search index: {e}")

    def list_orders(self) -> list[OrderView]:
        with self._database.session_scope() as session:
            return [build_order_view(order) for order in OrderRepository(session).list_live()]

    def find_one(self, order_id: str) -> OrderView:
        with self._database.session_scope() as session:
            order = OrderRepository(session).get_live(order_id)
            if order is None:
                raise NotFoundError("order", order_id)
            return build_order_view(order)

    def search(self, filters: SearchFilters) -> list[IndexedOrderDocument]:
        """Query the search index. Results may lag behind the record store."""
        return self._indexer.query(filters)

    def _publish(self, publish, event: OrderEvent) -> None:
        try:
            publish(event)
        except Exception as e:
            logger.error(f"Failed to publish event for order {event.id}: {e}")

    def _index(self, document: IndexedOrderDocument) -> None:
        try:
            self._indexer.upsert_document(document.id, document)
        except Exception as e:
            logger.error(f"Failed to index order {document.id}: {e}")
