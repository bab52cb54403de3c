"""Orders API server."""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from elasticsearch import Elasticsearch
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import Settings, load_settings
from .database import Database
from .errors import InsufficientStockError, NotFoundError, OrdersError, ProductInUseError, ValidationFailure
from .indexer import OrderSearchIndexer
from .logger import logger
from .models import OrderStatus
from .producer import OrderEventProducer
from .products import ProductService
from .schemas import (
    IndexedOrderDocument,
    OrderCreate,
    OrderUpdate,
    OrderView,
    ProductCreate,
    ProductUpdate,
    ProductView,
    SearchFilters,
)
from .service import OrderService

ERROR_STATUS = {
    NotFoundError: 404,
    InsufficientStockError: 409,
    ProductInUseError: 409,
    ValidationFailure: 422,
}


class AppState:
    """Collaborators built at startup and shared by every request."""

    def __init__(self) -> None:
        self.settings: Optional[Settings] = None
        self.database: Optional[Database] = None
        self.producer: Optional[OrderEventProducer] = None
        self.indexer: Optional[OrderSearchIndexer] = None
        self.order_service: Optional[OrderService] = None
        self.product_service: Optional[ProductService] = None


def configure_state(app_state: AppState, settings: Settings) -> AppState:
    """Wire the record store, Kafka producer and search indexer into the services."""
    app_state.settings = settings
    app_state.database = Database(settings.database_url)
    app_state.producer = OrderEventProducer(
        settings.kafka_bootstrap_servers,
        client_id=settings.kafka_client_id,
        created_topic=settings.order_created_topic,
        updated_topic=settings.order_updated_topic,
    )
    app_state.indexer = OrderSearchIndexer(
        Elasticsearch(settings.elasticsearch_node),
        index_name=settings.orders_index,
        max_results=settings.search_max_results,
    )
    app_state.order_service = OrderService(app_state.database, app_state.producer, app_state.indexer)
    app_state.product_service = ProductService(app_state.database)
    return app_state


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build collaborators on startup, flush and dispose them on shutdown."""
    configure_state(state, load_settings())
    state.database.create_all()
    try:
        state.indexer.ensure_index()
    except Exception as e:
        logger.warning(f"Search index not ready at startup, will retry on first use: {e}")
    logger.info("Orders API started")

    yield

    logger.info("Shutting down Orders API...")
    state.producer.close()
    state.database.dispose()
    logger.info("Shutdown complete")


app = FastAPI(title="Orders API", lifespan=lifespan)
router = APIRouter()
state = AppState()


def get_order_service() -> OrderService:
    if state.order_service is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return state.order_service


def get_product_service() -> ProductService:
    if state.product_service is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return state.product_service


@app.exception_handler(OrdersError)
async def handle_orders_error(request: Request, exc: OrdersError):
    """Map domain errors to HTTP responses naming the offending record."""
    status_code = next((code for kind, code in ERROR_STATUS.items() if isinstance(exc, kind)), 400)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


@router.get("/health")
def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy"}


@router.get("/health/ready")
def readiness_check():
    """Check the record store, Kafka and Elasticsearch.

    Returns:
        dict: Overall readiness and the status of each dependency.
    """
    checks = {
        "database": bool(state.database and state.database.ping()),
        "kafka": bool(state.producer and state.producer.is_connected()),
        "elasticsearch": bool(state.indexer and state.indexer.ping()),
    }
    return {"status": "ready" if all(checks.values()) else "not_ready", **checks}


@router.post("/orders", response_model=OrderView, status_code=201)
def create_order(payload: OrderCreate, service: OrderService = Depends(get_order_service)):
    """Create an order, reserving stock for every item."""
    return service.create(payload.items, payload.status)


@router.get("/orders", response_model=list[OrderView])
def list_orders(service: OrderService = Depends(get_order_service)):
    return service.list_orders()


@router.get("/orders/search", response_model=list[IndexedOrderDocument])
def search_orders(
    id: Optional[str] = None,
    status: Optional[OrderStatus] = None,
    from_date: Optional[datetime] = Query(None, alias="fromDate"),
    to_date: Optional[datetime] = Query(None, alias="toDate"),
    item: Optional[str] = None,
    service: OrderService = Depends(get_order_service),
):
    """Search orders through the search index.

    Args:
        id: Exact order id
        status: Exact order status
        from_date: Earliest creation time, inclusive
        to_date: Latest creation time, inclusive
        item: Product id the order must contain

    Returns:
        list[IndexedOrderDocument]: Matching indexed orders
    """
    try:
        filters = SearchFilters(id=id, status=status, from_date=from_date, to_date=to_date, item=item)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=[error["msg"] for error in e.errors()])
    return service.search(filters)


@router.get("/orders/{order_id}", response_model=OrderView)
def get_order(order_id: str, service: OrderService = Depends(get_order_service)):
    return service.find_one(order_id)


@router.patch("/orders/{order_id}", response_model=OrderView)
def update_order(order_id: str, payload: OrderUpdate, service: OrderService = Depends(get_order_service)):
    """Update status and/or apply a complete item list to an order."""
    return service.update(order_id, status=payload.status, items=payload.items)


@router.delete("/orders/{order_id}", status_code=204)
def delete_order(order_id: str, service: OrderService = Depends(get_order_service)):
    """Soft-delete an order. Reserved stock is not returned."""
    service.delete(order_id)
    return Response(status_code=204)


@router.post("/products", response_model=ProductView, status_code=201)
def create_product(payload: ProductCreate, service: ProductService = Depends(get_product_service)):
    return service.create(payload)


@router.get("/products", response_model=list[ProductView])
def list_products(service: ProductService = Depends(get_product_service)):
    return service.list_products()


@router.get("/products/{product_id}", response_model=ProductView)
def get_product(product_id: str, service: ProductService = Depends(get_product_service)):
    return service.find_one(product_id)


@router.patch("/products/{product_id}", response_model=ProductView)
def update_product(product_id: str, payload: ProductUpdate, service: ProductService = Depends(get_product_service)):
    return service.update(product_id, payload)


@router.delete("/products/{product_id}", status_code=204)
def delete_product(product_id: str, service: ProductService = Depends(get_product_service)):
    """Delete a product no order item references."""
    service.delete(product_id)
    return Response(status_code=204)


app.include_router(router)
logger.info("API router mounted.")
