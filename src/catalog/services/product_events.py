"""
Product Event Service

In-process publish/subscribe bus for product lifecycle notifications.

Events are advisory: there is no acknowledgment and no delivery guarantee.
Emission is gated by PRODUCT_ENABLE_EVENT_EMISSION (off by default), and a
failing listener is logged without affecting the emitter or other listeners.
"""

from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from src.catalog.models.product import Product
from src.core.config.constants import ProductEventType, Stage
from src.core.config.settings import get_settings
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProductEvent:
    """Payload delivered to listeners."""

    event_type: ProductEventType
    product_id: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    product: Product | None = None
    user_id: str | None = None


ProductEventListener = Callable[[ProductEvent], None]


class ProductEventService:
    """
    Product notification bus.

    Usage:
        events = ProductEventService(settings)
        events.on(ProductEventType.CREATED, lambda event: ...)
        events.emit_product_created(product, user_id="u-1")
    """

    def __init__(self, settings=None):
        self._settings = settings or get_settings()
        self._listeners: dict[ProductEventType, list[ProductEventListener]] = defaultdict(list)

    @property
    def enabled(self) -> bool:
        return self._settings.PRODUCT_ENABLE_EVENT_EMISSION

    def on(self, event_type: ProductEventType, listener: ProductEventListener) -> None:
        self._listeners[ProductEventType(event_type)].append(listener)

    def off(self, event_type: ProductEventType, listener: ProductEventListener) -> None:
        listeners = self._listeners.get(ProductEventType(event_type), [])
        if listener in listeners:
            listeners.remove(listener)

    def listener_count(self, event_type: ProductEventType) -> int:
        return len(self._listeners.get(ProductEventType(event_type), []))

    def emit(self, event: ProductEvent) -> int:
        """
        Deliver an event to every listener of its type.

        Returns:
            Number of listeners that handled the event without raising
        """
        delivered = 0
        for listener in list(self._listeners.get(event.event_type, [])):
            try:
                listener(event)
                delivered += 1
            except Exception as e:
                logger.warning(
                    "Product event listener failed",
                    stage=Stage.EVENTS.value,
                    event_type=event.event_type.value,
                    product_id=event.product_id,
                    error=str(e),
                )
        return delivered

    def _publish(
        self,
        event_type: ProductEventType,
        product_id: int,
        product: Product | None = None,
        user_id: str | None = None,
    ) -> ProductEvent | None:
        if not self.enabled:
            return None
        event = ProductEvent(
            event_type=event_type, product_id=product_id, product=product, user_id=user_id
        )
        self.emit(event)
        logger.debug(
            "Event emitted",
            stage=Stage.EVENTS.value,
            event_type=event_type.value,
            product_id=product_id,
        )
        return event

    def emit_product_created(self, product: Product, user_id: str | None = None) -> ProductEvent | None:
        return self._publish(ProductEventType.CREATED, product.id, product, user_id)

    def emit_product_updated(self, product: Product, user_id: str | None = None) -> ProductEvent | None:
        return self._publish(ProductEventType.UPDATED, product.id, product, user_id)

    def emit_product_deleted(self, product_id: int, user_id: str | None = None) -> ProductEvent | None:
        return self._publish(ProductEventType.DELETED, product_id, user_id=user_id)

    def emit_product_viewed(self, product_id: int, user_id: str | None = None) -> ProductEvent | None:
        return self._publish(ProductEventType.VIEWED, product_id, user_id=user_id)

    def setup_event_listeners(self) -> None:
        """Install the default logging listeners for every event type."""
        for event_type in ProductEventType:
            self.on(event_type, _log_event)


def _log_event(event: ProductEvent) -> None:
    logger.info(
        "Product event",
        stage=Stage.EVENTS.value,
        event_type=event.event_type.value,
        product_id=event.product_id,
        user_id=event.user_id,
        timestamp=event.timestamp.isoformat(),
    )
