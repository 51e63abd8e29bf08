"""Handler registry mapping webhook topics to handler classes."""

from ordefy.workers.base import WebhookHandler


def _build_registry() -> dict[str, type[WebhookHandler]]:
    from ordefy.workers.app_handlers import (
        AppUninstalledHandler,
        CustomerDataRequestHandler,
        CustomerRedactHandler,
        ShopRedactHandler,
    )
    from ordefy.workers.order_handlers import OrderCreatedHandler, OrderUpdatedHandler
    from ordefy.workers.product_handlers import ProductDeletedHandler, ProductUpsertHandler

    return {
        "orders/create": OrderCreatedHandler,
        "orders/updated": OrderUpdatedHandler,
        "products/create": ProductUpsertHandler,
        "products/update": ProductUpsertHandler,
        "products/delete": ProductDeletedHandler,
        "app/uninstalled": AppUninstalledHandler,
        "customers/data_request": CustomerDataRequestHandler,
        "customers/redact": CustomerRedactHandler,
        "shop/redact": ShopRedactHandler,
    }


_registry: dict[str, type[WebhookHandler]] = {}


def _ensure_registry() -> None:
    if not _registry:
        _registry.update(_build_registry())


def register_handler(topic: str, handler_class: type[WebhookHandler]) -> None:
    """Register a handler class for a topic."""
    _ensure_registry()
    _registry[topic] = handler_class


def unregister_handler(topic: str) -> None:
    _ensure_registry()
    _registry.pop(topic, None)


def get_handler(topic: str) -> WebhookHandler | None:
    """Get a handler instance for a topic."""
    _ensure_registry()
    cls = _registry.get(topic)
    return cls() if cls else None


def registered_topics() -> list[str]:
    _ensure_registry()
    return sorted(_registry)
