"""Order status transition hooks.

Side effects of an order changing status (stock movements) are looked up in a
table keyed by ``(old_status, new_status)`` and run in the same session as the
status update, so they commit or roll back together with it. ``"*"`` matches
any status other than the one on the opposite side of the pair.
"""

import logging
from collections.abc import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from ordefy.db.models.order import OrderRow
from ordefy.models.enums import OrderStatus
from ordefy.repositories.order_repo import ProductRepository

logger = logging.getLogger(__name__)

ANY = "*"

StatusHook = Callable[[OrderRow, AsyncSession, list[dict] | None], Awaitable[None]]


def derive_status(payload: dict) -> OrderStatus:
    """Map a Shopify order payload onto an Ordefy order status."""
    if payload.get("cancelled_at"):
        return OrderStatus.CANCELLED
    if payload.get("fulfillment_status") == "fulfilled":
        return OrderStatus.FULFILLED
    if payload.get("financial_status") == "paid":
        return OrderStatus.CONFIRMED
    return OrderStatus.PENDING


async def _adjust_stock(order: OrderRow, line_items: list[dict], session: AsyncSession, sign: int) -> None:
    repo = ProductRepository(session)
    for item in line_items:
        product_id = item.get("product_id")
        quantity = int(item.get("quantity") or 0)
        if product_id is None or quantity <= 0:
            continue
        product = await repo.get_by_shopify_id(order.store_id, str(product_id))
        if product is None:
            logger.warning(
                "Stock not adjusted: product %s not synced (order=%s)", product_id, order.order_id
            )
            continue
        product.stock = max(0, product.stock + sign * quantity)
    await session.flush()


async def decrement_stock(
    order: OrderRow, session: AsyncSession, previous_line_items: list[dict] | None = None
) -> None:
    await _adjust_stock(order, order.line_items or [], session, -1)
    logger.info("Stock decremented for order %s", order.order_id)


async def restore_stock(
    order: OrderRow, session: AsyncSession, previous_line_items: list[dict] | None = None
) -> None:
    # Lines as stored when the stock was taken
    line_items = order.line_items if previous_line_items is None else previous_line_items
    await _adjust_stock(order, line_items or [], session, +1)
    logger.info("Stock restored for order %s", order.order_id)


class StatusHookRegistry:
    def __init__(self) -> None:
        self._hooks: dict[tuple[str, str], list[StatusHook]] = {}

    def register(self, old_status: str, new_status: str, hook: StatusHook) -> None:
        self._hooks.setdefault((old_status, new_status), []).append(hook)

    def resolve(self, old_status: str, new_status: str) -> list[StatusHook]:
        """Exact pair first, then wildcard pairs. No hooks when status is unchanged."""
        if old_status == new_status:
            return []
        hooks = list(self._hooks.get((old_status, new_status), []))
        if not hooks:
            hooks = list(self._hooks.get((ANY, new_status), []))
            hooks += self._hooks.get((old_status, ANY), [])
        return hooks

    async def apply(
        self,
        order: OrderRow,
        old_status: str,
        new_status: str,
        session: AsyncSession,
        previous_line_items: list[dict] | None = None,
    ) -> int:
        """Run every hook for the transition. Exceptions propagate to the caller's transaction.

        ``previous_line_items`` are the order lines as stored before this event
        was applied; hooks undoing an earlier effect read them.
        """
        hooks = self.resolve(old_status, new_status)
        for hook in hooks:
            await hook(order, session, previous_line_items)
        return len(hooks)


def _build_default_hooks() -> StatusHookRegistry:
    registry = StatusHookRegistry()
    registry.register(ANY, OrderStatus.FULFILLED, decrement_stock)
    registry.register(OrderStatus.FULFILLED, ANY, restore_stock)
    return registry


status_hooks = _build_default_hooks()
