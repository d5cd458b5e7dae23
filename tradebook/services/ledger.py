"""Order placement and position/holding reconciliation."""

import logging
from typing import List, Tuple, Type

from sqlalchemy import select, desc
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import (
    Order, Position, Holding, AggregateMixin, OrderRequest, OrderSide,
    ORDER_STATUS_COMPLETED, utcnow
)

logger = logging.getLogger(__name__)


def apply_trade(
    quantity: float,
    avg_price: float,
    side: OrderSide,
    trade_quantity: float,
    trade_price: float
) -> Tuple[float, float]:
    """Return the aggregate's (quantity, avg_price) after a trade.

    Buys fold the trade into a quantity-weighted average price. Sells reduce
    the quantity, never below zero, and leave the average price untouched.
    """
    if side == OrderSide.BUY:
        new_quantity = quantity + trade_quantity
        new_avg = (avg_price * quantity + trade_price * trade_quantity) / new_quantity
        return new_quantity, new_avg

    return max(0.0, quantity - trade_quantity), avg_price


class LedgerService:
    """Service for writing orders and keeping aggregates in step."""

    AGGREGATES: Tuple[Type[AggregateMixin], ...] = (Position, Holding)

    async def place_order(
        self,
        db: AsyncSession,
        user_id: str,
        request: OrderRequest
    ) -> Order:
        """Append an order and reconcile the user's position and holding."""

        now = utcnow()
        order = Order(
            user_id=user_id,
            symbol=request.symbol,
            quantity=request.quantity,
            price=request.price,
            side=request.side.value,
            status=ORDER_STATUS_COMPLETED,
            created_at=now
        )
        db.add(order)

        try:
            for model in self.AGGREGATES:
                await self._reconcile(db, model, user_id, request, now)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        await db.refresh(order)

        logger.info(
            f"Order saved: {order.id} {request.side.value} {request.quantity} "
            f"{request.symbol} @ {request.price} user: {user_id}"
        )
        return order

    async def _reconcile(
        self,
        db: AsyncSession,
        model: Type[AggregateMixin],
        user_id: str,
        request: OrderRequest,
        now
    ) -> None:
        result = await db.execute(
            select(model).where(model.user_id == user_id, model.symbol == request.symbol)
        )
        current = result.scalars().first()

        if current is None:
            # Nothing to sell against; no short positions
            if request.side == OrderSide.BUY:
                db.add(model(
                    user_id=user_id,
                    symbol=request.symbol,
                    quantity=request.quantity,
                    avg_price=request.price,
                    last_updated=now
                ))
            return

        quantity, avg_price = apply_trade(
            current.quantity, current.avg_price,
            request.side, request.quantity, request.price
        )

        if quantity <= 0:
            await db.delete(current)
            logger.debug(f"Closed {model.__tablename__} {request.symbol} for {user_id}")
        else:
            current.quantity = quantity
            current.avg_price = avg_price
            current.last_updated = now

    async def list_orders(self, db: AsyncSession, user_id: str) -> List[Order]:
        """Orders for a user, newest first."""
        result = await db.execute(
            select(Order)
            .where(Order.user_id == user_id)
            .order_by(desc(Order.created_at), desc(Order.id))
        )
        return list(result.scalars().all())

    async def list_aggregates(
        self,
        db: AsyncSession,
        model: Type[AggregateMixin],
        user_id: str
    ) -> List[AggregateMixin]:
        result = await db.execute(
            select(model).where(model.user_id == user_id).order_by(model.symbol)
        )
        return list(result.scalars().all())
