"""Orders, positions and holdings endpoints."""

import logging
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List

from ..auth import AuthenticatedUser, get_current_user
from ..config import settings
from ..database import get_db
from ..models import (
    Order, Position, Holding, OrderRequest, OrderPlaced, OrderSchema,
    HoldingSchema, PositionSchema, DebugUid
)
from ..services.ledger import LedgerService
from ..services.quotes import QuoteService, get_quote_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["portfolio"])


def get_ledger_service() -> LedgerService:
    return LedgerService()


@router.get("/holdings", response_model=List[HoldingSchema])
async def get_holdings(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ledger: LedgerService = Depends(get_ledger_service),
    quotes: QuoteService = Depends(get_quote_service)
) -> List[HoldingSchema]:
    """Holdings with last traded price and mark-to-market."""

    holdings = await ledger.list_aggregates(db, Holding, user.uid)

    results = []
    for h in holdings:
        ltp = await quotes.display_price(h.symbol, fallback=h.avg_price)
        mtm = (ltp - h.avg_price) * h.quantity
        results.append(HoldingSchema(
            id=h.id,
            user_id=h.user_id,
            symbol=h.symbol,
            quantity=h.quantity,
            avg_price=h.avg_price,
            last_updated=h.last_updated,
            ltp=round(ltp or 0.0, 2),
            mtm=round(mtm or 0.0, 2)
        ))

    return results


@router.get("/positions", response_model=List[PositionSchema])
async def get_positions(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ledger: LedgerService = Depends(get_ledger_service),
    quotes: QuoteService = Depends(get_quote_service)
) -> List[PositionSchema]:
    """Open positions with live price and unrealized P&L."""

    positions = await ledger.list_aggregates(db, Position, user.uid)

    results = []
    for p in positions:
        live_price = await quotes.display_price(p.symbol, fallback=p.avg_price)
        pnl = (live_price - p.avg_price) * p.quantity
        results.append(PositionSchema(
            id=p.id,
            user_id=p.user_id,
            symbol=p.symbol,
            quantity=p.quantity,
            avg_price=p.avg_price,
            last_updated=p.last_updated,
            live_price=round(live_price or 0.0, 2),
            pnl=round(pnl or 0.0, 2)
        ))

    return results


@router.get("/orders", response_model=List[OrderSchema])
async def get_orders(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ledger: LedgerService = Depends(get_ledger_service)
) -> List[OrderSchema]:
    """Order history, newest first."""

    logger.info(f"Fetching orders for UID: {user.uid}")
    orders = await ledger.list_orders(db, user.uid)
    logger.info(f"Orders returned: {len(orders)}")

    return [
        OrderSchema(
            id=order.id,
            user_id=order.user_id,
            symbol=order.symbol,
            quantity=order.quantity,
            price=order.price,
            side=order.side,
            status=order.status,
            created_at=order.created_at
        ) for order in orders
    ]


@router.post("/addOrder", response_model=OrderPlaced)
async def add_order(
    request: OrderRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ledger: LedgerService = Depends(get_ledger_service)
) -> OrderPlaced:
    """Record a trade and update the caller's position and holding."""

    order = await ledger.place_order(db, user.uid, request)
    return OrderPlaced(order_id=order.id)


@router.get("/debug/uid", response_model=DebugUid)
async def debug_uid(
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> DebugUid:
    """Compare the caller's uid with the owners of stored orders."""

    if not settings.debug:
        raise HTTPException(status_code=404, detail="Not Found")

    result = await db.execute(select(Order.user_id))
    order_user_ids = list(result.scalars().all())
    logger.info(f"Debug UID: {user.uid} orders owned by {sorted(set(order_user_ids))}")

    return DebugUid(current_user_uid=user.uid, order_user_ids=order_user_ids)
