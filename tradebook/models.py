"""Database models and Pydantic schemas."""

from sqlalchemy import Column, String, Float, Integer, DateTime, UniqueConstraint
from sqlalchemy.orm import declared_attr
from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel
from enum import Enum

from .database import Base


class OrderSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


ORDER_STATUS_COMPLETED = "Completed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive timestamps (SQLite drops the offset) and convert aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# SQLAlchemy Models
class Order(Base):
    """Append-only log of placed orders."""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False, index=True)
    symbol = Column(String(20), nullable=False)
    quantity = Column(Float, nullable=False)
    price = Column(Float, nullable=False)
    side = Column(String(4), nullable=False)  # BUY, SELL
    status = Column(String(20), nullable=False, default=ORDER_STATUS_COMPLETED)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class AggregateMixin:
    """Per (user, symbol) quantity and average cost."""

    @declared_attr
    def __table_args__(cls):
        return (UniqueConstraint("user_id", "symbol", name=f"uq_{cls.__tablename__}_user_symbol"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(128), nullable=False, index=True)
    symbol = Column(String(20), nullable=False)
    quantity = Column(Float, nullable=False)
    avg_price = Column(Float, nullable=False)
    last_updated = Column(DateTime(timezone=True), default=utcnow, nullable=False)


class Position(AggregateMixin, Base):
    """Open positions, recomputed on every trade."""
    __tablename__ = "positions"


class Holding(AggregateMixin, Base):
    """Long-term holdings, recomputed on every trade."""
    __tablename__ = "holdings"


# Pydantic Schemas
class CamelSchema(BaseModel):
    class Config:
        from_attributes = True
        populate_by_name = True
        alias_generator = to_camel


class OrderRequest(CamelSchema):
    """Request schema for placing an order."""
    symbol: str = Field(min_length=1)
    quantity: float = Field(gt=0, allow_inf_nan=False)
    price: float = Field(gt=0, allow_inf_nan=False)
    side: OrderSide = Field(alias="type")

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, value: str) -> str:
        value = value.strip().upper()
        if not value:
            raise ValueError("symbol must not be blank")
        return value

    @field_validator("side", mode="before")
    @classmethod
    def normalize_side(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value


class OrderPlaced(CamelSchema):
    success: bool = True
    message: str = "Order placed successfully"
    order_id: int


class OrderSchema(CamelSchema):
    """Pydantic schema for orders."""
    id: int
    user_id: str
    symbol: str
    quantity: float
    price: float
    side: OrderSide = Field(alias="type")
    status: str
    created_at: Optional[datetime] = None

    created_at_utc = field_validator("created_at")(as_utc)


class AggregateSchema(CamelSchema):
    id: int
    user_id: str
    symbol: str
    quantity: float
    avg_price: float
    last_updated: Optional[datetime] = None

    last_updated_utc = field_validator("last_updated")(as_utc)


class HoldingSchema(AggregateSchema):
    """Holding enriched with last traded price and mark-to-market."""
    ltp: float
    mtm: float


class PositionSchema(AggregateSchema):
    """Position enriched with live price and unrealized P&L."""
    live_price: float
    pnl: float


class StockAnalysis(BaseModel):
    symbol: str
    price: float
    analysis: str


class DebugUid(CamelSchema):
    current_user_uid: str
    order_user_ids: List[str] = Field(default_factory=list)
