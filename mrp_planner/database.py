"""SQLAlchemy engine, session and table models for the MRP planner."""
from __future__ import annotations

from datetime import datetime
from typing import Iterator

from sqlalchemy import (
    JSON,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, relationship, sessionmaker

from mrp_planner.settings import Settings


def make_engine(database_url: str) -> Engine:
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    return create_engine(database_url, connect_args=connect_args)


engine = make_engine(Settings.get().database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def init_db(bind: Engine | None = None) -> None:
    Base.metadata.create_all(bind=bind or engine)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# ═══════════════════════════════════════════════════════════════════════════════
# MASTER DATA
# ═══════════════════════════════════════════════════════════════════════════════

class SohRecord(Base):
    """Stock on hand per component part code."""
    __tablename__ = "soh"

    id = Column(Integer, primary_key=True, index=True)
    part_code = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(String(255), nullable=True)
    stock = Column(Float, nullable=True, default=0)
    safety_stock = Column(Float, nullable=True, default=0)
    part_type = Column(String(100), nullable=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ProductRecord(Base):
    """Finished product (sold by the shipper)."""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    product_code = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(String(255), nullable=True)
    units_per_shipper = Column(Float, nullable=True)
    price_per_shipper = Column(Float, nullable=True)
    daily_run_rate = Column(Float, nullable=True)
    hourly_run_rate = Column(Float, nullable=True)
    mins_per_shipper = Column(Float, nullable=True)

    bom_items = relationship(
        "BomItemRecord", back_populates="product", cascade="all, delete-orphan"
    )


class BomItemRecord(Base):
    """One bill-of-materials line owned by a product."""
    __tablename__ = "bom_items"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    part_code = Column(String(100), nullable=False, index=True)
    per_shipper = Column(Float, nullable=True)
    part_type = Column(String(100), nullable=True)
    part_description = Column(String(255), nullable=True)

    product = relationship("ProductRecord", back_populates="bom_items")


class ForecastRecord(Base):
    """Forecasted shipped units for one product in one month."""
    __tablename__ = "forecasts"

    id = Column(Integer, primary_key=True, index=True)
    product_code = Column(String(100), nullable=False, index=True)
    description = Column(String(255), nullable=True)
    forecast_date = Column(Date, nullable=False)
    quantity = Column(Float, nullable=False, default=0)

    __table_args__ = (
        Index("ix_forecasts_product_date", "product_code", "forecast_date"),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# PURCHASE ORDERS
# ═══════════════════════════════════════════════════════════════════════════════

class PurchaseOrderRecord(Base):
    """Customer purchase order for a finished product."""
    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True, index=True)
    po_number = Column(String(100), unique=True, nullable=False, index=True)
    product_code = Column(String(100), nullable=False, index=True)
    customer_name = Column(String(255), nullable=False)
    status = Column(JSON, nullable=False, default=lambda: ["Open"])
    po_created_date = Column(Date, nullable=False)
    po_received_date = Column(Date, nullable=False)
    requested_delivery_date = Column(Date, nullable=True)
    ordered_qty_pieces = Column(Float, nullable=False, default=0)
    ordered_qty_shippers = Column(Float, nullable=False, default=0)
    customer_amount = Column(Float, nullable=False, default=0)
    system_amount = Column(Float, nullable=False, default=0)
    delivery_date = Column(Date, nullable=True)
    delivery_docket_number = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
