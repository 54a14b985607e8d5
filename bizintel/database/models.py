"""
Database Models

Relational schema read and written by the prediction pipeline.

Reference Tables:
- Product: Product catalog with cost/selling price
- Customer: Customer master data with credit limit
- InventoryRecord: Current stock level per product

Fact Tables:
- Transaction: Sales invoices with payment status (never mutated by the pipeline)

Prediction Tables (append-only, partitioned by run):
- PredictionRun: One record per pipeline execution
- TransactionPrediction: Monthly demand/revenue forecast per product
- CustomerRiskScore: Payment risk score per customer
- CashFlowForecast: Monthly portfolio cash inflow scenarios
- InventoryForecast: Safety stock and stockout risk per product
"""

from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional, List
import uuid

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


# JSONB on PostgreSQL, plain JSON elsewhere
JSONType = JSON().with_variant(JSONB(), "postgresql")


# =============================================================================
# ENUMERATIONS
# =============================================================================

class PaymentStatus(str, Enum):
    """Invoice payment status"""
    PAID = "Paid"
    PARTIAL = "Partial"
    OVERDUE = "Overdue"
    PENDING = "Pending"


class RunStatus(str, Enum):
    """Prediction run lifecycle"""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


# =============================================================================
# REFERENCE TABLES
# =============================================================================

class Product(Base):
    """Product catalog"""
    __tablename__ = "products"

    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    product_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    product_name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    subcategory: Mapped[Optional[str]] = mapped_column(String(100))
    cost_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    selling_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    transactions: Mapped[List["Transaction"]] = relationship(back_populates="product")
    inventory: Mapped[Optional["InventoryRecord"]] = relationship(back_populates="product")

    __table_args__ = (
        Index("ix_products_category", "category"),
    )


class Customer(Base):
    """Customer master data"""
    __tablename__ = "customers"

    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    customer_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    customer_name: Mapped[str] = mapped_column(String(255), nullable=False)
    customer_type: Mapped[Optional[str]] = mapped_column(String(50))
    region: Mapped[Optional[str]] = mapped_column(String(100))
    city: Mapped[Optional[str]] = mapped_column(String(100))
    state: Mapped[Optional[str]] = mapped_column(String(100))
    credit_limit: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2))
    payment_terms: Mapped[Optional[int]] = mapped_column(Integer)  # days

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    transactions: Mapped[List["Transaction"]] = relationship(back_populates="customer")

    __table_args__ = (
        Index("ix_customers_region", "region"),
    )


class InventoryRecord(Base):
    """Current stock position per product"""
    __tablename__ = "inventory"

    inventory_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("products.product_id"), unique=True, nullable=False
    )
    current_stock: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)
    reorder_point: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now()
    )

    product: Mapped["Product"] = relationship(back_populates="inventory")


# =============================================================================
# FACT TABLES
# =============================================================================

class Transaction(Base):
    """
    Sales Transaction Fact Table

    Grain: One row per invoice line. Source of truth for every model.
    """
    __tablename__ = "transactions"

    transaction_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    transaction_code: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)

    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.customer_id"), nullable=False
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("products.product_id"), nullable=False
    )

    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)

    # Payment
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus), default=PaymentStatus.PENDING
    )
    payment_due_date: Mapped[Optional[date]] = mapped_column(Date)
    payment_received_date: Mapped[Optional[date]] = mapped_column(Date)
    outstanding_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=0)

    invoice_number: Mapped[Optional[str]] = mapped_column(String(50))
    region: Mapped[Optional[str]] = mapped_column(String(100))
    salesperson: Mapped[Optional[str]] = mapped_column(String(100))

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now()
    )

    customer: Mapped["Customer"] = relationship(back_populates="transactions")
    product: Mapped["Product"] = relationship(back_populates="transactions")

    __table_args__ = (
        Index("ix_transactions_customer", "customer_id"),
        Index("ix_transactions_product", "product_id"),
        Index("ix_transactions_date", "transaction_date"),
        Index("ix_transactions_region", "region"),
    )


# =============================================================================
# PREDICTION TABLES
# =============================================================================

class PredictionRun(Base):
    """
    Prediction Run

    Created before any model executes and finalized once every write has
    been attempted. Historical runs are retained for audit and backtesting.
    """
    __tablename__ = "prediction_runs"

    run_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    run_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
    model_version: Mapped[str] = mapped_column(String(20), nullable=False)
    prediction_horizon: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[RunStatus] = mapped_column(
        SQLEnum(RunStatus), default=RunStatus.RUNNING, nullable=False
    )
    total_predictions: Mapped[int] = mapped_column(Integer, default=0)
    avg_confidence: Mapped[Optional[float]] = mapped_column(Float)
    error_message: Mapped[Optional[str]] = mapped_column(Text)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime)

    __table_args__ = (
        Index("ix_prediction_runs_status_run_at", "status", "run_at"),
    )


class TransactionPrediction(Base):
    """Monthly demand and revenue forecast per product"""
    __tablename__ = "transaction_predictions"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    prediction_run_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("prediction_runs.run_id"), nullable=False
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("products.product_id"), nullable=False
    )
    prediction_month: Mapped[date] = mapped_column(Date, nullable=False)
    predicted_quantity: Mapped[float] = mapped_column(Float, nullable=False)
    predicted_revenue: Mapped[float] = mapped_column(Float, nullable=False)
    confidence_score: Mapped[Optional[float]] = mapped_column(Float)
    model_used: Mapped[str] = mapped_column(String(50), nullable=False)
    trend_direction: Mapped[str] = mapped_column(String(10), nullable=False)
    growth_rate: Mapped[float] = mapped_column(Float, default=0)

    __table_args__ = (
        Index("ix_transaction_predictions_run", "prediction_run_id"),
        Index("ix_transaction_predictions_product", "product_id"),
    )


class CustomerRiskScore(Base):
    """Payment risk score per customer"""
    __tablename__ = "customer_risk_scores"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    prediction_run_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("prediction_runs.run_id"), nullable=False
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("customers.customer_id"), nullable=False
    )
    risk_score: Mapped[float] = mapped_column(Float, nullable=False)
    risk_level: Mapped[str] = mapped_column(String(10), nullable=False)
    payment_delay_probability: Mapped[float] = mapped_column(Float, nullable=False)
    expected_delay_days: Mapped[float] = mapped_column(Float, default=0)
    overdue_invoice_count: Mapped[int] = mapped_column(Integer, default=0)
    total_outstanding: Mapped[float] = mapped_column(Float, default=0)
    credit_utilization: Mapped[float] = mapped_column(Float, default=0)
    features: Mapped[Optional[dict]] = mapped_column(JSONType)

    __table_args__ = (
        Index("ix_customer_risk_scores_run", "prediction_run_id"),
        Index("ix_customer_risk_scores_level", "risk_level"),
    )


class CashFlowForecast(Base):
    """Monthly cash inflow scenarios for the whole portfolio"""
    __tablename__ = "cash_flow_forecasts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    prediction_run_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("prediction_runs.run_id"), nullable=False
    )
    forecast_month: Mapped[date] = mapped_column(Date, nullable=False)
    expected_inflow: Mapped[float] = mapped_column(Float, nullable=False)
    best_case_inflow: Mapped[float] = mapped_column(Float, nullable=False)
    worst_case_inflow: Mapped[float] = mapped_column(Float, nullable=False)
    most_likely_inflow: Mapped[float] = mapped_column(Float, nullable=False)
    expected_delay: Mapped[float] = mapped_column(Float, default=0)
    collection_rate: Mapped[float] = mapped_column(Float, nullable=False)
    confidence_score: Mapped[Optional[float]] = mapped_column(Float)
    model_used: Mapped[str] = mapped_column(String(50), nullable=False)

    __table_args__ = (
        Index("ix_cash_flow_forecasts_run", "prediction_run_id"),
    )


class InventoryForecast(Base):
    """Safety stock, reorder point and stockout risk per product"""
    __tablename__ = "inventory_forecasts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    prediction_run_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("prediction_runs.run_id"), nullable=False
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("products.product_id"), nullable=False
    )
    current_stock: Mapped[float] = mapped_column(Float, default=0)
    predicted_monthly_demand: Mapped[float] = mapped_column(Float, nullable=False)
    demand_volatility: Mapped[float] = mapped_column(Float, nullable=False)
    volatility_level: Mapped[str] = mapped_column(String(10), nullable=False)
    safety_stock: Mapped[float] = mapped_column(Float, nullable=False)
    reorder_point: Mapped[float] = mapped_column(Float, nullable=False)
    stockout_probability: Mapped[float] = mapped_column(Float, nullable=False)
    days_until_stockout: Mapped[float] = mapped_column(Float, nullable=False)
    recommendation: Mapped[str] = mapped_column(Text, nullable=False)
    confidence_score: Mapped[Optional[float]] = mapped_column(Float)

    __table_args__ = (
        Index("ix_inventory_forecasts_run", "prediction_run_id"),
        Index("ix_inventory_forecasts_product", "product_id"),
    )
