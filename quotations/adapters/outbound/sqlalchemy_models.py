from datetime import datetime, timezone
from sqlalchemy import (
    Boolean, Column, Integer, String, Float, Date, DateTime, Text, ForeignKey, Index,
)
from sqlalchemy.orm import DeclarativeBase, relationship


class Base(DeclarativeBase):
    pass


class QuotationProcess(Base):
    __tablename__ = "quotation_processes"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    code = Column(String)
    base_currency = Column(String, nullable=False, default="PEN")
    exchange_rate = Column(Float)
    target_margin_pct = Column(Float)
    notes = Column(Text)
    status = Column(String, default="open")  # "open", "awarded", "closed"
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    baselines = relationship("BaselineItem", back_populates="process", cascade="all, delete-orphan")
    quotations = relationship("Quotation", back_populates="process", cascade="all, delete-orphan")
    orders = relationship("PurchaseOrder", back_populates="process", cascade="all, delete-orphan")
    deliveries = relationship("PurchaseDelivery", back_populates="process", cascade="all, delete-orphan")


class BaselineItem(Base):
    __tablename__ = "baseline_items"

    id = Column(Integer, primary_key=True)
    process_id = Column(Integer, ForeignKey("quotation_processes.id"), nullable=False)
    sheet_name = Column(String, nullable=False)
    row_number = Column(Integer)
    section_path_json = Column(Text)  # JSON array of section labels
    item_code = Column(String)
    description = Column(Text, nullable=False)
    unit = Column(String)
    quantity = Column(Float)
    unit_price = Column(Float)
    total_price = Column(Float)
    provider_quotes_json = Column(Text)  # JSON object {label: price}
    material_id = Column(Integer)

    process = relationship("QuotationProcess", back_populates="baselines")

    __table_args__ = (
        Index("idx_baseline_items_process", "process_id"),
        Index("idx_baseline_items_code", "item_code"),
    )


class Quotation(Base):
    __tablename__ = "quotations"

    id = Column(Integer, primary_key=True)
    process_id = Column(Integer, ForeignKey("quotation_processes.id"), nullable=False)
    supplier_id = Column(Integer)
    supplier_name = Column(String)
    currency = Column(String, nullable=False, default="PEN")
    exchange_rate = Column(Float)
    status = Column(String, default="received")  # "received", "selected", "rejected"
    notes = Column(Text)
    total_amount = Column(Float, default=0.0)
    total_amount_base = Column(Float, default=0.0)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc))

    process = relationship("QuotationProcess", back_populates="quotations")
    items = relationship("QuotationItem", back_populates="quotation", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_quotations_process", "process_id"),
    )


class QuotationItem(Base):
    __tablename__ = "quotation_items"

    id = Column(Integer, primary_key=True)
    quotation_id = Column(Integer, ForeignKey("quotations.id"), nullable=False)
    baseline_item_id = Column(Integer, ForeignKey("baseline_items.id", ondelete="SET NULL"), nullable=True)
    material_id = Column(Integer)
    item_code = Column(String)
    description = Column(Text, nullable=False)
    offered_description = Column(Text)
    brand = Column(String)
    sheet_name = Column(String)
    source_row = Column(Integer)
    unit = Column(String)
    original_unit = Column(String)
    unit_converted = Column(Boolean, default=False)
    quantity = Column(Float)
    unit_price = Column(Float)
    total_price = Column(Float)
    currency = Column(String, nullable=False)
    normalized_price = Column(Float)
    match_score = Column(Float, default=0.0)
    manual = Column(Boolean, default=False)

    quotation = relationship("Quotation", back_populates="items")

    __table_args__ = (
        Index("idx_quotation_items_quotation", "quotation_id"),
        Index("idx_quotation_items_baseline", "baseline_item_id"),
    )


class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True)
    process_id = Column(Integer, ForeignKey("quotation_processes.id"), nullable=False)
    quotation_id = Column(Integer, ForeignKey("quotations.id"), nullable=True)
    supplier_id = Column(Integer)
    supplier_name = Column(String, nullable=False)
    order_number = Column(String, nullable=False)
    sequence = Column(Integer, nullable=False)
    issue_date = Column(Date)
    currency = Column(String, default="PEN")
    subtotal = Column(Float)
    discount = Column(Float)
    igv = Column(Float)
    total = Column(Float)

    process = relationship("QuotationProcess", back_populates="orders")
    lines = relationship("PurchaseOrderLine", back_populates="order", cascade="all, delete-orphan")
    deliveries = relationship("PurchaseDelivery", back_populates="order")

    __table_args__ = (
        Index("idx_purchase_orders_process", "process_id"),
        Index("idx_purchase_orders_quotation", "quotation_id"),
    )


class PurchaseOrderLine(Base):
    __tablename__ = "purchase_order_lines"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("purchase_orders.id"), nullable=False)
    baseline_id = Column(Integer, ForeignKey("baseline_items.id", ondelete="SET NULL"), nullable=True)
    description = Column(Text, nullable=False)
    unit = Column(String)
    quantity = Column(Float)
    unit_price = Column(Float)
    total_price = Column(Float)

    order = relationship("PurchaseOrder", back_populates="lines")

    __table_args__ = (
        Index("idx_purchase_order_lines_order", "order_id"),
    )


class PurchaseDelivery(Base):
    __tablename__ = "purchase_deliveries"

    id = Column(Integer, primary_key=True)
    process_id = Column(Integer, ForeignKey("quotation_processes.id"), nullable=False)
    order_id = Column(Integer, ForeignKey("purchase_orders.id"), nullable=True)
    supplier_id = Column(Integer)
    supplier_name = Column(String, nullable=False)
    guide_number = Column(String)
    guide_key = Column(String)  # punctuation-free guide number used for duplicate checks
    date = Column(Date)
    notes = Column(Text)

    process = relationship("QuotationProcess", back_populates="deliveries")
    order = relationship("PurchaseOrder", back_populates="deliveries")
    items = relationship("PurchaseDeliveryItem", back_populates="delivery", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_purchase_deliveries_process", "process_id"),
        Index("idx_purchase_deliveries_guide_key", "guide_key"),
    )


class PurchaseDeliveryItem(Base):
    __tablename__ = "purchase_delivery_items"

    id = Column(Integer, primary_key=True)
    delivery_id = Column(Integer, ForeignKey("purchase_deliveries.id"), nullable=False)
    baseline_id = Column(Integer, ForeignKey("baseline_items.id", ondelete="SET NULL"), nullable=True)
    order_line_id = Column(Integer, ForeignKey("purchase_order_lines.id", ondelete="SET NULL"), nullable=True)
    description = Column(Text, nullable=False)
    unit = Column(String)
    quantity = Column(Float)
    notes = Column(Text)

    delivery = relationship("PurchaseDelivery", back_populates="items")

    __table_args__ = (
        Index("idx_purchase_delivery_items_delivery", "delivery_id"),
    )
