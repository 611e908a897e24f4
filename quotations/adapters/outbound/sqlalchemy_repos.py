"""SQLAlchemy implementations of domain repository ports.

Each adapter translates between ORM models (sqlalchemy_models) and
pure domain models (domain.models), keeping the domain layer free
of any infrastructure dependency.
"""

from __future__ import annotations

import json

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from domain.models import (
    BaselineItem as DomainBaselineItem,
    ProcessStatus,
    PurchaseDelivery as DomainPurchaseDelivery,
    PurchaseDeliveryItem as DomainPurchaseDeliveryItem,
    PurchaseOrder as DomainPurchaseOrder,
    PurchaseOrderLine as DomainPurchaseOrderLine,
    Quotation as DomainQuotation,
    QuotationItem as DomainQuotationItem,
    QuotationProcess as DomainQuotationProcess,
    QuotationStatus,
)
from domain.ports import (
    BaselineRepository,
    ProcessRepository,
    PurchaseRepository,
    QuotationItemRepository,
    QuotationRepository,
    UnitOfWork,
)
from quotations.adapters.outbound.sqlalchemy_models import (
    BaselineItem as OrmBaselineItem,
    PurchaseDelivery as OrmPurchaseDelivery,
    PurchaseDeliveryItem as OrmPurchaseDeliveryItem,
    PurchaseOrder as OrmPurchaseOrder,
    PurchaseOrderLine as OrmPurchaseOrderLine,
    Quotation as OrmQuotation,
    QuotationItem as OrmQuotationItem,
    QuotationProcess as OrmQuotationProcess,
)


class SqlAlchemyProcessRepository(ProcessRepository):
    """SQLAlchemy adapter for the ProcessRepository port."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # ── Commands ───────────────────────────────────────────────────────

    def create(self, process: DomainQuotationProcess) -> DomainQuotationProcess:
        orm_obj = OrmQuotationProcess(
            name=process.name,
            code=process.code,
            base_currency=process.base_currency,
            exchange_rate=process.exchange_rate,
            target_margin_pct=process.target_margin_pct,
            notes=process.notes,
            status=process.status.value,
        )
        self._session.add(orm_obj)
        self._session.flush()
        process.id = orm_obj.id
        process.created_at = orm_obj.created_at
        return process

    def delete(self, process_id: int) -> None:
        """Delete a process with its baseline, quotations, orders and deliveries."""
        orm = self._session.get(OrmQuotationProcess, process_id)
        if orm is not None:
            self._session.delete(orm)
            self._session.flush()

    # ── Queries ────────────────────────────────────────────────────────

    def get(self, process_id: int) -> DomainQuotationProcess | None:
        orm = self._session.get(OrmQuotationProcess, process_id)
        return self._to_domain(orm) if orm is not None else None

    def list_all(self) -> list[DomainQuotationProcess]:
        """Return all processes, newest first."""
        stmt = select(OrmQuotationProcess).order_by(OrmQuotationProcess.id.desc())
        return [self._to_domain(orm) for orm in self._session.scalars(stmt)]

    # ── Internal helpers ───────────────────────────────────────────────

    @staticmethod
    def _to_domain(orm: OrmQuotationProcess) -> DomainQuotationProcess:
        valid_statuses = {s.value for s in ProcessStatus}
        return DomainQuotationProcess(
            name=orm.name,
            code=orm.code,
            base_currency=orm.base_currency or "PEN",
            exchange_rate=orm.exchange_rate,
            target_margin_pct=orm.target_margin_pct,
            notes=orm.notes,
            status=ProcessStatus(orm.status) if orm.status in valid_statuses else ProcessStatus.OPEN,
            created_at=orm.created_at,
            id=orm.id,
        )


class SqlAlchemyBaselineRepository(BaselineRepository):
    """SQLAlchemy adapter for the BaselineRepository port."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # ── Commands ───────────────────────────────────────────────────────

    def add_many(self, process_id: int, items: list[DomainBaselineItem]) -> list[DomainBaselineItem]:
        """Insert baseline items for a process and assign their ids."""
        orm_objs = []
        for item in items:
            orm_obj = OrmBaselineItem(
                process_id=process_id,
                sheet_name=item.sheet_name,
                row_number=item.row_number,
                section_path_json=json.dumps(item.section_path, ensure_ascii=False),
                item_code=item.item_code,
                description=item.description,
                unit=item.unit,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
                provider_quotes_json=(
                    json.dumps(item.provider_quotes, ensure_ascii=False) if item.provider_quotes else None
                ),
                material_id=item.material_id,
            )
            self._session.add(orm_obj)
            orm_objs.append(orm_obj)
        self._session.flush()
        for item, orm_obj in zip(items, orm_objs):
            item.id = orm_obj.id
            item.process_id = process_id
        return items

    # ── Queries ────────────────────────────────────────────────────────

    def get(self, baseline_id: int) -> DomainBaselineItem | None:
        orm = self._session.get(OrmBaselineItem, baseline_id)
        return self._to_domain(orm) if orm is not None else None

    def list_by_process(self, process_id: int) -> list[DomainBaselineItem]:
        """Return the baseline of a process in import order."""
        stmt = (
            select(OrmBaselineItem)
            .where(OrmBaselineItem.process_id == process_id)
            .order_by(OrmBaselineItem.id)
        )
        return [self._to_domain(orm) for orm in self._session.scalars(stmt)]

    # ── Internal helpers ───────────────────────────────────────────────

    @staticmethod
    def _to_domain(orm: OrmBaselineItem) -> DomainBaselineItem:
        return DomainBaselineItem(
            sheet_name=orm.sheet_name,
            description=orm.description,
            row_number=orm.row_number or 0,
            section_path=json.loads(orm.section_path_json) if orm.section_path_json else [],
            item_code=orm.item_code,
            unit=orm.unit,
            quantity=orm.quantity,
            unit_price=orm.unit_price,
            total_price=orm.total_price,
            provider_quotes=json.loads(orm.provider_quotes_json) if orm.provider_quotes_json else {},
            material_id=orm.material_id,
            process_id=orm.process_id,
            id=orm.id,
        )


class SqlAlchemyQuotationRepository(QuotationRepository):
    """SQLAlchemy adapter for the QuotationRepository port."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # ── Commands ───────────────────────────────────────────────────────

    def create(self, quotation: DomainQuotation) -> DomainQuotation:
        orm_obj = OrmQuotation(process_id=quotation.process_id)
        self._apply(orm_obj, quotation)
        self._session.add(orm_obj)
        self._session.flush()
        quotation.id = orm_obj.id
        return quotation

    def update(self, quotation: DomainQuotation) -> DomainQuotation:
        orm_obj = self._session.get(OrmQuotation, quotation.id)
        if orm_obj is None:
            raise LookupError(f"Quotation {quotation.id} does not exist")
        self._apply(orm_obj, quotation)
        self._session.flush()
        return quotation

    def delete(self, quotation_id: int) -> None:
        """Delete a quotation, its items, and any purchase orders and deliveries issued from it."""
        order_ids = list(
            self._session.scalars(
                select(OrmPurchaseOrder.id).where(OrmPurchaseOrder.quotation_id == quotation_id)
            )
        )
        if order_ids:
            deliveries = self._session.scalars(
                select(OrmPurchaseDelivery).where(OrmPurchaseDelivery.order_id.in_(order_ids))
            )
            for delivery in deliveries:
                self._session.delete(delivery)
            for order in self._session.scalars(select(OrmPurchaseOrder).where(OrmPurchaseOrder.id.in_(order_ids))):
                self._session.delete(order)
        orm = self._session.get(OrmQuotation, quotation_id)
        if orm is not None:
            self._session.delete(orm)
        self._session.flush()

    # ── Queries ────────────────────────────────────────────────────────

    def get(self, quotation_id: int, for_update: bool = False) -> DomainQuotation | None:
        """Return a quotation; ``for_update`` takes a row lock until the transaction ends."""
        stmt = select(OrmQuotation).where(OrmQuotation.id == quotation_id)
        if for_update:
            stmt = stmt.with_for_update()
        orm = self._session.execute(stmt).scalar_one_or_none()
        return self._to_domain(orm) if orm is not None else None

    def list_by_process(self, process_id: int) -> list[DomainQuotation]:
        stmt = (
            select(OrmQuotation)
            .where(OrmQuotation.process_id == process_id)
            .order_by(OrmQuotation.id)
        )
        return [self._to_domain(orm) for orm in self._session.scalars(stmt)]

    def find_by_supplier(
        self,
        process_id: int,
        supplier_id: int | None,
        supplier_name: str | None,
        exclude_id: int | None = None,
    ) -> DomainQuotation | None:
        """Return another quotation of the process from the same supplier, if any."""
        conditions = []
        if supplier_id is not None:
            conditions.append(OrmQuotation.supplier_id == supplier_id)
        if supplier_name:
            conditions.append(func.lower(OrmQuotation.supplier_name) == supplier_name.strip().lower())
        for condition in conditions:
            stmt = (
                select(OrmQuotation)
                .where(OrmQuotation.process_id == process_id)
                .where(condition)
            )
            if exclude_id is not None:
                stmt = stmt.where(OrmQuotation.id != exclude_id)
            orm = self._session.scalars(stmt.limit(1)).first()
            if orm is not None:
                return self._to_domain(orm)
        return None

    # ── Internal helpers ───────────────────────────────────────────────

    @staticmethod
    def _apply(orm_obj: OrmQuotation, quotation: DomainQuotation) -> None:
        orm_obj.supplier_id = quotation.supplier_id
        orm_obj.supplier_name = quotation.supplier_name
        orm_obj.currency = quotation.currency
        orm_obj.exchange_rate = quotation.exchange_rate
        orm_obj.status = quotation.status.value
        orm_obj.notes = quotation.notes
        orm_obj.total_amount = quotation.total_amount
        orm_obj.total_amount_base = quotation.total_amount_base

    @staticmethod
    def _to_domain(orm: OrmQuotation) -> DomainQuotation:
        valid_statuses = {s.value for s in QuotationStatus}
        return DomainQuotation(
            process_id=orm.process_id,
            currency=orm.currency,
            supplier_id=orm.supplier_id,
            supplier_name=orm.supplier_name,
            exchange_rate=orm.exchange_rate,
            status=QuotationStatus(orm.status) if orm.status in valid_statuses else QuotationStatus.RECEIVED,
            notes=orm.notes,
            total_amount=orm.total_amount or 0.0,
            total_amount_base=orm.total_amount_base,
            id=orm.id,
        )


class SqlAlchemyQuotationItemRepository(QuotationItemRepository):
    """SQLAlchemy adapter for the QuotationItemRepository port."""

    _FIELDS = (
        "baseline_item_id",
        "material_id",
        "item_code",
        "description",
        "offered_description",
        "brand",
        "sheet_name",
        "source_row",
        "unit",
        "original_unit",
        "unit_converted",
        "quantity",
        "unit_price",
        "total_price",
        "currency",
        "normalized_price",
        "match_score",
        "manual",
    )

    def __init__(self, session: Session) -> None:
        self._session = session

    # ── Commands ───────────────────────────────────────────────────────

    def replace_for_quotation(
        self, quotation_id: int, items: list[DomainQuotationItem]
    ) -> list[DomainQuotationItem]:
        """Delete all items of the quotation, then insert the new ones."""
        self._session.execute(delete(OrmQuotationItem).where(OrmQuotationItem.quotation_id == quotation_id))
        orm_objs = []
        for item in items:
            item.quotation_id = quotation_id
            orm_obj = OrmQuotationItem(quotation_id=quotation_id)
            self._apply(orm_obj, item)
            self._session.add(orm_obj)
            orm_objs.append(orm_obj)
        self._session.flush()
        for item, orm_obj in zip(items, orm_objs):
            item.id = orm_obj.id
        return items

    def save(self, item: DomainQuotationItem) -> DomainQuotationItem:
        """Insert a new item or update the existing row with the same id."""
        orm_obj = self._session.get(OrmQuotationItem, item.id) if item.id is not None else None
        if orm_obj is None:
            orm_obj = OrmQuotationItem(quotation_id=item.quotation_id)
            self._session.add(orm_obj)
        self._apply(orm_obj, item)
        self._session.flush()
        item.id = orm_obj.id
        return item

    # ── Queries ────────────────────────────────────────────────────────

    def list_by_quotation(self, quotation_id: int) -> list[DomainQuotationItem]:
        stmt = (
            select(OrmQuotationItem)
            .where(OrmQuotationItem.quotation_id == quotation_id)
            .order_by(OrmQuotationItem.id)
        )
        return [self._to_domain(orm) for orm in self._session.scalars(stmt)]

    def list_by_process(self, process_id: int) -> list[DomainQuotationItem]:
        stmt = (
            select(OrmQuotationItem)
            .join(OrmQuotation, OrmQuotationItem.quotation_id == OrmQuotation.id)
            .where(OrmQuotation.process_id == process_id)
            .order_by(OrmQuotationItem.id)
        )
        return [self._to_domain(orm) for orm in self._session.scalars(stmt)]

    def find_by_baseline(self, quotation_id: int, baseline_id: int) -> DomainQuotationItem | None:
        stmt = (
            select(OrmQuotationItem)
            .where(OrmQuotationItem.quotation_id == quotation_id)
            .where(OrmQuotationItem.baseline_item_id == baseline_id)
            .order_by(OrmQuotationItem.id)
            .limit(1)
        )
        orm = self._session.scalars(stmt).first()
        return self._to_domain(orm) if orm is not None else None

    # ── Internal helpers ───────────────────────────────────────────────

    @classmethod
    def _apply(cls, orm_obj: OrmQuotationItem, item: DomainQuotationItem) -> None:
        for name in cls._FIELDS:
            setattr(orm_obj, name, getattr(item, name))

    @staticmethod
    def _to_domain(orm: OrmQuotationItem) -> DomainQuotationItem:
        return DomainQuotationItem(
            quotation_id=orm.quotation_id,
            description=orm.description,
            currency=orm.currency,
            baseline_item_id=orm.baseline_item_id,
            material_id=orm.material_id,
            item_code=orm.item_code,
            offered_description=orm.offered_description,
            brand=orm.brand,
            sheet_name=orm.sheet_name,
            source_row=orm.source_row,
            unit=orm.unit,
            original_unit=orm.original_unit,
            unit_converted=bool(orm.unit_converted),
            quantity=orm.quantity,
            unit_price=orm.unit_price,
            total_price=orm.total_price,
            normalized_price=orm.normalized_price,
            match_score=orm.match_score or 0.0,
            manual=bool(orm.manual),
            id=orm.id,
        )


class SqlAlchemyPurchaseRepository(PurchaseRepository):
    """SQLAlchemy adapter for the PurchaseRepository port."""

    def __init__(self, session: Session) -> None:
        self._session = session

    # ── Commands ───────────────────────────────────────────────────────

    def add_order(self, order: DomainPurchaseOrder) -> DomainPurchaseOrder:
        orm_order = OrmPurchaseOrder(
            process_id=order.process_id,
            quotation_id=order.quotation_id,
            supplier_id=order.supplier_id,
            supplier_name=order.supplier_name,
            order_number=order.order_number,
            sequence=order.sequence,
            issue_date=order.issue_date,
            currency=order.currency,
            subtotal=order.subtotal,
            discount=order.discount,
            igv=order.igv,
            total=order.total,
            lines=[
                OrmPurchaseOrderLine(
                    baseline_id=line.baseline_id,
                    description=line.description,
                    unit=line.unit,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    total_price=line.total_price,
                )
                for line in order.lines
            ],
        )
        self._session.add(orm_order)
        self._session.flush()
        order.id = orm_order.id
        for line, orm_line in zip(order.lines, orm_order.lines):
            line.id = orm_line.id
            line.order_id = orm_order.id
        return order

    def add_delivery(self, delivery: DomainPurchaseDelivery, guide_key: str | None) -> DomainPurchaseDelivery:
        orm_delivery = OrmPurchaseDelivery(
            process_id=delivery.process_id,
            order_id=delivery.order_id,
            supplier_id=delivery.supplier_id,
            supplier_name=delivery.supplier_name,
            guide_number=delivery.guide_number,
            guide_key=guide_key,
            date=delivery.date,
            notes=delivery.notes,
            items=[
                OrmPurchaseDeliveryItem(
                    baseline_id=item.baseline_id,
                    order_line_id=item.order_line_id,
                    description=item.description,
                    unit=item.unit,
                    quantity=item.quantity,
                    notes=item.notes,
                )
                for item in delivery.items
            ],
        )
        self._session.add(orm_delivery)
        self._session.flush()
        delivery.id = orm_delivery.id
        for item, orm_item in zip(delivery.items, orm_delivery.items):
            item.id = orm_item.id
            item.delivery_id = orm_delivery.id
        return delivery

    # ── Queries ────────────────────────────────────────────────────────

    def last_order(self, process_id: int) -> DomainPurchaseOrder | None:
        stmt = (
            select(OrmPurchaseOrder)
            .where(OrmPurchaseOrder.process_id == process_id)
            .order_by(OrmPurchaseOrder.sequence.desc())
            .limit(1)
        )
        orm = self._session.scalars(stmt).first()
        return self._order_to_domain(orm) if orm is not None else None

    def get_order(self, order_id: int) -> DomainPurchaseOrder | None:
        orm = self._session.get(OrmPurchaseOrder, order_id)
        return self._order_to_domain(orm) if orm is not None else None

    def order_number_taken(self, process_id: int, order_number: str) -> bool:
        """Case-insensitive order number lookup within a process."""
        stmt = (
            select(OrmPurchaseOrder.id)
            .where(OrmPurchaseOrder.process_id == process_id)
            .where(func.upper(OrmPurchaseOrder.order_number) == order_number.upper())
            .limit(1)
        )
        return self._session.execute(stmt).first() is not None

    def has_orders_for_quotation(self, quotation_id: int) -> bool:
        stmt = select(OrmPurchaseOrder.id).where(OrmPurchaseOrder.quotation_id == quotation_id).limit(1)
        return self._session.execute(stmt).first() is not None

    def guide_number_taken(self, process_id: int, guide_key: str) -> bool:
        stmt = (
            select(OrmPurchaseDelivery.id)
            .where(OrmPurchaseDelivery.process_id == process_id)
            .where(OrmPurchaseDelivery.guide_key == guide_key)
            .limit(1)
        )
        return self._session.execute(stmt).first() is not None

    def list_order_lines(self, process_id: int) -> list[DomainPurchaseOrderLine]:
        """Order lines of a process, carrying the quotation of their order."""
        stmt = (
            select(OrmPurchaseOrderLine, OrmPurchaseOrder.quotation_id)
            .join(OrmPurchaseOrder, OrmPurchaseOrderLine.order_id == OrmPurchaseOrder.id)
            .where(OrmPurchaseOrder.process_id == process_id)
            .order_by(OrmPurchaseOrderLine.id)
        )
        return [
            self._line_to_domain(line, quotation_id)
            for line, quotation_id in self._session.execute(stmt)
        ]

    def list_delivery_items(self, process_id: int) -> list[DomainPurchaseDeliveryItem]:
        """Delivery items of a process, carrying the quotation of the delivery's order."""
        stmt = (
            select(OrmPurchaseDeliveryItem, OrmPurchaseOrder.quotation_id)
            .join(OrmPurchaseDelivery, OrmPurchaseDeliveryItem.delivery_id == OrmPurchaseDelivery.id)
            .outerjoin(OrmPurchaseOrder, OrmPurchaseDelivery.order_id == OrmPurchaseOrder.id)
            .where(OrmPurchaseDelivery.process_id == process_id)
            .order_by(OrmPurchaseDeliveryItem.id)
        )
        return [
            DomainPurchaseDeliveryItem(
                description=item.description,
                quantity=item.quantity or 0.0,
                baseline_id=item.baseline_id,
                order_line_id=item.order_line_id,
                unit=item.unit,
                notes=item.notes,
                quotation_id=quotation_id,
                delivery_id=item.delivery_id,
                id=item.id,
            )
            for item, quotation_id in self._session.execute(stmt)
        ]

    # ── Internal helpers ───────────────────────────────────────────────

    @staticmethod
    def _line_to_domain(orm: OrmPurchaseOrderLine, quotation_id: int | None) -> DomainPurchaseOrderLine:
        return DomainPurchaseOrderLine(
            description=orm.description,
            baseline_id=orm.baseline_id,
            unit=orm.unit,
            quantity=orm.quantity,
            unit_price=orm.unit_price,
            total_price=orm.total_price,
            quotation_id=quotation_id,
            order_id=orm.order_id,
            id=orm.id,
        )

    @classmethod
    def _order_to_domain(cls, orm: OrmPurchaseOrder) -> DomainPurchaseOrder:
        return DomainPurchaseOrder(
            process_id=orm.process_id,
            supplier_name=orm.supplier_name,
            order_number=orm.order_number,
            sequence=orm.sequence,
            currency=orm.currency or "PEN",
            quotation_id=orm.quotation_id,
            supplier_id=orm.supplier_id,
            issue_date=orm.issue_date,
            subtotal=orm.subtotal,
            discount=orm.discount,
            igv=orm.igv,
            total=orm.total,
            lines=[cls._line_to_domain(line, orm.quotation_id) for line in orm.lines],
            id=orm.id,
        )


class SqlAlchemyUnitOfWork(UnitOfWork):
    """UnitOfWork over one SQLAlchemy session per ``with`` block."""

    def __init__(self, session_factory) -> None:
        self._session_factory = session_factory
        self.session: Session | None = None

    def __enter__(self) -> SqlAlchemyUnitOfWork:
        self.session = self._session_factory()
        self.processes = SqlAlchemyProcessRepository(self.session)
        self.baselines = SqlAlchemyBaselineRepository(self.session)
        self.quotations = SqlAlchemyQuotationRepository(self.session)
        self.items = SqlAlchemyQuotationItemRepository(self.session)
        self.purchases = SqlAlchemyPurchaseRepository(self.session)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.rollback()
        finally:
            self.session.close()

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()
