"""Quotation application service: orchestrates parsing, matching and persistence.

Only stdlib and domain imports allowed; storage, workbooks and caching come
in through the ports.

Every write runs in one unit of work: workbooks are parsed completely
before the unit of work opens, and nothing is committed unless the whole
operation succeeds.
"""

from __future__ import annotations

import logging
from datetime import date

from domain.analytics.comparison import baseline_totals, build_process_summary
from domain.analytics.progress import compute_purchase_progress
from domain.exceptions import (
    DuplicateError,
    NotFoundError,
    ParseError,
    ReferentialError,
    ValidationError,
)
from domain.extraction.baseline_parser import parse_baseline_workbook
from domain.extraction.supplier_parser import parse_supplier_workbook
from domain.matching import build_baseline_index, match_baseline
from domain.models import (
    BaselineImportResult,
    ImportMode,
    PurchaseDelivery,
    PurchaseOrder,
    Quotation,
    QuotationItem,
    QuotationProcess,
    QuotationStatus,
    SupplierContext,
    SupplierImportResult,
)
from domain.normalization import collapse_guide_number, format_guide_number, normalize_identifier
from domain.pricing import build_quotation_item, manual_item_values, quotation_totals
from domain.purchasing import build_order_number, order_line_total
from domain.units import convert_currency

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "PEN"
DEFAULT_SUPPLIER = "Proveedor"


def _clean(value):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _currency(value, fallback=DEFAULT_CURRENCY):
    text = _clean(value)
    return text.upper() if text else fallback


def process_cache_prefix(process_id):
    return f"process:{process_id}"


class QuotationService:
    """Use cases of the quotation engine.

    Args:
        uow_factory: Callable returning a fresh UnitOfWork.
        workbook_reader: WorkbookReaderPort turning a source into sheet grids.
        cache: Optional CachePort; cached reports of a process are dropped on every write.
    """

    def __init__(self, uow_factory, workbook_reader, cache=None):
        self._uow_factory = uow_factory
        self._reader = workbook_reader
        self._cache = cache

    @property
    def cache(self):
        return self._cache

    def _invalidate(self, process_id):
        if self._cache is not None:
            self._cache.invalidate(process_cache_prefix(process_id))

    @staticmethod
    def _require_process(uow, process_id):
        process = uow.processes.get(process_id)
        if process is None:
            raise NotFoundError(f"Quotation process {process_id} not found", {"process_id": process_id})
        return process

    @staticmethod
    def _require_quotation(uow, quotation_id, for_update=False):
        quotation = uow.quotations.get(quotation_id, for_update=for_update)
        if quotation is None:
            raise NotFoundError(f"Quotation {quotation_id} not found", {"quotation_id": quotation_id})
        return quotation

    # ── Imports ──────────────────────────────────────────────────────────

    def import_baseline(
        self,
        source,
        name,
        code=None,
        base_currency=DEFAULT_CURRENCY,
        exchange_rate=None,
        target_margin_pct=None,
        notes=None,
    ) -> BaselineImportResult:
        """Parse a baseline workbook and create a process holding its items."""
        clean_name = _clean(name)
        if not clean_name:
            raise ValidationError("A process name is required")
        rows = parse_baseline_workbook(self._reader.read(source))
        if not rows:
            raise ParseError("Baseline workbook has no recognizable items")

        with self._uow_factory() as uow:
            process = uow.processes.create(
                QuotationProcess(
                    name=clean_name,
                    code=_clean(code),
                    base_currency=_currency(base_currency),
                    exchange_rate=exchange_rate,
                    target_margin_pct=target_margin_pct,
                    notes=notes,
                )
            )
            items = uow.baselines.add_many(process.id, rows)
            uow.commit()

        quantity, cost = baseline_totals(items)
        logger.info("Imported baseline process %s (%s): %d items", process.id, process.name, len(items))
        return BaselineImportResult(process=process, items=items, total_quantity=quantity, total_cost=cost)

    def import_supplier_quote(
        self,
        source,
        process_id,
        supplier: SupplierContext,
        replace_quotation_id=None,
    ) -> SupplierImportResult:
        """Parse a supplier workbook, match it against the baseline and store it.

        With ``replace_quotation_id`` the quotation is locked and all its
        previous items are replaced by the new rows.
        """
        supplier = supplier or SupplierContext()
        rows = parse_supplier_workbook(self._reader.read(source), supplier_name=supplier.supplier_name)

        with self._uow_factory() as uow:
            process = self._require_process(uow, process_id)
            existing = None
            if replace_quotation_id is not None:
                existing = self._require_quotation(uow, replace_quotation_id, for_update=True)
                if existing.process_id != process.id:
                    raise ReferentialError(
                        "Quotation belongs to another process",
                        {"quotation_id": existing.id, "process_id": process.id},
                    )

            supplier_id = supplier.supplier_id
            if supplier_id is None and existing is not None:
                supplier_id = existing.supplier_id
            supplier_name = _clean(supplier.supplier_name) or (_clean(existing.supplier_name) if existing else None)
            if existing is None and supplier_id is None and not supplier_name:
                raise ValidationError("A supplier id or supplier name is required")
            self._assert_supplier_available(uow, process.id, supplier_id, supplier_name, existing)

            currency = _currency(
                supplier.currency or (existing.currency if existing else None),
                fallback=process.base_currency or DEFAULT_CURRENCY,
            )
            rate = supplier.exchange_rate
            if rate is None and existing is not None:
                rate = existing.exchange_rate
            if rate is None:
                rate = process.exchange_rate

            if existing is not None:
                mode = ImportMode.UPDATED
                existing.supplier_id = supplier_id
                existing.supplier_name = supplier_name
                existing.currency = currency
                existing.exchange_rate = rate
                if supplier.notes is not None:
                    existing.notes = supplier.notes
                quotation = uow.quotations.update(existing)
            else:
                mode = ImportMode.CREATED
                quotation = uow.quotations.create(
                    Quotation(
                        process_id=process.id,
                        supplier_id=supplier_id,
                        supplier_name=supplier_name,
                        currency=currency,
                        exchange_rate=rate,
                        status=QuotationStatus.RECEIVED,
                        notes=supplier.notes,
                    )
                )

            baselines = uow.baselines.list_by_process(process.id)
            index = build_baseline_index(baselines)
            by_id = {item.id: item for item in baselines}
            items = []
            for row in rows:
                match = match_baseline(index, row)
                items.append(
                    build_quotation_item(
                        row,
                        match,
                        by_id.get(match.baseline_id),
                        currency,
                        process.base_currency,
                        rate,
                        quotation_id=quotation.id,
                    )
                )
            saved = uow.items.replace_for_quotation(quotation.id, items)

            totals = quotation_totals(saved, currency, process.base_currency, rate)
            quotation.total_amount = totals.amount
            quotation.total_amount_base = totals.normalized_amount
            quotation = uow.quotations.update(quotation)
            uow.commit()

        matched = sum(1 for item in saved if item.baseline_item_id is not None)
        logger.info(
            "Imported quotation %s for process %s (%s): %d rows, %d matched, %d unmatched",
            quotation.id,
            process.id,
            mode.value,
            len(saved),
            matched,
            len(saved) - matched,
        )
        if totals.unconverted:
            logger.warning(
                "Quotation %s: %d priced rows in %s could not be converted to %s; it is ranked last",
                quotation.id,
                totals.unconverted,
                currency,
                process.base_currency,
            )
        self._invalidate(process.id)
        return SupplierImportResult(
            quotation=quotation,
            items=saved,
            matched_count=matched,
            unmatched_count=len(saved) - matched,
            totals=totals,
            mode=mode,
        )

    @staticmethod
    def _assert_supplier_available(uow, process_id, supplier_id, supplier_name, existing):
        duplicate = uow.quotations.find_by_supplier(
            process_id,
            supplier_id,
            supplier_name,
            exclude_id=existing.id if existing is not None else None,
        )
        if duplicate is not None:
            raise DuplicateError(
                f"Supplier already has quotation {duplicate.id} in this process",
                {"quotation_id": duplicate.id, "supplier_name": supplier_name},
            )

    # ── Manual edits ─────────────────────────────────────────────────────

    def upsert_manual_item(
        self,
        quotation_id,
        baseline_id,
        unit_price=None,
        total_price=None,
        quantity=None,
        currency=None,
    ) -> QuotationItem:
        """Set a quotation's offer for one baseline item by hand, then re-total the quotation."""
        with self._uow_factory() as uow:
            quotation = self._require_quotation(uow, quotation_id, for_update=True)
            baseline = uow.baselines.get(baseline_id)
            if baseline is None or baseline.process_id != quotation.process_id:
                raise ReferentialError(
                    "Baseline item does not belong to the quotation's process",
                    {"baseline_id": baseline_id, "process_id": quotation.process_id},
                )
            process = self._require_process(uow, quotation.process_id)

            final_quantity, final_unit_price, final_total = manual_item_values(
                baseline.quantity, unit_price, total_price, quantity
            )
            item_currency = _currency(currency or quotation.currency)

            item = uow.items.find_by_baseline(quotation.id, baseline.id)
            if item is None:
                item = QuotationItem(
                    quotation_id=quotation.id,
                    baseline_item_id=baseline.id,
                    material_id=baseline.material_id,
                    description=baseline.description,
                    currency=item_currency,
                    sheet_name=baseline.sheet_name,
                    match_score=1.0,
                )
            item.description = baseline.description
            item.item_code = baseline.item_code
            item.unit = baseline.unit
            item.quantity = final_quantity
            item.unit_price = final_unit_price
            item.total_price = final_total
            item.currency = item_currency
            item.normalized_price = convert_currency(
                final_unit_price, item_currency, process.base_currency, quotation.exchange_rate
            )
            item.manual = True
            item = uow.items.save(item)

            self._refresh_totals(uow, quotation, process)
            uow.commit()

        logger.info("Manual offer for baseline %s on quotation %s", baseline.id, quotation.id)
        self._invalidate(quotation.process_id)
        return item

    @staticmethod
    def _refresh_totals(uow, quotation, process):
        totals = quotation_totals(
            uow.items.list_by_quotation(quotation.id),
            quotation.currency,
            process.base_currency,
            quotation.exchange_rate,
        )
        quotation.total_amount = totals.amount
        quotation.total_amount_base = totals.normalized_amount
        uow.quotations.update(quotation)
        return totals

    # ── Queries ──────────────────────────────────────────────────────────

    def list_processes(self):
        with self._uow_factory() as uow:
            return uow.processes.list_all()

    def get_process_summary(self, process_id):
        """Rankings, per-item comparison and section/sheet rollups of a process."""
        with self._uow_factory() as uow:
            process = self._require_process(uow, process_id)
            baselines = uow.baselines.list_by_process(process_id)
            quotations = uow.quotations.list_by_process(process_id)
            items = uow.items.list_by_process(process_id)
        return build_process_summary(process, baselines, quotations, items)

    def get_purchase_progress(self, process_id):
        with self._uow_factory() as uow:
            self._require_process(uow, process_id)
            baselines = uow.baselines.list_by_process(process_id)
            order_lines = uow.purchases.list_order_lines(process_id)
            deliveries = uow.purchases.list_delivery_items(process_id)
            items = uow.items.list_by_process(process_id)
        return compute_purchase_progress(baselines, order_lines, deliveries, items)

    # ── Purchasing ───────────────────────────────────────────────────────

    def create_purchase_order(
        self,
        process_id,
        lines,
        supplier_name=None,
        quotation_id=None,
        supplier_id=None,
        order_number=None,
        issue_date=None,
        currency=None,
        subtotal=None,
        discount=None,
        igv=None,
        total=None,
    ) -> PurchaseOrder:
        """Log a purchase order; the number defaults to the next sequence of the process."""
        with self._uow_factory() as uow:
            self._require_process(uow, process_id)
            if quotation_id is not None:
                quotation = self._require_quotation(uow, quotation_id)
                if quotation.process_id != process_id:
                    raise ReferentialError(
                        "Quotation belongs to another process",
                        {"quotation_id": quotation_id, "process_id": process_id},
                    )
            self._assert_baselines_in_process(uow, process_id, lines)

            last = uow.purchases.last_order(process_id)
            sequence = (last.sequence if last else 0) + 1
            requested = _clean(order_number)
            auto_number = build_order_number(sequence, requested or (last.order_number if last else None))
            number = normalize_identifier(requested or auto_number) or auto_number
            if uow.purchases.order_number_taken(process_id, number):
                raise DuplicateError(f"Order number {number} is already registered", {"order_number": number})

            order_lines = []
            for line in lines:
                if not (line.description or "").strip():
                    continue
                line.total_price = order_line_total(line.quantity, line.unit_price, line.total_price)
                line.quotation_id = quotation_id
                order_lines.append(line)

            order = uow.purchases.add_order(
                PurchaseOrder(
                    process_id=process_id,
                    quotation_id=quotation_id,
                    supplier_id=supplier_id,
                    supplier_name=_clean(supplier_name) or DEFAULT_SUPPLIER,
                    order_number=number,
                    sequence=sequence,
                    issue_date=issue_date or date.today(),
                    currency=_currency(currency),
                    subtotal=subtotal,
                    discount=discount,
                    igv=igv,
                    total=total,
                    lines=order_lines,
                )
            )
            uow.commit()

        logger.info("Purchase order %s logged for process %s", order.order_number, process_id)
        self._invalidate(process_id)
        return order

    def create_delivery(
        self,
        process_id,
        items,
        supplier_name=None,
        order_id=None,
        supplier_id=None,
        guide_number=None,
        delivery_date=None,
        notes=None,
    ) -> PurchaseDelivery:
        """Record a delivery guide; a guide number can only be registered once per process."""
        if not items:
            raise ValidationError("A delivery needs at least one item")
        guide = format_guide_number(guide_number)
        guide_key = collapse_guide_number(guide)

        with self._uow_factory() as uow:
            self._require_process(uow, process_id)
            order = None
            if order_id is not None:
                order = uow.purchases.get_order(order_id)
                if order is None:
                    raise NotFoundError(f"Purchase order {order_id} not found", {"order_id": order_id})
                if order.process_id != process_id:
                    raise ReferentialError(
                        "Purchase order belongs to another process",
                        {"order_id": order_id, "process_id": process_id},
                    )
            self._assert_baselines_in_process(uow, process_id, items)
            if guide_key and uow.purchases.guide_number_taken(process_id, guide_key):
                raise DuplicateError(f"Guide {guide} is already registered", {"guide_number": guide})

            for item in items:
                item.quotation_id = order.quotation_id if order is not None else None
            delivery = uow.purchases.add_delivery(
                PurchaseDelivery(
                    process_id=process_id,
                    order_id=order_id,
                    supplier_id=supplier_id,
                    supplier_name=_clean(supplier_name) or DEFAULT_SUPPLIER,
                    guide_number=guide,
                    date=delivery_date or date.today(),
                    notes=notes,
                    items=list(items),
                ),
                guide_key,
            )
            uow.commit()

        logger.info("Delivery %s recorded for process %s", delivery.guide_number or delivery.id, process_id)
        self._invalidate(process_id)
        return delivery

    @staticmethod
    def _assert_baselines_in_process(uow, process_id, lines):
        for line in lines:
            if line.baseline_id is None:
                continue
            baseline = uow.baselines.get(line.baseline_id)
            if baseline is None or baseline.process_id != process_id:
                raise ReferentialError(
                    "Baseline item does not belong to this process",
                    {"baseline_id": line.baseline_id, "process_id": process_id},
                )

    # ── Deletion ─────────────────────────────────────────────────────────

    def delete_quotation(self, quotation_id, force=False):
        """Delete a quotation; refused while purchase orders reference it unless ``force``."""
        with self._uow_factory() as uow:
            quotation = self._require_quotation(uow, quotation_id, for_update=True)
            if not force and uow.purchases.has_orders_for_quotation(quotation_id):
                raise ValidationError(
                    "Quotation has purchase orders; pass force=True to delete them too",
                    {"quotation_id": quotation_id},
                )
            uow.quotations.delete(quotation_id)
            uow.commit()
        logger.info("Deleted quotation %s", quotation_id)
        self._invalidate(quotation.process_id)

    def delete_process(self, process_id):
        with self._uow_factory() as uow:
            self._require_process(uow, process_id)
            uow.processes.delete(process_id)
            uow.commit()
        logger.info("Deleted quotation process %s", process_id)
        self._invalidate(process_id)
