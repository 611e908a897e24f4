"""Domain models: pure Python, zero external dependencies.

Only stdlib imports allowed: dataclasses, datetime, enum.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class ProcessStatus(Enum):
    """Lifecycle of a quotation process."""

    OPEN = "open"
    AWARDED = "awarded"
    CLOSED = "closed"


class QuotationStatus(Enum):
    """Status of a supplier quotation."""

    RECEIVED = "received"
    SELECTED = "selected"
    REJECTED = "rejected"


class ImportMode(Enum):
    """Whether a supplier import created a quotation or replaced one."""

    CREATED = "created"
    UPDATED = "updated"


# ── Entities ────────────────────────────────────────────────────────────


@dataclass
class QuotationProcess:
    """A procurement process: one baseline budget and its supplier quotes."""

    name: str
    base_currency: str = "PEN"
    code: str | None = None
    exchange_rate: float | None = None
    target_margin_pct: float | None = None
    notes: str | None = None
    status: ProcessStatus = ProcessStatus.OPEN
    created_at: datetime | None = None
    id: int | None = None


@dataclass
class BaselineItem:
    """A line of the buyer's reference budget."""

    sheet_name: str
    description: str
    row_number: int = 0
    section_path: list[str] = field(default_factory=list)
    item_code: str | None = None
    unit: str | None = None
    quantity: float | None = None
    unit_price: float | None = None
    total_price: float | None = None
    provider_quotes: dict[str, float] = field(default_factory=dict)
    material_id: int | None = None
    process_id: int | None = None
    id: int | None = None


@dataclass
class SupplierQuoteRow:
    """One priced line read from a supplier workbook. Never persisted."""

    sheet_name: str
    row_number: int
    description: str
    item_code: str | None = None
    offered_description: str | None = None
    brand: str | None = None
    unit: str | None = None
    quantity: float | None = None
    unit_price: float | None = None
    total_price: float | None = None


@dataclass
class Quotation:
    """A supplier's offer within a process."""

    process_id: int
    currency: str
    supplier_id: int | None = None
    supplier_name: str | None = None
    exchange_rate: float | None = None
    status: QuotationStatus = QuotationStatus.RECEIVED
    notes: str | None = None
    total_amount: float = 0.0
    total_amount_base: float | None = 0.0
    id: int | None = None

    @property
    def display_name(self) -> str:
        return self.supplier_name or "Proveedor"


@dataclass
class QuotationItem:
    """A persisted supplier line, matched to a baseline item or not."""

    quotation_id: int
    description: str
    currency: str
    baseline_item_id: int | None = None
    material_id: int | None = None
    item_code: str | None = None
    offered_description: str | None = None
    brand: str | None = None
    sheet_name: str | None = None
    source_row: int | None = None
    unit: str | None = None
    original_unit: str | None = None
    unit_converted: bool = False
    quantity: float | None = None
    unit_price: float | None = None
    total_price: float | None = None
    normalized_price: float | None = None
    match_score: float = 0.0
    manual: bool = False
    id: int | None = None


@dataclass
class PurchaseOrderLine:
    """A line of a purchase order issued against a process."""

    description: str
    baseline_id: int | None = None
    unit: str | None = None
    quantity: float | None = None
    unit_price: float | None = None
    total_price: float | None = None
    quotation_id: int | None = None
    order_id: int | None = None
    id: int | None = None


@dataclass
class PurchaseOrder:
    """A purchase order log entry."""

    process_id: int
    supplier_name: str
    order_number: str
    sequence: int
    currency: str = "PEN"
    quotation_id: int | None = None
    supplier_id: int | None = None
    issue_date: date | None = None
    subtotal: float | None = None
    discount: float | None = None
    igv: float | None = None
    total: float | None = None
    lines: list[PurchaseOrderLine] = field(default_factory=list)
    id: int | None = None


@dataclass
class PurchaseDeliveryItem:
    """A received quantity recorded on a delivery guide."""

    description: str
    quantity: float
    baseline_id: int | None = None
    order_line_id: int | None = None
    unit: str | None = None
    notes: str | None = None
    quotation_id: int | None = None
    delivery_id: int | None = None
    id: int | None = None


@dataclass
class PurchaseDelivery:
    """A delivery guide with its received items."""

    process_id: int
    supplier_name: str
    order_id: int | None = None
    supplier_id: int | None = None
    guide_number: str | None = None
    date: date | None = None
    notes: str | None = None
    items: list[PurchaseDeliveryItem] = field(default_factory=list)
    id: int | None = None


# ── Value Objects ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class SupplierContext:
    """Who the quote comes from and how its prices are expressed."""

    supplier_id: int | None = None
    supplier_name: str | None = None
    currency: str | None = None
    exchange_rate: float | None = None
    notes: str | None = None


@dataclass(frozen=True)
class MatchResult:
    """Outcome of matching one supplier row against the baseline."""

    score: float
    baseline_id: int | None = None
    overlap: int = 0

    @property
    def matched(self) -> bool:
        return self.baseline_id is not None


@dataclass(frozen=True)
class ConversionResult:
    """A converted value; ``converted`` is False when it passed through unchanged."""

    value: float
    converted: bool = False


# ── Result Value Objects ────────────────────────────────────────────────


@dataclass(frozen=True)
class ImportTotals:
    """Quote-currency and base-currency totals of one quotation."""

    currency: str
    amount: float
    base_currency: str
    normalized_amount: float | None
    unconverted: int = 0


@dataclass
class BaselineImportResult:
    """Result of importing a baseline workbook."""

    process: QuotationProcess
    items: list[BaselineItem]
    total_quantity: float = 0.0
    total_cost: float = 0.0


@dataclass
class SupplierImportResult:
    """Result of importing one supplier workbook."""

    quotation: Quotation
    items: list[QuotationItem]
    matched_count: int
    unmatched_count: int
    totals: ImportTotals
    mode: ImportMode = ImportMode.CREATED


@dataclass(frozen=True)
class MaterialOffer:
    """One quotation's offer for one baseline item."""

    quotation_id: int
    supplier: str
    currency: str
    unit_price: float | None = None
    normalized_price: float | None = None
    total_price: float | None = None
    quantity: float | None = None
    match_score: float = 0.0
    row_order: int | None = None
    offered_description: str | None = None


@dataclass
class MaterialComparison:
    """All offers for one baseline item, cheapest first."""

    baseline_id: int
    description: str
    sheet_name: str
    section_path: list[str]
    item_code: str | None = None
    unit: str | None = None
    base_quantity: float | None = None
    base_unit_price: float | None = None
    base_total_price: float | None = None
    offers: list[MaterialOffer] = field(default_factory=list)
    best_offer: MaterialOffer | None = None


@dataclass(frozen=True)
class QuotationRanking:
    """Read-only ranking of a quotation by normalized total."""

    quotation_id: int
    supplier: str
    currency: str
    total_amount: float | None
    normalized_amount: float | None
    items_matched: int
    missing: int
    coverage_pct: float
    diff_amount: float | None = None
    diff_pct: float | None = None
    rank: int = 0


@dataclass(frozen=True)
class SupplierTotal:
    quotation_id: int
    supplier: str
    total: float


@dataclass
class SectionSummary:
    """Baseline vs supplier totals for one section of one sheet."""

    sheet_name: str
    section_path: list[str]
    base_total: float = 0.0
    suppliers: list[SupplierTotal] = field(default_factory=list)


@dataclass
class SheetSummary:
    """Baseline vs supplier totals for one worksheet."""

    sheet_name: str
    base_total: float = 0.0
    suppliers: list[SupplierTotal] = field(default_factory=list)


@dataclass
class ProcessSummary:
    """Everything needed to compare the quotations of a process."""

    process: QuotationProcess
    baseline_quantity: float
    baseline_cost: float
    rankings: list[QuotationRanking]
    material_comparison: list[MaterialComparison]
    section_summaries: list[SectionSummary]
    sheet_summaries: list[SheetSummary]
    winner_id: int | None = None


@dataclass(frozen=True)
class PurchaseProgressRow:
    """Required vs ordered vs received for one physical item."""

    key: str
    description: str
    unit: str | None
    baseline_ids: tuple[int, ...]
    sheet_names: tuple[str, ...]
    required: float
    ordered: float
    received: float
    order_pct: float
    receive_pct: float
    pending_order: float
    pending_receive: float

    @property
    def baseline_id(self) -> int | None:
        return self.baseline_ids[0] if self.baseline_ids else None
