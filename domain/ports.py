"""Domain ports: abstract interfaces for repositories and infrastructure.

Only stdlib (abc) and domain.models imports allowed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from domain.models import (
    BaselineItem,
    PurchaseDelivery,
    PurchaseDeliveryItem,
    PurchaseOrder,
    PurchaseOrderLine,
    Quotation,
    QuotationItem,
    QuotationProcess,
)


# ── Repository Ports ──────────────────────────────────────────────────────


class ProcessRepository(ABC):
    """Persistence port for quotation processes."""

    @abstractmethod
    def create(self, process: QuotationProcess) -> QuotationProcess: ...

    @abstractmethod
    def get(self, process_id: int) -> QuotationProcess | None: ...

    @abstractmethod
    def list_all(self) -> list[QuotationProcess]: ...

    @abstractmethod
    def delete(self, process_id: int) -> None: ...


class BaselineRepository(ABC):
    """Persistence port for baseline items."""

    @abstractmethod
    def add_many(self, process_id: int, items: list[BaselineItem]) -> list[BaselineItem]: ...

    @abstractmethod
    def get(self, baseline_id: int) -> BaselineItem | None: ...

    @abstractmethod
    def list_by_process(self, process_id: int) -> list[BaselineItem]: ...


class QuotationRepository(ABC):
    """Persistence port for supplier quotations."""

    @abstractmethod
    def create(self, quotation: Quotation) -> Quotation: ...

    @abstractmethod
    def get(self, quotation_id: int, for_update: bool = False) -> Quotation | None: ...

    @abstractmethod
    def update(self, quotation: Quotation) -> Quotation: ...

    @abstractmethod
    def list_by_process(self, process_id: int) -> list[Quotation]: ...

    @abstractmethod
    def find_by_supplier(
        self,
        process_id: int,
        supplier_id: int | None,
        supplier_name: str | None,
        exclude_id: int | None = None,
    ) -> Quotation | None:
        """Another quotation of the process with the same supplier id or name (case-insensitive)."""

    @abstractmethod
    def delete(self, quotation_id: int) -> None: ...


class QuotationItemRepository(ABC):
    """Persistence port for quotation items."""

    @abstractmethod
    def replace_for_quotation(self, quotation_id: int, items: list[QuotationItem]) -> list[QuotationItem]:
        """Delete every item of the quotation, then insert ``items``."""

    @abstractmethod
    def list_by_quotation(self, quotation_id: int) -> list[QuotationItem]: ...

    @abstractmethod
    def list_by_process(self, process_id: int) -> list[QuotationItem]: ...

    @abstractmethod
    def find_by_baseline(self, quotation_id: int, baseline_id: int) -> QuotationItem | None: ...

    @abstractmethod
    def save(self, item: QuotationItem) -> QuotationItem: ...


class PurchaseRepository(ABC):
    """Persistence port for purchase orders and delivery guides."""

    @abstractmethod
    def add_order(self, order: PurchaseOrder) -> PurchaseOrder: ...

    @abstractmethod
    def last_order(self, process_id: int) -> PurchaseOrder | None: ...

    @abstractmethod
    def order_number_taken(self, process_id: int, order_number: str) -> bool: ...

    @abstractmethod
    def get_order(self, order_id: int) -> PurchaseOrder | None: ...

    @abstractmethod
    def list_order_lines(self, process_id: int) -> list[PurchaseOrderLine]: ...

    @abstractmethod
    def has_orders_for_quotation(self, quotation_id: int) -> bool: ...

    @abstractmethod
    def add_delivery(self, delivery: PurchaseDelivery, guide_key: str | None) -> PurchaseDelivery: ...

    @abstractmethod
    def guide_number_taken(self, process_id: int, guide_key: str) -> bool: ...

    @abstractmethod
    def list_delivery_items(self, process_id: int) -> list[PurchaseDeliveryItem]: ...


class UnitOfWork(ABC):
    """Transaction boundary grouping the repositories.

    Used as a context manager: leaving the block without ``commit()`` (or
    through an exception) rolls everything back.
    """

    processes: ProcessRepository
    baselines: BaselineRepository
    quotations: QuotationRepository
    items: QuotationItemRepository
    purchases: PurchaseRepository

    def __enter__(self) -> UnitOfWork:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.rollback()

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...


# ── Infrastructure Ports ──────────────────────────────────────────────────


class WorkbookReaderPort(ABC):
    """Port for loading a workbook into ordered ``{sheet_name: rows}`` grids."""

    @abstractmethod
    def read(self, source) -> dict[str, list[list]]: ...


class AttachmentStorePort(ABC):
    """Port for durably keeping an original uploaded file."""

    @abstractmethod
    def save(self, content: bytes, filename: str) -> tuple[str, str]:
        """Store the file and return (path, sha256 checksum)."""


class CachePort(ABC):
    """Port for key-value caching (Redis, in-memory, etc.)."""

    @abstractmethod
    def get(self, key: str) -> object | None: ...

    @abstractmethod
    def set(self, key: str, value: object, ttl: int = 3600) -> None: ...

    @abstractmethod
    def invalidate(self, prefix: str) -> None: ...
