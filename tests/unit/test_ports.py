"""Tests for domain port interfaces (ABC contracts).

Every port must be an ABC that cannot be instantiated directly.
"""

from __future__ import annotations

from abc import ABC

import pytest

from domain.ports import (
    AttachmentStorePort,
    BaselineRepository,
    CachePort,
    ProcessRepository,
    PurchaseRepository,
    QuotationItemRepository,
    QuotationRepository,
    UnitOfWork,
    WorkbookReaderPort,
)

ALL_PORTS = [
    ProcessRepository,
    BaselineRepository,
    QuotationRepository,
    QuotationItemRepository,
    PurchaseRepository,
    UnitOfWork,
    WorkbookReaderPort,
    AttachmentStorePort,
    CachePort,
]


@pytest.mark.parametrize("port", ALL_PORTS, ids=lambda p: p.__name__)
class TestPortContracts:
    def test_is_abstract(self, port):
        assert issubclass(port, ABC)

    def test_cannot_instantiate(self, port):
        with pytest.raises(TypeError):
            port()


class TestQuotationRepositoryMethods:
    @pytest.mark.parametrize(
        "method",
        ["create", "get", "update", "list_by_process", "find_by_supplier", "delete"],
    )
    def test_has_abstract_method(self, method):
        assert method in QuotationRepository.__abstractmethods__


class TestPurchaseRepositoryMethods:
    @pytest.mark.parametrize(
        "method",
        ["add_order", "last_order", "order_number_taken", "add_delivery", "guide_number_taken",
         "list_order_lines", "list_delivery_items", "has_orders_for_quotation"],
    )
    def test_has_abstract_method(self, method):
        assert method in PurchaseRepository.__abstractmethods__


class _RecordingUnitOfWork(UnitOfWork):
    def __init__(self):
        self.calls = []

    def commit(self):
        self.calls.append("commit")

    def rollback(self):
        self.calls.append("rollback")


class TestUnitOfWorkContext:
    """Leaving the block always rolls back; after a commit that is a no-op."""

    def test_rollback_without_commit(self):
        with _RecordingUnitOfWork() as uow:
            pass
        assert uow.calls == ["rollback"]

    def test_rollback_on_exception(self):
        uow = _RecordingUnitOfWork()
        with pytest.raises(RuntimeError):
            with uow:
                raise RuntimeError("boom")
        assert uow.calls == ["rollback"]

    def test_commit_then_exit(self):
        with _RecordingUnitOfWork() as uow:
            uow.commit()
        assert uow.calls == ["commit", "rollback"]
