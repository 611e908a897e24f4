"""Tests for quotations.app: config loading and adapter wiring."""

import os
from unittest.mock import MagicMock

import pytest
import redis

from domain.quotation_service import QuotationService
from quotations import app
from quotations.adapters.outbound.file_attachment_store import FileAttachmentStore
from quotations.adapters.outbound.redis_cache import InMemoryCacheAdapter, RedisCacheAdapter
from quotations.data.db import get_engine


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("DATABASE_URL", "REDIS_URL", "QUOTATION_STORAGE_DIR"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "database:\n"
        "  url: sqlite:///data/test.db\n"
        "cache:\n"
        "  ttl: 60\n"
    )
    return str(path)


class TestLoadConfig:
    def test_packaged_config(self):
        config = app.load_config()
        assert config["database"]["url"].startswith("sqlite:///")
        assert config["cache"]["redis_url"] is None
        assert config["storage"]["dir"] == "data/attachments"

    def test_missing_sections_default_to_empty(self, config_file):
        config = app.load_config(config_file)
        assert config["cache"]["ttl"] == 60
        assert config["storage"] == {}
        assert config["logging"] == {}

    def test_env_overrides(self, config_file, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://db/quotes")
        monkeypatch.setenv("REDIS_URL", "redis://cache:6379/0")
        monkeypatch.setenv("QUOTATION_STORAGE_DIR", "/srv/attachments")
        config = app.load_config(config_file)
        assert config["database"]["url"] == "postgresql://db/quotes"
        assert config["cache"]["redis_url"] == "redis://cache:6379/0"
        assert config["storage"]["dir"] == "/srv/attachments"

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert app.load_config(str(path))["database"] == {}


class TestGetCache:
    def test_no_redis_url_uses_memory(self):
        assert isinstance(app.get_cache({"cache": {"redis_url": None}}), InMemoryCacheAdapter)

    def test_reachable_redis(self, monkeypatch):
        client = MagicMock()
        monkeypatch.setattr(redis, "from_url", lambda url: client)
        cache = app.get_cache({"cache": {"redis_url": "redis://localhost:6379/0"}})
        assert isinstance(cache, RedisCacheAdapter)
        client.ping.assert_called_once()

    def test_unreachable_redis_falls_back(self, monkeypatch):
        client = MagicMock()
        client.ping.side_effect = redis.ConnectionError("refused")
        monkeypatch.setattr(redis, "from_url", lambda url: client)
        cache = app.get_cache({"cache": {"redis_url": "redis://nowhere:6379/0"}})
        assert isinstance(cache, InMemoryCacheAdapter)


class TestAttachmentStore:
    def test_relative_dir_resolves_inside_package(self):
        store = app.get_attachment_store({"storage": {"dir": "data/attachments"}})
        assert os.path.isabs(store._storage_dir)
        assert store._storage_dir.endswith(os.path.join("quotations", "data", "attachments"))

    def test_save_and_find(self, tmp_path):
        store = app.get_attachment_store({"storage": {"dir": str(tmp_path / "files")}})
        path, content_hash = store.save(b"PK\x03\x04fake", "../../cotizacion.xlsx")
        assert os.path.dirname(path) == str(tmp_path / "files")
        assert os.path.basename(path) == f"{content_hash[:12]}_cotizacion.xlsx"
        assert store.find(content_hash, "cotizacion.xlsx") == path
        assert store.find("0" * 64, "cotizacion.xlsx") is None

    def test_blank_filename(self, tmp_path):
        path, _ = FileAttachmentStore(str(tmp_path)).save(b"x", "")
        assert path.endswith("_upload.xlsx")


class TestBuildService:
    def test_wires_service(self):
        engine = get_engine("sqlite:///:memory:")
        service = app.build_service({"cache": {}}, engine=engine)
        assert isinstance(service, QuotationService)
        assert isinstance(service.cache, InMemoryCacheAdapter)
        assert service.list_processes() == []

    def test_explicit_cache(self):
        cache = InMemoryCacheAdapter()
        service = app.build_service({}, engine=get_engine("sqlite:///:memory:"), cache=cache)
        assert service.cache is cache
