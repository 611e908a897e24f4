"""Composition root: config loading and adapter wiring for the quotation service."""

import logging
import os

import redis
import yaml

from domain.quotation_service import QuotationService
from quotations.adapters.outbound.file_attachment_store import FileAttachmentStore
from quotations.adapters.outbound.redis_cache import InMemoryCacheAdapter, RedisCacheAdapter
from quotations.adapters.outbound.sqlalchemy_repos import SqlAlchemyUnitOfWork
from quotations.data.db import get_engine, get_session_factory, init_db
from tools.adapters import OpenpyxlWorkbookReader

logger = logging.getLogger(__name__)

_QUOTATIONS_DIR = os.path.dirname(os.path.abspath(__file__))
CONFIG_PATH = os.path.join(_QUOTATIONS_DIR, "config.yaml")


def load_config(path: str | None = None) -> dict:
    """Load the YAML config, then apply DATABASE_URL / REDIS_URL / QUOTATION_STORAGE_DIR overrides."""
    with open(path or CONFIG_PATH) as f:
        config = yaml.safe_load(f) or {}
    config.setdefault("database", {})
    config.setdefault("cache", {})
    config.setdefault("storage", {})
    config.setdefault("logging", {})
    if os.environ.get("DATABASE_URL"):
        config["database"]["url"] = os.environ["DATABASE_URL"]
    if os.environ.get("REDIS_URL"):
        config["cache"]["redis_url"] = os.environ["REDIS_URL"]
    if os.environ.get("QUOTATION_STORAGE_DIR"):
        config["storage"]["dir"] = os.environ["QUOTATION_STORAGE_DIR"]
    return config


def configure_logging(config: dict) -> None:
    settings = config.get("logging", {})
    logging.basicConfig(
        level=getattr(logging, str(settings.get("level", "INFO")).upper(), logging.INFO),
        format=settings.get("format", "%(asctime)s %(levelname)s %(name)s: %(message)s"),
    )


def get_cache(config: dict):
    """Redis cache when configured and reachable, otherwise an in-memory cache."""
    redis_url = config.get("cache", {}).get("redis_url")
    if redis_url:
        try:
            client = redis.from_url(redis_url)
            client.ping()
            return RedisCacheAdapter(redis_client=client)
        except redis.RedisError as e:
            logger.warning("Redis unavailable at %s (%s); using in-memory cache", redis_url, e)
    return InMemoryCacheAdapter()


def get_attachment_store(config: dict) -> FileAttachmentStore:
    storage_dir = config.get("storage", {}).get("dir") or "data/attachments"
    if not os.path.isabs(storage_dir):
        storage_dir = os.path.join(_QUOTATIONS_DIR, storage_dir)
    return FileAttachmentStore(storage_dir)


def build_service(config: dict | None = None, engine=None, cache=None) -> QuotationService:
    """Wire the quotation service on top of SQLAlchemy, openpyxl and the cache."""
    config = config if config is not None else load_config()
    if engine is None:
        engine = get_engine(config.get("database", {}).get("url"))
    init_db(engine)
    session_factory = get_session_factory(engine)
    return QuotationService(
        uow_factory=lambda: SqlAlchemyUnitOfWork(session_factory),
        workbook_reader=OpenpyxlWorkbookReader(),
        cache=cache if cache is not None else get_cache(config),
    )
