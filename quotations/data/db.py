import os

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from quotations.adapters.outbound.sqlalchemy_models import Base

_QUOTATIONS_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
_DEFAULT_URL = f"sqlite:///{os.path.join(_QUOTATIONS_DIR, 'data', 'quotations.db')}"
_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def _resolve_sqlite_path(db_url: str) -> str:
    """Anchor a relative sqlite file path at the quotations directory."""
    if not db_url.startswith("sqlite:///") or db_url.startswith("sqlite:////"):
        return db_url
    rel_path = db_url[len("sqlite:///"):]
    if os.path.isabs(rel_path):
        return db_url
    abs_path = os.path.join(_QUOTATIONS_DIR, rel_path)
    os.makedirs(os.path.dirname(abs_path), exist_ok=True)
    return f"sqlite:///{abs_path}"


def get_engine(url: str | None = None):
    db_url = url or os.environ.get("DATABASE_URL") or _DEFAULT_URL
    if db_url in _MEMORY_URLS:
        # One shared connection, otherwise each session opens its own empty database
        return create_engine(
            db_url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(_resolve_sqlite_path(db_url), echo=False)


def init_db(engine=None):
    if engine is None:
        engine = get_engine()
    Base.metadata.create_all(engine)
    return engine


def get_session_factory(engine=None):
    """Sessions keep loaded attributes after commit; repositories map rows to domain objects."""
    if engine is None:
        engine = get_engine()
    return sessionmaker(bind=engine, expire_on_commit=False)
