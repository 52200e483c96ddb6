"""Database engine and session helpers."""

from __future__ import annotations

import importlib
import pkgutil
from collections.abc import Generator

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from app.core.config import settings
import app.models


def build_engine(db_url: str, **kwargs) -> Engine:
    """Create an engine with the connect arguments the portal expects."""

    connect_args = {"check_same_thread": False} if db_url.startswith("sqlite") else {}
    connect_args.update(kwargs.pop("connect_args", {}))
    return create_engine(db_url, connect_args=connect_args, **kwargs)


engine = build_engine(settings.db_url)


def import_model_modules() -> None:
    """Import every module in app.models so SQLModel tables register metadata."""

    package = app.models
    for module_info in pkgutil.walk_packages(package.__path__, package.__name__ + "."):
        importlib.import_module(module_info.name)


def init_db(target: Engine | None = None) -> None:
    """Create all tables on ``target`` (defaults to the application engine).

    Also seeds the default achievement catalogue.
    """

    from app.core.achievements import seed_default_achievements

    import_model_modules()
    bind = target or engine
    SQLModel.metadata.create_all(bind)
    with Session(bind) as session:
        seed_default_achievements(session)


def get_session() -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    with Session(engine) as session:
        yield session
