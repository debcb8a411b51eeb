from collections.abc import Generator
import os

from sqlalchemy import Column, DateTime, String, Text, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.sql import func

from core.config import settings


class Base(DeclarativeBase):
    pass


class KeyValueEntry(Base):
    """One serialized record per storage key (the app's "local storage")."""
    __tablename__ = "kv_store"

    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False, server_default=func.now(), onupdate=func.now())


def make_engine(url: str, echo: bool = False) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        # TestClient and uvicorn's threadpool may touch the same connection
        connect_args["check_same_thread"] = False
    return create_engine(url, echo=echo, connect_args=connect_args)


engine = make_engine(settings.database_url, echo=settings.database_echo)
session_maker = sessionmaker(engine, expire_on_commit=False)


def create_db_and_tables(bind: Engine = engine) -> None:
    # Register the remaining tables on Base.metadata before create_all
    from . import image  # noqa: F401

    if bind.url.get_backend_name() == "sqlite" and bind.url.database:
        folder = os.path.dirname(os.path.abspath(bind.url.database))
        os.makedirs(folder, exist_ok=True)
    Base.metadata.create_all(bind)


def get_session() -> Generator[Session, None, None]:
    with session_maker() as session:
        yield session
