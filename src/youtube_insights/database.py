"""Database engine, session factory and the vector column type."""
from pathlib import Path
from typing import Tuple

import numpy as np
from sqlalchemy import LargeBinary
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from sqlalchemy.types import TypeDecorator

Base = declarative_base()


class VectorType(TypeDecorator):
    """Fixed-dimension float32 vector stored as packed bytes."""

    impl = LargeBinary
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return np.asarray(value, dtype=np.float32).tobytes()

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return np.frombuffer(value, dtype=np.float32).copy()


def create_engine_and_sessionmaker(database_url: str) -> Tuple[AsyncEngine, async_sessionmaker]:
    """
    Create an async engine and its session factory.

    In-memory SQLite keeps a single shared connection so every session sees
    the same database; file-backed SQLite gets its parent directory created.
    """
    url = make_url(database_url)
    kwargs = {"echo": False}

    if url.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if not url.database or url.database == ":memory:":
            kwargs["poolclass"] = StaticPool
        else:
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_async_engine(database_url, **kwargs)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    return engine, session_factory
