from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool


class Base(DeclarativeBase):
    pass


def make_engine(db_uri: str) -> Engine:
    """Create an engine; in-memory SQLite shares a single connection across threads."""
    if db_uri in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            db_uri,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if db_uri.startswith("sqlite"):
        return create_engine(db_uri, connect_args={"check_same_thread": False})
    return create_engine(db_uri, pool_pre_ping=True)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)
