# agriledger/db.py
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from agriledger.config import DEFAULT_DATABASE_URL

Base = declarative_base()


def make_engine(database_url: str = DEFAULT_DATABASE_URL) -> Engine:
    if not database_url.startswith("sqlite"):
        return create_engine(database_url)
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # one shared connection, otherwise every session sees an empty database
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(database_url, connect_args={"check_same_thread": False})


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    # models must be imported so their tables are registered on Base
    from agriledger import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
