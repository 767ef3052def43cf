import fnmatch

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import finboard.models  # noqa: F401
from finboard.core.db import Base
from finboard.core.ids import IdGenerator
from finboard.schemas.ledger import Portfolio


class FakeRedis:
    """In-process stand-in for the handful of redis calls CacheManager makes."""

    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value, ex=None):
        self.store[key] = value
        return True

    def getdel(self, key):
        return self.store.pop(key, None)

    def delete(self, *keys):
        return sum(1 for k in keys if self.store.pop(k, None) is not None)

    def scan_iter(self, pattern):
        return [k for k in list(self.store) if fnmatch.fnmatch(k, pattern)]


def make_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def fixed_ids():
    return IdGenerator(clock=lambda: 1.0)


def empty_portfolio(portfolio_id=1, name="Main"):
    return Portfolio(id=portfolio_id, name=name)
