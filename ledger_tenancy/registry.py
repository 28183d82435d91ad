"""
TenantEngineRegistry -- one connection pool per tenant database.

Engines are keyed by connection string.  A new engine is checked for
liveness (connect and release) before it is cached, so an unreachable
database is reported to the caller instead of poisoning the cache.
"""

from __future__ import annotations

import threading

from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker

from ledger_kernel.db.engine import create_ledger_engine
from ledger_kernel.logging_config import get_logger

logger = get_logger("tenancy.registry")


class TenantEngineRegistry:
    """
    Process-wide cache of tenant engines and session factories.

    Guarantees:
        - At most one engine per connection string is cached.
        - Pools are never shared between different connection strings.
    """

    def __init__(self, pool_size: int = 5, max_overflow: int = 5):
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self._lock = threading.Lock()
        self._engines: dict[str, Engine] = {}
        self._factories: dict[str, sessionmaker[Session]] = {}

    def __contains__(self, connection_string: object) -> bool:
        return connection_string in self._engines

    def __len__(self) -> int:
        return len(self._engines)

    def acquire(self, connection_string: str) -> Engine:
        """Return the cached engine, creating and validating it if needed."""
        with self._lock:
            cached = self._engines.get(connection_string)
        if cached is not None:
            return cached

        engine = create_ledger_engine(
            connection_string,
            pool_size=self.pool_size,
            max_overflow=self.max_overflow,
        )
        try:
            with engine.connect():
                pass
        except Exception:
            engine.dispose()
            logger.warning(
                "tenant_engine_unreachable",
                extra={"database": make_url(connection_string).database},
                exc_info=True,
            )
            raise

        with self._lock:
            existing = self._engines.get(connection_string)
            if existing is not None:
                # Another thread validated the same database first
                engine.dispose()
                return existing
            self._engines[connection_string] = engine
            self._factories[connection_string] = sessionmaker(bind=engine, expire_on_commit=False)

        logger.info(
            "tenant_engine_created",
            extra={"database": make_url(connection_string).database},
        )
        return engine

    def session_factory(self, connection_string: str) -> sessionmaker[Session]:
        self.acquire(connection_string)
        with self._lock:
            return self._factories[connection_string]

    def dispose_all(self) -> None:
        with self._lock:
            engines = list(self._engines.values())
            self._engines.clear()
            self._factories.clear()
        for engine in engines:
            engine.dispose()
