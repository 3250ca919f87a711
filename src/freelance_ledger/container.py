"""Dependency injection container for Freelance Ledger.

Usage:
    from freelance_ledger.container import get_container

    container = get_container()
    billing = container.billing_service
"""

from functools import cached_property, lru_cache
from typing import TYPE_CHECKING

from freelance_ledger.config import Settings, get_settings
from freelance_ledger.logging_config import get_logger

if TYPE_CHECKING:
    from freelance_ledger.repositories.sqlite import SQLiteDatabase
    from freelance_ledger.services.billing import BillingService

logger = get_logger(__name__)


class Container:
    """Lazily builds the database and services from settings.

    For tests, construct one directly:

        container = Container(settings=Settings(sqlite_path=":memory:"))
    """

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        logger.debug(
            "container_created",
            environment=self._settings.environment.value,
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    @cached_property
    def database(self) -> "SQLiteDatabase":
        """The SQLite database, initialized on first access."""
        from freelance_ledger.repositories.sqlite import SQLiteDatabase

        db_path = str(self._settings.sqlite_path)
        logger.info("initializing_sqlite_database", path=db_path)

        # Served from FastAPI's threadpool, so the connection crosses threads.
        db = SQLiteDatabase(db_path, check_same_thread=False)
        db.initialize()
        return db

    @cached_property
    def billing_service(self) -> "BillingService":
        from freelance_ledger.services.billing import BillingService

        return BillingService(self.database, settings=self._settings)

    def close(self) -> None:
        if "database" in self.__dict__:
            logger.info("closing_database_connection")
            self.database.close()

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


_container: Container | None = None


@lru_cache
def get_container() -> Container:
    """Get the global container singleton."""
    global _container
    if _container is None:
        _container = Container()
    return _container


def reset_container() -> None:
    """Reset the global container, closing its database."""
    global _container
    if _container is not None:
        _container.close()
        _container = None
    get_container.cache_clear()


def get_billing_service() -> "BillingService":
    """FastAPI dependency for the billing service."""
    return get_container().billing_service
