# src/neogm/orm/engine.py
import asyncio
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar, cast

from neo4j import AsyncDriver, AsyncGraphDatabase, AsyncSession, Record

from neogm.config import NeoGMSettings, get_settings


T = TypeVar("T")
TransactionFunction = Callable[..., Awaitable[T]]


class GraphEngine:
    """
    Owns the Neo4j AsyncDriver for one URI and hands out sessions.

    Every entity and repository operation borrows one session through
    `session()`, which closes it on every exit path. The engine is shared by
    the entities that use it; it is never owned by them.
    """
    def __init__(
        self,
        uri: str,
        auth: Tuple[str, str],
        database: str = "neo4j",
        driver_config: Optional[Dict[str, Any]] = None
    ):
        """
        Initializes the GraphEngine. Does not establish a connection yet.
        Call `await engine.connect()` to establish the connection.

        Args:
            uri: The URI for the Neo4j instance (e.g., "bolt://localhost:7687").
            auth: A tuple of (username, password).
            database: The default Neo4j database name for sessions.
            driver_config: Additional configuration options for the Neo4j driver.
        """
        self.uri: str = uri
        self.auth: Tuple[str, str] = auth
        self.default_database: str = database

        _driver_defaults = {
            "max_connection_lifetime": 3600,  # seconds
            "keep_alive": True,
            "user_agent": "NeoGM/0.1.0",
        }
        self.driver_config: Dict[str, Any] = {**_driver_defaults, **(driver_config or {})}

        self._driver: Optional[AsyncDriver] = None
        self._is_connected: bool = False
        self._connection_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Optional[NeoGMSettings] = None, **driver_config: Any) -> "GraphEngine":
        """Build an engine from NeoGMSettings (environment configuration by default)."""
        settings = settings or get_settings()
        return cls(
            uri=settings.uri,
            auth=settings.auth,
            database=settings.database,
            driver_config=driver_config,
        )

    async def connect(self) -> None:
        """
        Creates the driver and verifies connectivity. Idempotent.

        Raises:
            ConnectionError: If the driver cannot be created or verified.
        """
        async with self._connection_lock:
            if self._is_connected and self._driver:
                return

            print(f"GraphEngine: Connecting to {self.uri} (default session DB: '{self.default_database}')...")
            driver: Optional[AsyncDriver] = None
            try:
                driver = AsyncGraphDatabase.driver(self.uri, auth=self.auth, **self.driver_config)
                await driver.verify_connectivity()
            except Exception as e:
                if driver is not None:
                    await driver.close()
                self._driver = None
                self._is_connected = False
                print(f"GraphEngine: Connection to {self.uri} failed: {e}")
                raise ConnectionError(f"Failed to connect to Neo4j at {self.uri}: {e}") from e

            self._driver = driver
            self._is_connected = True
            print(f"GraphEngine: Successfully connected to {self.uri}.")

    async def close(self) -> None:
        """Closes the driver if one is open."""
        async with self._connection_lock:
            if self._driver is None:
                return
            print(f"GraphEngine: Closing connection to {self.uri}...")
            try:
                await self._driver.close()
            finally:
                self._driver = None
                self._is_connected = False
            print(f"GraphEngine: Connection to {self.uri} closed.")

    def get_session(self, database: Optional[str] = None) -> AsyncSession:
        """
        Returns a new AsyncSession. The caller must close it.

        Raises:
            ConnectionError: If the engine is not connected.
        """
        return cast(AsyncSession, self.driver.session(database=database or self.default_database))

    @asynccontextmanager
    async def session(self, database: Optional[str] = None) -> AsyncIterator[AsyncSession]:
        """Yield a session scoped to one operation; it is closed exactly once."""
        session = self.get_session(database)
        try:
            yield session
        finally:
            await session.close()

    async def run(
        self,
        query: str,
        parameters: Optional[Dict[str, Any]] = None,
        database: Optional[str] = None
    ) -> List[Record]:
        """
        Run one auto-commit statement in its own session and return all records.

        Driver errors propagate unchanged; the session is closed either way.
        """
        async with self.session(database) as session:
            result = await session.run(query, parameters or {})
            return [record async for record in result]

    async def execute_write(
        self,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        database: Optional[str] = None,
        **kwargs: Any
    ) -> T:
        """Run `fn(tx, *args, **kwargs)` in a managed write transaction."""
        async with self.session(database) as session:
            return await session.execute_write(fn, *args, **kwargs)

    async def execute_read(
        self,
        fn: Callable[..., Awaitable[T]],
        *args: Any,
        database: Optional[str] = None,
        **kwargs: Any
    ) -> T:
        """Run `fn(tx, *args, **kwargs)` in a managed read transaction."""
        async with self.session(database) as session:
            return await session.execute_read(fn, *args, **kwargs)

    @property
    def driver(self) -> AsyncDriver:
        """
        The underlying AsyncDriver.

        Raises:
            ConnectionError: If the engine is not connected.
        """
        if not self._driver or not self._is_connected:
            raise ConnectionError(
                f"GraphEngine for {self.uri} is not connected. Call `await engine.connect()` first."
            )
        return self._driver

    @property
    def connected(self) -> bool:
        return self._is_connected

    async def __aenter__(self) -> "GraphEngine":
        await self.connect()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        state = "connected" if self._is_connected else "disconnected"
        return f"GraphEngine(uri='{self.uri}', database='{self.default_database}', {state})"


def create_graph_engine(
    uri: str,
    auth: Tuple[str, str],
    database: str = "neo4j",
    **driver_config: Any
) -> GraphEngine:
    """
    Creates a GraphEngine. It must still be connected with `await engine.connect()`
    or by entering it with `async with engine:`.

    Args:
        uri: The URI for the Neo4j instance (e.g., "bolt://localhost:7687").
        auth: A tuple of (username, password).
        database: The default database for sessions created from this engine.
        **driver_config: Extra Neo4j driver options (e.g., max_connection_pool_size).
    """
    return GraphEngine(uri=uri, auth=auth, database=database, driver_config=driver_config)


__all__ = [
    "GraphEngine",
    "TransactionFunction",
    "create_graph_engine",
]
