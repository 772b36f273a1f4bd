"""
Redis Connection Manager

Owns the single, long-lived Redis client shared by the whole process.

Architecture:
    RedisConnectionManager
        ├── connect()      idempotent, verifies with PING
        ├── disconnect()   idempotent, never raises
        ├── is_connected() cached state, no polling
        ├── get_client()   the shared handle, never a new connection
        ├── ping()         explicit probe, refreshes cached state
        └── report_command_error()  a command lost the connection

Connection state is only changed by the lifecycle callbacks
(_on_connect, _on_ready, _on_error, _on_end); nothing else writes it.
A disconnected manager recovers through ping(), which the cache engine
calls before each attempt while the state reads disconnected.
"""

import redis.asyncio as redis
from redis.exceptions import RedisError

from src.core.config.constants import Stage
from src.core.config.settings import get_settings
from src.core.exceptions import CacheConnectionError
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


class RedisConnectionManager:
    """
    Manages the Redis connection lifecycle.

    Why a single client?
    - redis.asyncio.Redis already multiplexes commands over its own pool
    - one handle means one place to observe connected/disconnected state

    Usage:
        manager = RedisConnectionManager(settings)
        await manager.connect()
        client = manager.get_client()
        ...
        await manager.disconnect()
    """

    def __init__(self, settings=None, client: redis.Redis | None = None):
        """
        Initialize connection manager.

        Args:
            settings: Application settings (defaults to the global settings)
            client: Pre-built client, used by tests to inject a double
        """
        self._settings = settings or get_settings()
        self._client: redis.Redis | None = client
        self._is_connected = False

    def _build_client(self) -> redis.Redis:
        redis_settings = self._settings.redis
        return redis.Redis(
            host=redis_settings.REDIS_HOST,
            port=redis_settings.REDIS_PORT,
            db=redis_settings.REDIS_DB,
            password=redis_settings.REDIS_PASSWORD,
            socket_connect_timeout=redis_settings.REDIS_SOCKET_CONNECT_TIMEOUT,
            socket_timeout=redis_settings.REDIS_SOCKET_TIMEOUT,
            health_check_interval=redis_settings.REDIS_HEALTH_CHECK_INTERVAL,
            decode_responses=True,  # Return strings instead of bytes
        )

    # -------------------------------------------------------------------------
    # Lifecycle callbacks
    # -------------------------------------------------------------------------

    def _on_connect(self) -> None:
        logger.info(
            "Redis client connecting",
            stage=Stage.REDIS_CONNECT.value,
            host=self._settings.REDIS_HOST,
            port=self._settings.REDIS_PORT,
        )

    def _on_ready(self) -> None:
        self._is_connected = True
        logger.info("Redis client ready", stage=Stage.REDIS_READY.value)

    def _on_error(self, error: BaseException) -> None:
        self._is_connected = False
        logger.error("Redis client error", stage=Stage.REDIS_ERROR.value, error=str(error))

    def _on_end(self) -> None:
        self._is_connected = False
        logger.info("Redis client connection closed", stage=Stage.REDIS_END.value)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def connect(self) -> None:
        """
        Establish the connection and verify it with PING.

        No-op if already connected.

        Raises:
            CacheConnectionError: If the server cannot be reached; state stays disconnected
        """
        if self._is_connected:
            return

        if self._client is None:
            self._client = self._build_client()

        self._on_connect()
        try:
            await self._client.ping()
        except (RedisError, OSError) as e:
            self._on_error(e)
            raise CacheConnectionError(
                f"Failed to connect to Redis: {e}",
                original_error=e,
                details={
                    "host": self._settings.REDIS_HOST,
                    "port": self._settings.REDIS_PORT,
                },
            ) from e
        self._on_ready()

    async def disconnect(self) -> None:
        """
        Close the Redis client.

        No-op if not connected. Errors are logged, never raised, so shutdown
        is not blocked by cache teardown.
        """
        if not self._is_connected or self._client is None:
            return

        try:
            await self._client.aclose()
        except Exception as e:
            logger.error(
                "Error while disconnecting from Redis",
                stage=Stage.REDIS_END.value,
                error=str(e),
            )
        finally:
            self._on_end()

    async def ping(self) -> bool:
        """
        Probe the server.

        Returns:
            True if healthy, False otherwise
        """
        if self._client is None:
            return False
        try:
            await self._client.ping()
        except (RedisError, OSError) as e:
            self._on_error(e)
            return False
        if not self._is_connected:
            self._on_ready()
        return True

    def report_command_error(self, error: BaseException) -> None:
        """
        Record a connection-level failure seen by a command.

        Only the first failure fires the error callback; the next ping()
        that succeeds fires the ready callback again.
        """
        if self._is_connected:
            self._on_error(error)

    def get_client(self) -> redis.Redis:
        """
        Get the shared Redis client.

        Raises:
            CacheConnectionError: If connect() has never created one
        """
        if self._client is None:
            raise CacheConnectionError("Redis client has not been initialized")
        return self._client

    def is_connected(self) -> bool:
        """Check if connected to Redis."""
        return self._is_connected
