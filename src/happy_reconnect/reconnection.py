"""Background reconnection to the Happy server after going offline.

Works the same for Claude, Codex or Gemini sessions: the caller supplies
a coroutine that re-creates its session once the server is reachable, and
gets back a handle to cancel the loop or pick up the session.

States::

    IDLE --initial delay--> ATTEMPTING --success--> RECONNECTED
                               |    ^
                   retryable   |    |  backoff
                               v    |
                            RETRY_PENDING

    ATTEMPTING --401--> AUTH_FAILED
    any state --cancel()--> CANCELLED

Cancellation is cooperative. An attempt already awaiting the health check
or the reconnection callback is not interrupted; its result is discarded
when it resumes, except that a session produced by the callback is still
kept and returned by ``get_session()``.
"""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Generic, TypeVar

from .backoff import backoff_delay
from .config import ReconnectConfig
from .control_plane import check_server_health
from .errors import get_http_status

logger = logging.getLogger(__name__)

T = TypeVar("T")

RECONNECTED_MESSAGE = "✅ Reconnected! Session syncing in background."
AUTH_FAILED_MESSAGE = "❌ Authentication failed. Please re-authenticate with `happy auth`."

HealthCheckFn = Callable[[], Awaitable[None]]
NotifyFn = Callable[[str], None]
CleanupFn = Callable[[], None]


class ReconnectionState(str, Enum):
    """State of a reconnection run."""

    IDLE = "idle"  # Waiting for the initial delay
    ATTEMPTING = "attempting"  # Health check or callback in flight
    RETRY_PENDING = "retry_pending"  # Waiting out a backoff delay
    RECONNECTED = "reconnected"
    AUTH_FAILED = "auth_failed"
    CANCELLED = "cancelled"

    def is_terminal(self) -> bool:
        """Check if no further attempts can happen from this state."""
        return self in (
            ReconnectionState.RECONNECTED,
            ReconnectionState.AUTH_FAILED,
            ReconnectionState.CANCELLED,
        )


class ReconnectionHandle(Generic[T]):
    """Controls one reconnection run.

    Create through ``start_offline_reconnection``.
    """

    def __init__(
        self,
        on_reconnected: Callable[[], Awaitable[T]],
        on_notify: NotifyFn,
        health_check: HealthCheckFn,
        on_cleanup: CleanupFn | None = None,
        config: ReconnectConfig | None = None,
    ):
        self.config = config or ReconnectConfig()
        self._on_reconnected = on_reconnected
        self._on_notify = on_notify
        self._on_cleanup = on_cleanup
        self._health_check = health_check

        self._state = ReconnectionState.IDLE
        self._session: T | None = None
        self._reconnected = False
        self._cancelled = False
        self._failure_count = 0
        self._timer: asyncio.TimerHandle | None = None
        self._task: asyncio.Task | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def state(self) -> ReconnectionState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def get_session(self) -> T | None:
        """Get the session produced by the reconnection callback, if any."""
        return self._session

    def is_reconnected(self) -> bool:
        """Check if reconnection succeeded. Never reverts once True."""
        return self._reconnected

    def cancel(self) -> None:
        """Stop scheduling attempts and run the cleanup callback.

        Safe to call any number of times and from any state. The cleanup
        callback runs on every call.
        """
        self._cancelled = True
        if not self._state.is_terminal():
            self._state = ReconnectionState.CANCELLED
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._on_cleanup is not None:
            self._on_cleanup()

    def start(self, initial_delay_ms: float) -> None:
        """Schedule the first attempt. Must run inside an event loop."""
        self._loop = asyncio.get_running_loop()
        self._schedule(initial_delay_ms)

    def _schedule(self, delay_ms: float) -> None:
        self._timer = self._loop.call_later(delay_ms / 1000, self._fire)

    def _fire(self) -> None:
        self._timer = None
        # Keep a reference so the attempt isn't garbage collected mid-flight
        self._task = self._loop.create_task(self._attempt())

    async def _attempt(self) -> None:
        """Run one health check + reconnection attempt."""
        if self._reconnected or self._cancelled:
            return

        self._state = ReconnectionState.ATTEMPTING
        try:
            await self._health_check()

            # Cancel may have happened while the health check was in flight
            if self._cancelled:
                return

            session = await self._on_reconnected()

            # The callback completed, so its session is kept even if cancelled
            self._session = session
            if self._cancelled:
                return
        except Exception as e:
            self._handle_failure(e)
            return

        if self._reconnected:
            return
        self._reconnected = True
        self._state = ReconnectionState.RECONNECTED
        logger.debug("Successfully reconnected to server")
        self._notify(RECONNECTED_MESSAGE)

    def _notify(self, message: str) -> None:
        # Notifier errors never escape the attempt task
        try:
            self._on_notify(message)
        except Exception:
            logger.exception(f"Notification callback failed for: {message}")

    def _handle_failure(self, error: Exception) -> None:
        if self._cancelled:
            logger.debug(f"Ignoring failure after cancel: {error}")
            return

        if get_http_status(error) == 401:
            self._state = ReconnectionState.AUTH_FAILED
            logger.warning("Authentication error, stopping reconnection attempts")
            self._notify(AUTH_FAILED_MESSAGE)
            return

        # Retries are unlimited; only the delay stops growing
        self._failure_count += 1
        delay = backoff_delay(
            self._failure_count,
            self.config.min_delay_ms,
            self.config.max_delay_ms,
            self.config.max_failure_count,
        )
        logger.debug(
            f"Reconnection attempt {self._failure_count} failed ({error!r}), "
            f"retrying in {delay}ms"
        )
        self._state = ReconnectionState.RETRY_PENDING
        self._schedule(delay)


def start_offline_reconnection(
    server_url: str,
    on_reconnected: Callable[[], Awaitable[T]],
    on_notify: NotifyFn,
    on_cleanup: CleanupFn | None = None,
    health_check: HealthCheckFn | None = None,
    initial_delay_ms: float | None = None,
    config: ReconnectConfig | None = None,
) -> ReconnectionHandle[T]:
    """Start reconnecting to the server in the background.

    Only an HTTP 401 stops the loop for good; every other failure, including
    an exception from ``on_reconnected``, is retried with backoff for as long
    as it takes.

    Args:
        server_url: Base URL of the Happy server, used by the default health check.
        on_reconnected: Coroutine function that re-creates and returns the session.
        on_notify: Receives the user-facing success or auth failure message.
        on_cleanup: Called on every ``cancel()``.
        health_check: Replaces the default ``GET /v1/sessions`` probe. Must
            raise on failure.
        initial_delay_ms: Delay before the first attempt, overriding the config.
        config: Timing settings. Defaults to ``ReconnectConfig()``.

    Returns:
        Handle for cancelling the run and retrieving the session.

    Raises:
        RuntimeError: If called outside a running asyncio event loop.
    """
    config = config or ReconnectConfig()
    if health_check is None:

        async def health_check() -> None:
            await check_server_health(server_url, config.health_check_timeout)

    handle: ReconnectionHandle[T] = ReconnectionHandle(
        on_reconnected=on_reconnected,
        on_notify=on_notify,
        health_check=health_check,
        on_cleanup=on_cleanup,
        config=config,
    )
    handle.start(config.initial_delay_ms if initial_delay_ms is None else initial_delay_ms)
    return handle
