"""Deduplicated offline warnings across independent API callers.

When the server goes down, session creation and machine registration
usually fail together. Each caller reports into an ``OfflineState``; the
first report prints one consolidated warning, later ones only add their
details until ``recover()`` re-arms the warning for the next outage.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from rich.console import Console
from rich.text import Text

from .errors import describe_error_code, error_code_for, get_http_status, is_network_error

logger = logging.getLogger(__name__)

DEFAULT_BACKEND = "Claude"
WARNING_PREFIX = (
    "⚠️  Happy server unreachable, offline mode with auto-reconnect enabled - error details: "
)
SERVER_ERROR_DETAIL = "Server encountered an error, will retry automatically"


class ConnectionMode(str, Enum):
    """Whether the server is currently considered reachable."""

    ONLINE = "online"
    OFFLINE = "offline"


@dataclass
class OfflineFailure:
    """One caller's failure context.

    Attributes:
        operation: What failed, e.g. "Session creation". Failures are
            deduplicated by this name.
        caller: Where the failure was reported from.
        error_code: Network error code or HTTP status.
        url: The URL that was being requested.
        details: Extra lines printed under the warning.
    """

    operation: str
    caller: str | None = None
    error_code: str | None = None
    url: str | None = None
    details: list[str] = field(default_factory=list)

    def summary(self) -> str:
        """Render as ``<operation> failed: <code> - <description> at <url>``."""
        if self.error_code:
            desc = f"{self.error_code} - {describe_error_code(self.error_code)}"
        else:
            desc = describe_error_code(None)
        url = f" at {self.url}" if self.url else ""
        return f"{self.operation} failed: {desc}{url}"


class OfflineState:
    """Online/offline tracker that prints one warning per outage."""

    def __init__(
        self,
        output: Callable[[str], None] | None = None,
        backend: str = DEFAULT_BACKEND,
        console: Console | None = None,
    ):
        """Initialize the state.

        Args:
            output: Receives each warning line as plain text. When unset,
                lines go to the console with detail lines in yellow.
            backend: Name of the agent backend, for message context.
            console: Rich console used when no output is given.
        """
        self._output = output
        self._console = console or Console(soft_wrap=True)
        self._default_backend = backend
        self._mode = ConnectionMode.ONLINE
        self._failures: dict[str, OfflineFailure] = {}
        self._backend = backend

    @property
    def mode(self) -> ConnectionMode:
        return self._mode

    @property
    def backend(self) -> str:
        return self._backend

    @property
    def failures(self) -> list[OfflineFailure]:
        """Stored failures, in the order their operations first failed."""
        return list(self._failures.values())

    def fail(self, failure: OfflineFailure) -> None:
        """Record a failure, printing the warning if we were online."""
        self._failures[failure.operation] = failure
        if self._mode == ConnectionMode.ONLINE:
            self._mode = ConnectionMode.OFFLINE
            logger.debug(f"Going offline ({self._backend}): {failure.operation} failed")
            self._print()
        else:
            logger.debug(f"Already offline, recorded {failure.operation} failure")

    def recover(self) -> None:
        """Go back online and clear failures, re-arming the warning."""
        self._mode = ConnectionMode.ONLINE
        self._failures.clear()

    def set_backend(self, name: str) -> None:
        """Set the backend name before making API calls."""
        self._backend = name

    def is_offline(self) -> bool:
        return self._mode == ConnectionMode.OFFLINE

    def reset(self) -> None:
        """Clear all state, including the backend name."""
        self._mode = ConnectionMode.ONLINE
        self._failures.clear()
        self._backend = self._default_backend

    def format_warning(self) -> list[str]:
        """Build the warning line followed by indented detail lines."""
        failures = self._failures.values()
        summary = "; ".join(f.summary() for f in failures)
        lines = [f"{WARNING_PREFIX}{summary}"]
        for failure in failures:
            lines.extend(f"   → {line}" for line in failure.details)
        return lines

    def _print(self) -> None:
        headline, *details = self.format_warning()
        if self._output is not None:
            for line in [headline, *details]:
                self._output(line)
            return

        self._console.print(Text(headline), soft_wrap=True)
        for line in details:
            self._console.print(Text(line, style="yellow"), soft_wrap=True)


# Shared instance for the process
_connection_state: OfflineState | None = None


def get_connection_state() -> OfflineState:
    """Get the process-wide offline state."""
    global _connection_state
    if _connection_state is None:
        _connection_state = OfflineState()
    return _connection_state


def print_offline_warning(
    backend_name: str = DEFAULT_BACKEND, state: OfflineState | None = None
) -> None:
    """Report a generic server connection failure.

    Prefer ``OfflineState.fail`` with a specific operation; this exists for
    callers that only know the server is unreachable.
    """
    state = state or get_connection_state()
    state.set_backend(backend_name)
    state.fail(OfflineFailure(operation="Server connection"))


def report_offline_failure(
    state: OfflineState,
    operation: str,
    error: BaseException,
    url: str,
    caller: str | None = None,
) -> bool:
    """Record an API error if it means the server is offline.

    Network errors, 404s (endpoint not deployed yet) and 5xx responses put
    the state offline. Anything else is the caller's problem.

    Args:
        state: Offline state to report into.
        operation: Name of the failed operation, e.g. "Machine registration".
        error: The exception raised by the request.
        url: The URL that was requested.
        caller: Where the request was made from.

    Returns:
        True if the failure was recorded and the caller should continue in
        offline mode, False if the caller should re-raise.
    """
    code = error_code_for(error)
    if is_network_error(code):
        state.fail(OfflineFailure(operation=operation, caller=caller, error_code=code, url=url))
        return True

    status = get_http_status(error)
    if status == 404:
        state.fail(OfflineFailure(operation=operation, caller=caller, error_code="404", url=url))
        return True

    if status is not None and status >= 500:
        state.fail(
            OfflineFailure(
                operation=operation,
                caller=caller,
                error_code=str(status),
                url=url,
                details=[SERVER_ERROR_DETAIL],
            )
        )
        return True

    logger.debug(f"{operation} failed with a non-offline error: {error!r}")
    return False
