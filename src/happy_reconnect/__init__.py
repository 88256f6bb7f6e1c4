"""Offline reconnection for Happy agent sessions."""

from .backoff import backoff_ceiling, backoff_delay
from .config import ReconnectConfig, get_server_url
from .offline_state import (
    ConnectionMode,
    OfflineFailure,
    OfflineState,
    get_connection_state,
    print_offline_warning,
    report_offline_failure,
)
from .reconnection import (
    AUTH_FAILED_MESSAGE,
    RECONNECTED_MESSAGE,
    ReconnectionHandle,
    ReconnectionState,
    start_offline_reconnection,
)

__all__ = [
    "AUTH_FAILED_MESSAGE",
    "ConnectionMode",
    "OfflineFailure",
    "OfflineState",
    "RECONNECTED_MESSAGE",
    "ReconnectConfig",
    "ReconnectionHandle",
    "ReconnectionState",
    "backoff_ceiling",
    "backoff_delay",
    "get_connection_state",
    "get_server_url",
    "print_offline_warning",
    "report_offline_failure",
    "start_offline_reconnection",
]
