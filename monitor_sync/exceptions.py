"""Exception types for monitor-sync."""


class MonitorSyncError(Exception):
    """Base exception for monitor-sync operations."""


class ConfigError(MonitorSyncError, ValueError):
    """Raised when a configuration value is out of range or malformed."""


class ProtocolError(MonitorSyncError):
    """Raised when a MonitorState cannot be encoded or decoded."""


class DecodeError(ProtocolError):
    """Raised when a received datagram is not a valid MonitorState record."""

    def __init__(self, reason: str, payload_size: int | None = None):
        self.reason = reason
        self.payload_size = payload_size
        super().__init__(reason)


class TransportError(MonitorSyncError):
    """Raised when a datagram endpoint cannot be opened."""


class ActuationError(MonitorSyncError):
    """Raised when the power actuator rejects a set request."""


class AdapterUnavailableError(MonitorSyncError):
    """Raised when the power source cannot be opened or is not capable."""
