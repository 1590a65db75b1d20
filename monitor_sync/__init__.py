"""monitor-sync - keep display power in sync across machines over UDP."""

__version__ = "0.1.0"

from monitor_sync.client import HandleOutcome, SyncClient
from monitor_sync.config import SyncConfig
from monitor_sync.protocol import WIRE_SIZE, MonitorState, decode, encode
from monitor_sync.reconcile import Reconciler, ReconcileResult, ReconcileState
from monitor_sync.server import SyncServer
from monitor_sync.shutdown import ShutdownToken

__all__ = [
    "HandleOutcome",
    "MonitorState",
    "ReconcileResult",
    "ReconcileState",
    "Reconciler",
    "ShutdownToken",
    "SyncClient",
    "SyncConfig",
    "SyncServer",
    "WIRE_SIZE",
    "__version__",
    "decode",
    "encode",
]
