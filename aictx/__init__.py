"""
aictx - AI context setup: one AGENTS.md, linked for every coding assistant
"""

from aictx.cli import cli
from aictx.sync import Synchronizer, SyncReport, SyncStatus, ReconciliationResult
from aictx.utils.paths import SyncMode, detect_mode

__version__ = "2.0.0"
__all__ = [
    "cli",
    "Synchronizer",
    "SyncReport",
    "SyncStatus",
    "ReconciliationResult",
    "SyncMode",
    "detect_mode",
]
