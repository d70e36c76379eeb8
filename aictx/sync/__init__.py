"""
Context synchronization package: template fetch, reconciliation and agent links.
"""

from .models import ReconciliationResult, SyncReport, SyncStatus, UninstallReport
from .synchronizer import Synchronizer

__all__ = ['ReconciliationResult', 'SyncReport', 'SyncStatus', 'Synchronizer', 'UninstallReport']
