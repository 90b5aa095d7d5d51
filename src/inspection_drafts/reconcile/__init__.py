"""Reconciliation of local drafts with remote state and deletions."""

from inspection_drafts.reconcile.engine import PullReport, ReconciliationEngine, StartupReport

__all__ = ["PullReport", "ReconciliationEngine", "StartupReport"]
