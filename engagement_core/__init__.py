"""Engagement reconciliation and timeline synthesis engine.

Pure, synchronous transformations over normalized ingestion records:

    reconcile          -- survey counts vs. project board vs. contributor profiles
    synthesize         -- merged, deduplicated, newest-first activity timeline
    detect_inactivity  -- per-user inactivity alerts from weekly survey history

The engine holds no state between calls; callers persist the results.
"""

from engagement_core.monitors.inactivity import InactivityMonitor, detect_inactivity
from engagement_core.pipeline import EngagementPipeline, EngagementReport
from engagement_core.reconciliation import ReconciliationResult, reconcile
from engagement_core.timeline import ProjectBoardRef, synthesize

__all__ = [
    "EngagementPipeline",
    "EngagementReport",
    "InactivityMonitor",
    "ProjectBoardRef",
    "ReconciliationResult",
    "detect_inactivity",
    "reconcile",
    "synthesize",
]
