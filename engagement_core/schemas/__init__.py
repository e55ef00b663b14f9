"""Pydantic v2 schema models for the engagement core.

Input models (normalized ingestion records):
- SurveyRecord: one weekly survey response
- ProjectBoardItem: one issue or pull request on the project board
- ContributorProfile: per-username contribution aggregates

Output models:
- ValidatedContribution, Discrepancy: reconciliation results
- TimelineEvent: merged activity timeline entry
- Alert, AlertThreshold, AlertSummary: engagement alerts
"""

from engagement_core.schemas.models import (
    Alert,
    AlertSummary,
    AlertThreshold,
    ContributorProfile,
    Discrepancy,
    ProjectBoardItem,
    SurveyRecord,
    TimelineEvent,
    ValidatedContribution,
)

__all__ = [
    "Alert",
    "AlertSummary",
    "AlertThreshold",
    "ContributorProfile",
    "Discrepancy",
    "ProjectBoardItem",
    "SurveyRecord",
    "TimelineEvent",
    "ValidatedContribution",
]
