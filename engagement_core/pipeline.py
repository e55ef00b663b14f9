"""Fetch-cycle composition of the three engagement components.

Pipeline: Coerce raw rows -> Reconcile -> Synthesize timeline -> Inactivity monitor

The components are independent leaves; this module only wires them to
one config and one set of inputs. Raw dict rows from the ingestion layer
are coerced through the ``from_raw`` constructors; a row that fails
coercion is logged and dropped.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from pydantic import ValidationError

from engagement_core.config import load_config, validation_tolerance
from engagement_core.identity import UsernameResolver, normalize_contributor_name
from engagement_core.monitors import summarize_alerts
from engagement_core.monitors.inactivity import InactivityMonitor
from engagement_core.reconciliation import reconcile
from engagement_core.schemas.models import (
    Alert,
    AlertSummary,
    ContributorProfile,
    Discrepancy,
    ProjectBoardItem,
    SurveyRecord,
    TimelineEvent,
    ValidatedContribution,
)
from engagement_core.timeline import ProjectBoardRef, synthesize

logger = logging.getLogger(__name__)


@dataclass
class EngagementReport:
    """Everything one fetch cycle produces, for the caller to store or render."""
    cohort_id: str
    current_week: str
    validated: dict[str, ValidatedContribution] = field(default_factory=dict)
    discrepancies: list[Discrepancy] = field(default_factory=list)
    validation_skipped: bool = False
    timeline: list[TimelineEvent] = field(default_factory=list)
    alerts: list[Alert] = field(default_factory=list)
    alert_summary: AlertSummary | None = None


def _coerce(rows, model, label: str) -> list:
    coerced = []
    for index, row in enumerate(rows or []):
        if isinstance(row, model):
            coerced.append(row)
            continue
        try:
            coerced.append(model.from_raw(row))
        except (ValidationError, AttributeError, TypeError) as e:
            logger.warning("Dropping malformed %s row %d: %s", label, index, e)
    return coerced


def coerce_survey_records(rows: Iterable) -> list[SurveyRecord]:
    return _coerce(rows, SurveyRecord, "survey")


def coerce_board_items(rows: Iterable) -> list[ProjectBoardItem]:
    return _coerce(rows, ProjectBoardItem, "board item")


def coerce_profiles(profiles: Mapping | None) -> dict[str, ContributorProfile]:
    coerced: dict[str, ContributorProfile] = {}
    for username, data in (profiles or {}).items():
        if isinstance(data, ContributorProfile):
            coerced[username] = data
            continue
        try:
            coerced[username] = ContributorProfile.from_raw(data)
        except (ValidationError, AttributeError, TypeError) as e:
            logger.warning("Dropping malformed profile for %s: %s", username, e)
    return coerced


class EngagementPipeline:
    """Runs reconciliation, timeline synthesis, and inactivity detection.

    With ``identity.resolve_usernames`` set, the fuzzy resolver keys both
    reconciliation and inactivity grouping. Otherwise inactivity groups by
    exact display name.

    Constructor args:
        config: Engine config dict. Loaded from ENGAGEMENT_CONFIG_PATH if None.
    """

    def __init__(self, config: dict | None = None):
        self.config = config if config is not None else load_config()
        self.tolerance = validation_tolerance(self.config)
        self.project_board = ProjectBoardRef.from_config(self.config)

    def _resolves_usernames(self) -> bool:
        return bool(self.config.get("identity", {}).get("resolve_usernames", False))

    def _normalizer(self, board_items, profiles):
        """Shared name normalizer; fuzzy resolution when enabled in config."""
        if not self._resolves_usernames():
            return normalize_contributor_name
        known = {item.assignee for item in board_items if item.assignee}
        known.update(profiles.keys())
        return UsernameResolver.from_config(known, self.config).resolve

    def run(
        self,
        board_items: Iterable,
        profiles: Mapping | None,
        survey_records: Iterable,
        cohort_id: str,
        current_week: str,
    ) -> EngagementReport:
        """Run all three components over one fetch cycle's inputs."""
        items = coerce_board_items(board_items)
        profile_map = coerce_profiles(profiles)
        records = coerce_survey_records(survey_records)
        normalizer = self._normalizer(items, profile_map)

        reconciliation = reconcile(
            items, profile_map, records,
            tolerance=self.tolerance, normalizer=normalizer,
        )
        timeline = synthesize(items, records, project_board=self.project_board)
        # Inactivity keeps exact-name grouping unless resolution is enabled.
        monitor_normalizer = normalizer if self._resolves_usernames() else None
        alerts = InactivityMonitor(self.config, normalizer=monitor_normalizer).check(
            records, cohort_id, current_week,
        )

        report = EngagementReport(
            cohort_id=cohort_id,
            current_week=current_week,
            validated=reconciliation.validated,
            discrepancies=reconciliation.discrepancies,
            validation_skipped=reconciliation.skipped,
            timeline=timeline,
            alerts=alerts,
            alert_summary=summarize_alerts(alerts),
        )
        logger.info(
            "Pipeline complete for %s (%s): %d validated, %d discrepancies, "
            "%d timeline events, %d alerts",
            cohort_id, current_week, len(report.validated),
            len(report.discrepancies), len(report.timeline), len(report.alerts),
        )
        return report
