"""Monitor framework for the engagement core.

Monitors scan a cohort's weekly survey history and produce Alert
records. They never persist or deduplicate alerts; the alert store owns
the one-active-alert-per-user policy.

Exports:
    AlertConstructionError -- an alert failed its own shape validation
    BaseMonitor            -- abstract base class for all monitors
    build_alert            -- validated Alert construction
    summarize_alerts       -- per-type/per-status counts for a batch
"""

import logging
from abc import ABC, abstractmethod
from collections import Counter
from collections.abc import Iterable

from pydantic import ValidationError

from engagement_core.schemas.models import Alert, AlertSummary, SurveyRecord

logger = logging.getLogger(__name__)


class AlertConstructionError(Exception):
    """Raised when a monitor builds an alert that fails validation.

    This is a defect in the monitor, not a symptom of dirty input.

    Attributes:
        monitor: Name of the monitor that built the alert.
        errors:  Pydantic error list.
    """

    def __init__(self, monitor: str, errors: list):
        self.monitor = monitor
        self.errors = errors
        super().__init__(
            f"{monitor} produced an invalid alert: {len(errors)} validation error(s)"
        )


def build_alert(monitor: str, **fields) -> Alert:
    """Construct an Alert, converting validation failures to AlertConstructionError."""
    try:
        return Alert(**fields)
    except ValidationError as e:
        logger.error("%s built an invalid alert: %s", monitor, e)
        raise AlertConstructionError(monitor, e.errors()) from e


def summarize_alerts(alerts: Iterable[Alert]) -> AlertSummary:
    """Count alerts by type and status for the presentation layer."""
    alerts = list(alerts)
    return AlertSummary(
        total_alerts=len(alerts),
        by_type=dict(Counter(a.alert_type for a in alerts)),
        by_status=dict(Counter(a.status for a in alerts)),
        alerts=alerts,
    )


class BaseMonitor(ABC):
    """Abstract base class for all monitors."""

    name = "monitor"

    def __init__(self, config: dict):
        """Initialize with the engine config dict (reads ``monitors.<name>``)."""
        self.config = config
        self.monitor_config = config.get("monitors", {}).get(self.name, {})

    @abstractmethod
    def check(
        self, survey_records: list[SurveyRecord], cohort_id: str, current_week: str
    ) -> list[Alert]:
        """Run the monitor over one cohort's survey history.

        Args:
            survey_records: Weekly survey rows for the cohort
            cohort_id:      Cohort the rows belong to
            current_week:   Week label to measure against (e.g. "Week 6")

        Returns:
            List of Alert objects (may be empty)
        """
        ...
