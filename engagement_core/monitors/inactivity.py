"""Inactivity Monitor.

Flags participants whose most recent survey response is
``threshold.inactive_weeks`` or more weeks behind the current program
week.

Activity is modeled as a binary flag: an alert records the transition
from active (1) to inactive (0) as a fixed -100% change rather than a
measured magnitude.

Respondents are grouped by their exact display name (case-sensitive)
unless the caller supplies a normalizer. Rows whose program week has no
week number are skipped before grouping.
"""

import logging
from collections.abc import Callable, Iterable

from engagement_core.monitors import BaseMonitor, build_alert
from engagement_core.program_calendar import parse_week_number
from engagement_core.schemas.models import Alert, AlertThreshold, SurveyRecord

logger = logging.getLogger(__name__)

MONITOR_NAME = "inactivity"

ACTIVE_FLAG = 1
INACTIVE_FLAG = 0
ACTIVE_TO_INACTIVE_CHANGE = -100.0


def group_by_contributor(
    survey_records: Iterable[SurveyRecord],
    normalizer: Callable[[str], str] | None = None,
) -> dict[str, list[SurveyRecord]]:
    """Group rows by contributor key, preserving first-seen order.

    Rows without a name are dropped.
    """
    groups: dict[str, list[SurveyRecord]] = {}
    for record in survey_records:
        if not record.name:
            continue
        key = normalizer(record.name) if normalizer else record.name
        if not key:
            continue
        groups.setdefault(key, []).append(record)
    return groups


def detect_inactivity(
    survey_records: Iterable[SurveyRecord],
    cohort_id: str,
    current_week: str,
    threshold: AlertThreshold | None = None,
    normalizer: Callable[[str], str] | None = None,
) -> list[Alert]:
    """Emit an inactivity alert for each user who stopped reporting.

    Args:
        survey_records: Weekly survey rows for the cohort
        cohort_id:      Cohort identifier stamped on each alert
        current_week:   Week label to measure against (e.g. "Week 6")
        threshold:      Alert thresholds; only ``inactive_weeks`` is used
        normalizer:     Optional name -> grouping key function

    Returns:
        One Alert per inactive user, in first-seen user order.

    Raises:
        AlertConstructionError: If an alert fails its own validation.
    """
    threshold = threshold or AlertThreshold()
    current_number = parse_week_number(current_week)
    if not current_number:
        logger.warning("Inactivity check skipped: unparseable current week %r", current_week)
        return []

    dated: list[SurveyRecord] = []
    for record in survey_records:
        if parse_week_number(record.program_week):
            dated.append(record)
        else:
            logger.warning(
                "Inactivity: skipping row for %r with unparseable week %r",
                record.name, record.program_week,
            )

    alerts: list[Alert] = []
    groups = group_by_contributor(dated, normalizer)

    for user_key, history in groups.items():
        ordered = sorted(history, key=lambda r: parse_week_number(r.program_week))
        latest = ordered[-1]
        latest_week = latest.program_week
        weeks_inactive = current_number - parse_week_number(latest_week)

        if weeks_inactive < threshold.inactive_weeks:
            continue

        alerts.append(build_alert(
            MONITOR_NAME,
            user_id=user_key,
            user_name=latest.name,
            github_username=latest.github_username or None,
            cohort_id=cohort_id,
            alert_type="inactivity",
            metric="engagement",
            current_value=INACTIVE_FLAG,
            previous_value=ACTIVE_FLAG,
            percentage_change=ACTIVE_TO_INACTIVE_CHANGE,
            week=current_week,
            status="new",
            description=f"Inactive for {weeks_inactive} weeks (last active: {latest_week})",
            weeks_inactive=weeks_inactive,
            last_active_week=latest_week,
        ))
        logger.debug(
            "Inactivity: %s inactive for %d weeks (last active: %s)",
            user_key, weeks_inactive, latest_week,
        )

    logger.info(
        "InactivityMonitor: %d alerts from %d users (cohort %s, %s)",
        len(alerts), len(groups), cohort_id, current_week,
    )
    return alerts


class InactivityMonitor(BaseMonitor):
    """Config-driven wrapper around ``detect_inactivity``.

    Reads ``monitors.inactivity`` for the AlertThreshold fields.
    """

    name = MONITOR_NAME

    def __init__(self, config: dict, normalizer: Callable[[str], str] | None = None):
        super().__init__(config)
        self.threshold = AlertThreshold(**self.monitor_config)
        self.normalizer = normalizer

    def check(
        self, survey_records: list[SurveyRecord], cohort_id: str, current_week: str
    ) -> list[Alert]:
        return detect_inactivity(
            survey_records,
            cohort_id,
            current_week,
            threshold=self.threshold,
            normalizer=self.normalizer,
        )
