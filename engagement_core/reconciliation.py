"""Reconciliation Engine.

Cross-validates each survey respondent's self-reported weekly count
against two independent sources:

  Primary   -- survey count vs. project board items assigned to the user
  Secondary -- contributor profile total vs. the same board count

Both checks use one tolerance. The project board is the source of truth:
without board data no comparison is meaningful, so validation is skipped
entirely (an informational outcome, not a failure).

Each survey row is reconciled on its own and yields a RecordOutcome, so a
row that cannot be reconciled is skipped without touching the rest of
the batch. When several rows resolve to the same username the later row
replaces the earlier one in the validated map; discrepancies from every
row are kept.
"""

import logging
from collections import Counter
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field

from engagement_core.config import DEFAULT_TOLERANCE
from engagement_core.identity import normalize_contributor_name
from engagement_core.schemas.models import (
    ContributorProfile,
    Discrepancy,
    ProjectBoardItem,
    SurveyRecord,
    ValidatedContribution,
)

logger = logging.getLogger(__name__)


@dataclass
class RecordOutcome:
    """Result of reconciling one survey row.

    Fields:
        status:        "ok" or "skipped"
        reason:        Why the row was skipped (empty when ok)
        contribution:  Validated counts for the row's user (ok only)
        discrepancies: Failed checks for the row (ok only)
    """
    status: str
    reason: str = ""
    contribution: ValidatedContribution | None = None
    discrepancies: list[Discrepancy] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "ok"


@dataclass
class ReconciliationResult:
    """Validated contributions keyed by username plus all discrepancies."""
    validated: dict[str, ValidatedContribution] = field(default_factory=dict)
    discrepancies: list[Discrepancy] = field(default_factory=list)
    skipped: bool = False

    def __iter__(self):
        # Allows ``validated, discrepancies = reconcile(...)``
        yield self.validated
        yield self.discrepancies


def within_tolerance(a: int, b: int, tolerance: int) -> bool:
    """The single agreement rule shared by both checks."""
    return abs(a - b) <= tolerance


def count_board_items(board_items: Iterable[ProjectBoardItem]) -> Counter:
    """Count board items per assignee username."""
    return Counter(item.assignee for item in board_items if item.assignee)


def profile_count(profile: ContributorProfile | None) -> int:
    if profile is None:
        return 0
    return profile.total()


def reconcile(
    board_items: list[ProjectBoardItem] | None,
    profiles_by_username: Mapping[str, ContributorProfile] | None,
    survey_records: Iterable[SurveyRecord] | None,
    tolerance: int | None = None,
    normalizer: Callable[[str], str] = normalize_contributor_name,
) -> ReconciliationResult:
    """Cross-validate survey counts against the board and contributor profiles.

    Args:
        board_items:          Project board items (primary source of truth)
        profiles_by_username: Contribution aggregates keyed by username
        survey_records:       Weekly survey rows
        tolerance:            Max allowed count difference for both checks.
                              Defaults to DEFAULT_TOLERANCE.
        normalizer:           Display name -> canonical username

    Returns:
        ReconciliationResult; ``skipped`` is True when there was no board data.

    Raises:
        ValueError: If tolerance is negative.
    """
    if tolerance is None:
        tolerance = DEFAULT_TOLERANCE
    if tolerance < 0:
        raise ValueError(f"Tolerance must be non-negative, got {tolerance}")

    if not board_items:
        logger.info("No project board data available, skipping contribution validation")
        return ReconciliationResult(skipped=True)

    board_counts = count_board_items(board_items)
    profiles = profiles_by_username or {}
    result = ReconciliationResult()
    skipped_rows = 0

    for record in survey_records or []:
        outcome = _reconcile_record(record, board_counts, profiles, tolerance, normalizer)
        if not outcome.ok:
            skipped_rows += 1
            logger.debug("Reconciliation: skipped row (%s)", outcome.reason)
            continue

        contribution = outcome.contribution
        if contribution.username in result.validated:
            logger.debug(
                "Reconciliation: later row replaces earlier result for %s",
                contribution.username,
            )
        result.validated[contribution.username] = contribution
        result.discrepancies.extend(outcome.discrepancies)

    logger.info(
        "Reconciliation complete: %d users validated, %d discrepancies, %d rows skipped",
        len(result.validated), len(result.discrepancies), skipped_rows,
    )
    return result


def _reconcile_record(
    record: SurveyRecord,
    board_counts: Counter,
    profiles: Mapping[str, ContributorProfile],
    tolerance: int,
    normalizer: Callable[[str], str],
) -> RecordOutcome:
    """Reconcile a single survey row into an outcome."""
    if not record.name:
        return RecordOutcome(status="skipped", reason="empty contributor name")

    username = normalizer(record.name)
    if not username:
        return RecordOutcome(status="skipped", reason=f"no username for '{record.name}'")

    reported = record.reported_count()
    board = board_counts.get(username, 0)
    profile = profile_count(profiles.get(username))

    board_valid = within_tolerance(reported, board, tolerance)
    contributor_valid = within_tolerance(profile, board, tolerance)

    discrepancies: list[Discrepancy] = []
    if not board_valid:
        discrepancies.append(Discrepancy(
            username=username,
            source="project_board",
            description=f"Project Board: Reported {reported} vs actual {board}",
        ))
    if not contributor_valid:
        discrepancies.append(Discrepancy(
            username=username,
            source="contributor_profile",
            description=f"Contributor Profile: Board shows {board} vs profile shows {profile}",
        ))

    return RecordOutcome(
        status="ok",
        contribution=ValidatedContribution(
            username=username,
            reported=reported,
            project_board=board,
            profile=profile,
            is_valid=board_valid,
            contributor_valid=contributor_valid,
        ),
        discrepancies=discrepancies,
    )
