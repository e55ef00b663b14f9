"""Timeline Synthesizer.

Merges project board items and survey rows into a single activity
timeline, newest first. Each event is labeled with the cohort and program
week its date falls in.

Event sources:
  Board item   -> one "issue" or "pr" event dated by its creation day
  Survey row   -> one "survey" event for the week (unless the respondent
                  reported literally "0"), plus one "issue"/"pr" event per
                  filled (title, link) slot, dated by the week's first day

Events collapse on the composite key (type, title, date, contributor);
the first occurrence wins, board items before survey rows. The seen-key
set lives only for the duration of one ``synthesize`` call.

A record whose date is missing or malformed is logged and skipped; the
rest of the batch is unaffected.
"""

import hashlib
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

from engagement_core.program_calendar import (
    MalformedDateError,
    determine_cohort,
    normalize_date,
    parse_week_number,
    week_label,
    week_number_from_date,
    week_start_date,
)
from engagement_core.schemas.models import ProjectBoardItem, SurveyRecord, TimelineEvent

logger = logging.getLogger(__name__)

# Raw survey count that means "nothing to report this week". Compared as
# text, so "00" or " 0" still produce a survey event.
NO_CONTRIBUTIONS_TEXT = "0"

PULL_REQUEST_LINK_MARKER = "/pull/"

UNASSIGNED = "unassigned"
ANONYMOUS = "anonymous"
UNKNOWN_PARTNER = "unknown"


@dataclass(frozen=True)
class ProjectBoardRef:
    """Where board events link to and whose board it is."""
    url: str = ""
    owner: str = ""

    @classmethod
    def from_config(cls, config: dict) -> "ProjectBoardRef":
        board = config.get("project_board", {})
        return cls(url=board.get("url", ""), owner=board.get("owner", ""))


@dataclass
class SourceOutcome:
    """Events converted from one source record, or the reason it was skipped."""
    events: list[TimelineEvent] = field(default_factory=list)
    error: str = ""

    @property
    def skipped(self) -> bool:
        return bool(self.error)


def event_id(event_type: str, title: str, day, contributor: str) -> str:
    """Deterministic id derived from the dedup key."""
    raw = f"{event_type}|{title}|{day.isoformat()}|{contributor}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


def _reports_no_contributions(record: SurveyRecord) -> bool:
    return record.issue_count == NO_CONTRIBUTIONS_TEXT


def _board_status(item: ProjectBoardItem) -> str:
    status = item.state.lower()
    if item.is_pull_request and item.merged and status == "closed":
        return "merged"
    return status


def _events_from_board_item(item: ProjectBoardItem, board: ProjectBoardRef) -> list[TimelineEvent]:
    if not item.title:
        return []

    day = normalize_date(item.created_at)
    event_type = "pr" if item.is_pull_request else "issue"
    contributor = item.assignee or UNASSIGNED
    return [TimelineEvent(
        id=event_id(event_type, item.title, day, contributor),
        type=event_type,
        title=item.title,
        url=board.url or None,
        date=day,
        contributor=contributor,
        contributor_username=contributor,
        tech_partner=board.owner,
        cohort=determine_cohort(day),
        week=week_label(week_number_from_date(day)),
        status=_board_status(item),
    )]


def _events_from_survey(record: SurveyRecord) -> list[TimelineEvent]:
    week_number = parse_week_number(record.program_week)
    if not week_number:
        raise MalformedDateError(record.program_week)

    day = week_start_date(week_number)
    cohort = determine_cohort(day)
    week = week_label(week_number)
    tech_partner = record.primary_tech_partner or UNKNOWN_PARTNER
    contributor = record.name or ANONYMOUS
    events: list[TimelineEvent] = []

    if not _reports_no_contributions(record):
        title = f"{week} Survey Response"
        events.append(TimelineEvent(
            id=event_id("survey", title, day, contributor),
            type="survey",
            title=title,
            date=day,
            contributor=contributor,
            contributor_username=contributor,
            tech_partner=tech_partner,
            cohort=cohort,
            week=week,
            status="closed",
            description=f"Reported {record.issue_count} contributions",
        ))

    for title, link, description in record.issue_slots():
        if not (title and link):
            continue
        event_type = "pr" if PULL_REQUEST_LINK_MARKER in link else "issue"
        events.append(TimelineEvent(
            id=event_id(event_type, title, day, contributor),
            type=event_type,
            title=title,
            url=link,
            date=day,
            contributor=contributor,
            contributor_username=record.github_username or ANONYMOUS,
            tech_partner=tech_partner,
            cohort=cohort,
            week=week,
            status="closed",
            description=description or None,
        ))

    return events


def _convert(record, converter: Callable[..., list[TimelineEvent]], *args) -> SourceOutcome:
    try:
        return SourceOutcome(events=converter(record, *args))
    except MalformedDateError as e:
        return SourceOutcome(error=str(e))


def synthesize(
    board_items: Iterable[ProjectBoardItem] | None = None,
    survey_records: Iterable[SurveyRecord] | None = None,
    *,
    project_board: ProjectBoardRef | None = None,
) -> list[TimelineEvent]:
    """Merge board items and survey rows into a deduplicated timeline.

    Args:
        board_items:    Project board items (optional)
        survey_records: Weekly survey rows (optional)
        project_board:  URL/owner stamped onto board events

    Returns:
        Events sorted by date, newest first. Events on the same day keep
        their merge order.
    """
    board = project_board or ProjectBoardRef()
    seen: set[tuple] = set()
    events: list[TimelineEvent] = []
    skipped = 0

    def add(outcome: SourceOutcome, label: str, ref: str) -> None:
        nonlocal skipped
        if outcome.skipped:
            skipped += 1
            logger.error("Skipping %s %s: %s", label, ref, outcome.error)
            return
        for event in outcome.events:
            key = event.dedup_key()
            if key in seen:
                logger.debug("Duplicate timeline event dropped: %s", key)
                continue
            seen.add(key)
            events.append(event)

    for item in board_items or []:
        add(_convert(item, _events_from_board_item, board), "board item", item.id)

    for record in survey_records or []:
        add(_convert(record, _events_from_survey), "survey row for", repr(record.name))

    timeline = sorted(
        (e for e in events if e.title and e.date),
        key=lambda e: e.date,
        reverse=True,
    )
    logger.info(
        "Timeline synthesized: %d events (%d records skipped)",
        len(timeline), skipped,
    )
    return timeline
