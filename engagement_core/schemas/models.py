"""Pydantic v2 validation models for engagement core data structures.

Input models normalize the loosely typed rows handed over by the
ingestion layer; output models are the records the three components
emit. Construction of an output model that fails validation is a defect
in the engine, not dirty input, and is left to raise.

Data sources modeled:
- survey rows (string-keyed, column headers as keys) -> SurveyRecord
- project board items (board API shape)              -> ProjectBoardItem
- per-user contribution aggregates                   -> ContributorProfile
"""

from __future__ import annotations

import datetime
import re
import uuid
from typing import Iterator, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# ── Enums as frozensets for strict validation ──

EVENT_TYPES = frozenset({"issue", "pr", "survey"})

EVENT_STATUSES = frozenset({"open", "closed", "merged"})

BOARD_STATES = frozenset({"OPEN", "CLOSED", "MERGED"})

STATUS_COLUMNS = frozenset({"Todo", "In Progress", "Done"})

ALERT_TYPES = frozenset({"inactivity", "contribution-drop", "new-contributor"})

ALERT_STATUSES = frozenset({"new", "active", "resolved", "dismissed"})

DISCREPANCY_SOURCES = frozenset({"project_board", "contributor_profile"})

# Board column name -> status column
COLUMN_STATUS = {
    "In Progress": "In Progress",
    "In Review": "In Progress",
    "Done": "Done",
    "Backlog": "Todo",
    "Triage": "Todo",
    "Todo": "Todo",
}

# Survey column header -> SurveyRecord field
SURVEY_COLUMNS = {
    "Name": "name",
    "Github Username": "github_username",
    "Program Week": "program_week",
    "Engagement Participation ": "engagement_participation",
    "Engagement Participation": "engagement_participation",
    "Tech Partner Collaboration?": "tech_partner_collaboration",
    "Which Tech Partner": "tech_partners",
    "How many issues, PRs, or projects this week?": "issue_count",
    "Issue Title 1": "issue_title_1",
    "Issue Link 1": "issue_link_1",
    "Issue Description 1": "issue_description_1",
    "Issue Title 2": "issue_title_2",
    "Issue Link 2": "issue_link_2",
    "Issue Description 2": "issue_description_2",
    "Issue Title 3": "issue_title_3",
    "Issue Link 3": "issue_link_3",
    "Issue Description 3": "issue_description_3",
    "How likely are you to recommend the PLDG to others?": "recommendation_score",
    "PLDG Feedback": "feedback",
    "Email Address": "email",
}

ISSUE_SLOT_COUNT = 3

_LEADING_INT = re.compile(r"^\s*(\d+)")


def _first_value(value) -> str:
    """Collapse a survey cell to a string; multi-select cells keep their first entry."""
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return str(value[0]) if value else ""
    return str(value)


def _check_member(value: str, allowed: frozenset, label: str) -> str:
    if value not in allowed:
        raise ValueError(
            f"Invalid {label} '{value}'. Must be one of: {sorted(allowed)}"
        )
    return value


# ── Input: Survey Record ──

class SurveyRecord(BaseModel):
    """One weekly survey response from a program participant.

    Every text field defaults to "" and the contribution count to "0"
    when absent from the raw row, matching what the ingestion layer
    hands over for blank cells.
    """

    name: str = Field(
        default="",
        description="Contributor display name as typed in the survey",
        examples=["Ana Lopez"],
    )
    github_username: str = Field(
        default="",
        description="Optional platform username supplied by the respondent",
    )
    program_week: str = Field(
        default="",
        description="Program week label",
        examples=["Week 7", "Week 7 (Jan 1 - Jan 7, 2024)"],
    )
    engagement_participation: str = Field(default="")
    tech_partner_collaboration: str = Field(
        default="",
        description="Whether the respondent worked with a tech partner (Yes/No)",
    )
    tech_partners: list[str] = Field(
        default_factory=list,
        description="Tech partners the respondent collaborated with",
    )
    issue_count: str = Field(
        default="0",
        description="Free-text count of issues, PRs, or projects this week",
        examples=["3", "0", "a few"],
    )
    issue_title_1: str = ""
    issue_link_1: str = ""
    issue_description_1: str = ""
    issue_title_2: str = ""
    issue_link_2: str = ""
    issue_description_2: str = ""
    issue_title_3: str = ""
    issue_link_3: str = ""
    issue_description_3: str = ""
    recommendation_score: str = Field(default="")
    feedback: str = Field(default="")
    email: str = Field(default="")

    @field_validator("tech_partners", mode="before")
    @classmethod
    def split_partners(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        return [str(p).strip() for p in v if p and str(p).strip()]

    @field_validator("issue_count", mode="before")
    @classmethod
    def default_issue_count(cls, v):
        if v is None or v == "":
            return "0"
        return _first_value(v)

    @classmethod
    def from_raw(cls, row: dict) -> SurveyRecord:
        """Build a record from a survey row keyed by column header.

        Unknown columns are ignored. List-valued cells collapse to their
        first element, except the tech-partner list which is kept whole.
        """
        fields: dict = {}
        for column, value in row.items():
            field_name = SURVEY_COLUMNS.get(column)
            if field_name is None or value is None:
                continue
            if field_name == "tech_partners":
                fields[field_name] = value
            else:
                fields[field_name] = _first_value(value)
        return cls(**fields)

    def issue_slots(self) -> Iterator[tuple[str, str, str]]:
        """Yield (title, link, description) for each of the issue slots."""
        for n in range(1, ISSUE_SLOT_COUNT + 1):
            yield (
                getattr(self, f"issue_title_{n}"),
                getattr(self, f"issue_link_{n}"),
                getattr(self, f"issue_description_{n}"),
            )

    def reported_count(self) -> int:
        """Parse the free-text contribution count; non-numeric text is 0."""
        # Signed text such as "-2" has no leading digits and counts as 0.
        match = _LEADING_INT.match(self.issue_count)
        return int(match.group(1)) if match else 0

    @property
    def primary_tech_partner(self) -> str:
        return self.tech_partners[0] if self.tech_partners else ""


# ── Input: Project Board Item ──

class ProjectBoardItem(BaseModel):
    """An issue or pull request tracked on the project board.

    ``created_at`` is kept as the raw upstream string; consumers normalize
    it and decide what to do with malformed values.
    """

    id: str = Field(..., description="Board item identifier")
    title: str = Field(default="")
    state: str = Field(
        default="OPEN",
        description="Lifecycle state",
        examples=["OPEN", "CLOSED", "MERGED"],
    )
    is_pull_request: bool = Field(default=False)
    merged: bool = Field(
        default=False,
        description="True when a pull request was merged rather than just closed",
    )
    created_at: Optional[str] = Field(default=None)
    closed_at: Optional[str] = Field(default=None)
    assignee: Optional[str] = Field(
        default=None,
        description="Assignee platform username",
    )
    status_column: str = Field(default="Todo")

    @field_validator("state", mode="before")
    @classmethod
    def upper_state(cls, v):
        return str(v or "OPEN").upper()

    @field_validator("state")
    @classmethod
    def validate_state(cls, v: str) -> str:
        return _check_member(v, BOARD_STATES, "board state")

    @field_validator("status_column")
    @classmethod
    def validate_status_column(cls, v: str) -> str:
        return _check_member(v, STATUS_COLUMNS, "status column")

    @model_validator(mode="after")
    def merged_state_implies_pull_request(self):
        if self.state == "MERGED":
            self.is_pull_request = True
            self.merged = True
        return self

    @classmethod
    def from_raw(cls, item: dict) -> ProjectBoardItem:
        """Build an item from the board API shape.

        Accepts either flat keys (``assignee.login``, ``created_at``,
        ``pull_request``) or the project-items shape with ``content``,
        ``assignees.nodes`` and ``fieldValues.nodes``.
        """
        content = item.get("content") or {}
        source = {**content, **item} if content else item

        assignee = None
        raw_assignee = source.get("assignee")
        if isinstance(raw_assignee, dict):
            assignee = raw_assignee.get("login")
        elif isinstance(raw_assignee, str):
            assignee = raw_assignee
        if not assignee:
            nodes = (source.get("assignees") or {}).get("nodes") or []
            if nodes:
                assignee = nodes[0].get("login")

        is_pr = bool(
            source.get("pull_request")
            or source.get("is_pull_request")
            or source.get("isPullRequest")
            or source.get("__typename") == "PullRequest"
        )

        return cls(
            id=str(item.get("id", "")),
            title=source.get("title") or "",
            state=source.get("state") or "OPEN",
            is_pull_request=is_pr,
            merged=bool(source.get("merged") or source.get("merged_at") or source.get("mergedAt")),
            created_at=source.get("created_at") or source.get("createdAt"),
            closed_at=source.get("closed_at") or source.get("closedAt"),
            assignee=assignee or None,
            status_column=_status_column(item),
        )


def _status_column(item: dict) -> str:
    """Derive Todo/In Progress/Done from the board's Status column."""
    column = item.get("status")
    if not column:
        nodes = (item.get("fieldValues") or {}).get("nodes") or []
        for node in nodes:
            field = node.get("field") or {}
            if (field.get("name") or "").lower() == "status":
                column = node.get("name")
                break
    return COLUMN_STATUS.get(column or "", "Todo")


# ── Input: Contributor Profile ──

class ContributorProfile(BaseModel):
    """Per-username contribution aggregates from the contribution-history API."""

    issues_created: int = Field(default=0, ge=0)
    pull_requests_created: int = Field(default=0, ge=0)
    pull_requests_reviewed: int = Field(default=0, ge=0)

    def total(self) -> int:
        return (
            self.issues_created
            + self.pull_requests_created
            + self.pull_requests_reviewed
        )

    @classmethod
    def from_raw(cls, data: dict) -> ContributorProfile:
        """Accept the nested ``{"issues": {...}, "pullRequests": {...}}`` shape."""
        if "issues" not in data and "pullRequests" not in data:
            return cls(**data)
        issues = data.get("issues") or {}
        prs = data.get("pullRequests") or {}
        return cls(
            issues_created=issues.get("created", 0),
            pull_requests_created=prs.get("created", 0),
            pull_requests_reviewed=prs.get("reviewed", 0),
        )


# ── Output: Reconciliation ──

class ValidatedContribution(BaseModel):
    """Cross-source contribution counts for one user."""

    username: str = Field(..., min_length=1)
    reported: int = Field(..., ge=0, description="Self-reported weekly count")
    project_board: int = Field(..., ge=0, description="Board items assigned to the user")
    profile: int = Field(..., ge=0, description="Profile issues + PRs created + PRs reviewed")
    is_valid: bool = Field(..., description="Survey vs. board within tolerance")
    contributor_valid: bool = Field(..., description="Profile vs. board within tolerance")


class Discrepancy(BaseModel):
    """A count mismatch between two sources that exceeds the tolerance."""

    username: str
    source: str = Field(..., description="Which comparison failed")
    description: str

    @field_validator("source")
    @classmethod
    def validate_source(cls, v: str) -> str:
        return _check_member(v, DISCREPANCY_SOURCES, "discrepancy source")


# ── Output: Timeline ──

class TimelineEvent(BaseModel):
    """One entry of the merged activity timeline."""

    id: str = Field(..., min_length=1, description="Unique within one synthesis run")
    type: str = Field(..., examples=["issue", "pr", "survey"])
    title: str
    url: Optional[str] = None
    date: datetime.date = Field(..., description="Calendar day of the activity")
    contributor: str
    contributor_username: str
    tech_partner: str = ""
    cohort: str
    week: str
    status: str = Field(..., examples=["open", "closed", "merged"])
    description: Optional[str] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v: str) -> str:
        return _check_member(v, EVENT_TYPES, "event type")

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        return _check_member(v, EVENT_STATUSES, "event status")

    def dedup_key(self) -> tuple[str, str, datetime.date, str]:
        """Composite identity used to collapse duplicates across sources."""
        return (self.type, self.title, self.date, self.contributor)


# ── Alerts ──

class AlertThreshold(BaseModel):
    """Alert thresholds.

    Only ``inactive_weeks`` is evaluated today; the drop thresholds are
    part of the configuration contract for the drop detectors.
    """

    inactive_weeks: int = Field(default=2, ge=1)
    contribution_drop_percentage: float = Field(default=30, ge=0, le=100)
    contributor_drop_count: int = Field(default=2, ge=1)


def _utc_now_iso() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


class Alert(BaseModel):
    """Per-user engagement alert handed to the alert store."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str = Field(..., min_length=1)
    user_name: str = Field(..., min_length=1)
    github_username: Optional[str] = None
    cohort_id: str
    alert_type: str
    metric: str
    current_value: float
    previous_value: Optional[float] = None
    percentage_change: Optional[float] = None
    week: str = Field(..., min_length=1)
    first_detected: str = Field(default_factory=_utc_now_iso)
    status: str = "new"
    description: str = ""
    weeks_inactive: Optional[int] = Field(default=None, ge=0)
    last_active_week: Optional[str] = None

    @field_validator("alert_type")
    @classmethod
    def validate_alert_type(cls, v: str) -> str:
        return _check_member(v, ALERT_TYPES, "alert type")

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        return _check_member(v, ALERT_STATUSES, "alert status")


class AlertSummary(BaseModel):
    """Counts over a batch of alerts, for the presentation layer."""

    total_alerts: int = Field(..., ge=0)
    by_type: dict[str, int] = Field(default_factory=dict)
    by_status: dict[str, int] = Field(default_factory=dict)
    alerts: list[Alert] = Field(default_factory=list)
