"""Schema validation tests for engagement core data structures.

Test categories:
1. SurveyRecord defaults and raw-row coercion
2. ProjectBoardItem raw-shape coercion and status column derivation
3. ContributorProfile totals
4. Output models: enum validation, dedup key
5. Alert / AlertThreshold constraints
"""

from datetime import date

import pytest
from pydantic import ValidationError

from engagement_core.schemas.models import (
    Alert,
    AlertThreshold,
    ContributorProfile,
    Discrepancy,
    ProjectBoardItem,
    SurveyRecord,
    TimelineEvent,
)

COUNT_COLUMN = "How many issues, PRs, or projects this week?"


# ── SurveyRecord ──

class TestSurveyRecord:

    def test_defaults(self):
        record = SurveyRecord()
        assert record.name == ""
        assert record.issue_count == "0"
        assert record.tech_partners == []
        assert record.issue_title_3 == ""

    def test_from_raw_maps_columns(self):
        record = SurveyRecord.from_raw({
            "Name": "Ana",
            "Github Username": "ana-gh",
            "Program Week": "Week 7",
            COUNT_COLUMN: "5",
            "Issue Title 1": "Fix parser",
            "Issue Link 1": "https://github.com/o/r/issues/1",
            "Email Address": "ana@example.org",
        })
        assert record.name == "Ana"
        assert record.github_username == "ana-gh"
        assert record.program_week == "Week 7"
        assert record.issue_count == "5"
        assert record.issue_title_1 == "Fix parser"
        assert record.email == "ana@example.org"

    def test_from_raw_missing_fields_default(self):
        record = SurveyRecord.from_raw({"Name": "Ana"})
        assert record.issue_count == "0"
        assert record.program_week == ""

    def test_from_raw_none_and_blank_count(self):
        assert SurveyRecord.from_raw({COUNT_COLUMN: None}).issue_count == "0"
        assert SurveyRecord.from_raw({COUNT_COLUMN: ""}).issue_count == "0"

    def test_from_raw_list_cells_take_first(self):
        record = SurveyRecord.from_raw({
            "Issue Title 1": ["First", "Second"],
            "Issue Link 1": [],
        })
        assert record.issue_title_1 == "First"
        assert record.issue_link_1 == ""

    def test_from_raw_keeps_partner_list(self):
        record = SurveyRecord.from_raw({"Which Tech Partner": ["Libp2p", "IPFS"]})
        assert record.tech_partners == ["Libp2p", "IPFS"]
        assert record.primary_tech_partner == "Libp2p"

    def test_partner_string_is_split(self):
        record = SurveyRecord(tech_partners="Libp2p, IPFS")
        assert record.tech_partners == ["Libp2p", "IPFS"]

    def test_from_raw_ignores_unknown_columns(self):
        record = SurveyRecord.from_raw({"Name": "Ana", "Random Column": "x"})
        assert record.name == "Ana"

    def test_from_raw_stringifies_numbers(self):
        assert SurveyRecord.from_raw({COUNT_COLUMN: 4}).issue_count == "4"

    @pytest.mark.parametrize("text,expected", [
        ("3", 3), ("0", 0), ("12 issues", 12), (" 7", 7),
        ("a few", 0), ("", 0), ("-2", 0),
    ])
    def test_reported_count(self, text, expected):
        assert SurveyRecord(issue_count=text).reported_count() == expected

    def test_issue_slots(self):
        record = SurveyRecord(
            issue_title_1="A", issue_link_1="L1", issue_description_1="D1",
            issue_title_3="C",
        )
        slots = list(record.issue_slots())
        assert len(slots) == 3
        assert slots[0] == ("A", "L1", "D1")
        assert slots[1] == ("", "", "")
        assert slots[2] == ("C", "", "")


# ── ProjectBoardItem ──

class TestProjectBoardItem:

    def test_flat_shape(self):
        item = ProjectBoardItem.from_raw({
            "id": 42,
            "title": "Add docs",
            "state": "open",
            "created_at": "2024-01-05T10:00:00Z",
            "assignee": {"login": "ana"},
        })
        assert item.id == "42"
        assert item.state == "OPEN"
        assert item.assignee == "ana"
        assert item.is_pull_request is False
        assert item.status_column == "Todo"

    def test_project_items_shape(self):
        item = ProjectBoardItem.from_raw({
            "id": "PVTI_1",
            "fieldValues": {"nodes": [
                {"field": {"name": "Title"}, "name": None},
                {"field": {"name": "Status"}, "name": "In Review"},
            ]},
            "content": {
                "title": "Refactor",
                "state": "CLOSED",
                "createdAt": "2024-02-01T00:00:00Z",
                "closedAt": "2024-02-03T00:00:00Z",
                "assignees": {"nodes": [{"login": "bob"}]},
            },
        })
        assert item.title == "Refactor"
        assert item.state == "CLOSED"
        assert item.created_at == "2024-02-01T00:00:00Z"
        assert item.closed_at == "2024-02-03T00:00:00Z"
        assert item.assignee == "bob"
        assert item.status_column == "In Progress"

    @pytest.mark.parametrize("column,expected", [
        ("In Progress", "In Progress"),
        ("In Review", "In Progress"),
        ("Done", "Done"),
        ("Backlog", "Todo"),
        ("Triage", "Todo"),
        ("Someday", "Todo"),
    ])
    def test_status_column_map(self, column, expected):
        item = ProjectBoardItem.from_raw({"id": "1", "status": column})
        assert item.status_column == expected

    def test_pull_request_flag(self):
        item = ProjectBoardItem.from_raw({
            "id": "1", "state": "closed", "pull_request": {"url": "x"}, "merged_at": "2024-01-01",
        })
        assert item.is_pull_request is True
        assert item.merged is True

    def test_merged_state_implies_merged_pull_request(self):
        item = ProjectBoardItem(id="1", state="MERGED")
        assert item.is_pull_request is True
        assert item.merged is True

    def test_invalid_state_rejected(self):
        with pytest.raises(ValidationError):
            ProjectBoardItem(id="1", state="ARCHIVED")

    def test_no_assignee(self):
        item = ProjectBoardItem.from_raw({"id": "1", "title": "x"})
        assert item.assignee is None


# ── ContributorProfile ──

class TestContributorProfile:

    def test_total(self):
        profile = ContributorProfile(
            issues_created=2, pull_requests_created=3, pull_requests_reviewed=4,
        )
        assert profile.total() == 9

    def test_nested_shape(self):
        profile = ContributorProfile.from_raw({
            "issues": {"created": 1, "closed": 5},
            "pullRequests": {"created": 2, "merged": 1, "reviewed": 3},
        })
        assert profile.total() == 6

    def test_flat_shape(self):
        assert ContributorProfile.from_raw({"issues_created": 2}).total() == 2

    def test_negative_rejected(self):
        with pytest.raises(ValidationError):
            ContributorProfile(issues_created=-1)


# ── Output models ──

def _make_event(**overrides):
    fields = {
        "id": "e1",
        "type": "issue",
        "title": "Fix parser",
        "date": date(2024, 1, 5),
        "contributor": "ana",
        "contributor_username": "ana",
        "cohort": "Cohort 1",
        "week": "Week 14",
        "status": "open",
    }
    fields.update(overrides)
    return TimelineEvent(**fields)


class TestTimelineEvent:

    def test_dedup_key(self):
        event = _make_event()
        assert event.dedup_key() == ("issue", "Fix parser", date(2024, 1, 5), "ana")

    def test_dedup_key_ignores_id_and_url(self):
        a = _make_event(id="a", url="https://x")
        b = _make_event(id="b", url=None)
        assert a.dedup_key() == b.dedup_key()

    def test_invalid_type(self):
        with pytest.raises(ValidationError):
            _make_event(type="comment")

    def test_invalid_status(self):
        with pytest.raises(ValidationError):
            _make_event(status="draft")


class TestDiscrepancy:

    def test_invalid_source(self):
        with pytest.raises(ValidationError):
            Discrepancy(username="ana", source="slack", description="x")


class TestAlertModels:

    def _alert(self, **overrides):
        fields = {
            "user_id": "bob",
            "user_name": "bob",
            "cohort_id": "1",
            "alert_type": "inactivity",
            "metric": "engagement",
            "current_value": 0,
            "week": "Week 6",
        }
        fields.update(overrides)
        return Alert(**fields)

    def test_defaults(self):
        alert = self._alert()
        assert alert.status == "new"
        assert alert.id
        assert alert.first_detected

    def test_ids_are_unique(self):
        assert self._alert().id != self._alert().id

    def test_invalid_alert_type(self):
        with pytest.raises(ValidationError):
            self._alert(alert_type="spam")

    def test_invalid_status(self):
        with pytest.raises(ValidationError):
            self._alert(status="acknowledged")

    def test_empty_user_rejected(self):
        with pytest.raises(ValidationError):
            self._alert(user_name="")

    def test_threshold_defaults(self):
        threshold = AlertThreshold()
        assert threshold.inactive_weeks == 2
        assert threshold.contribution_drop_percentage == 30
        assert threshold.contributor_drop_count == 2

    def test_threshold_inactive_weeks_minimum(self):
        with pytest.raises(ValidationError):
            AlertThreshold(inactive_weeks=0)
