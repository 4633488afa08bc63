"""Tests for the comment ledger."""

import json
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

from performance_engine.workflow import (
    CommentEntry,
    CommentLedger,
    CommentRole,
    WorkflowAction,
)

from .conftest import START, SUPERVISOR_ID


def entry(role: CommentRole, text: str = "", minutes: int = 0, **kwargs) -> CommentEntry:
    return CommentEntry(
        author_id=kwargs.pop("author_id", SUPERVISOR_ID),
        author_display_name=kwargs.pop("author_display_name", "Sam Supervisor"),
        role=role,
        text=text,
        action=kwargs.pop("action", WorkflowAction.COMMENT),
        timestamp=START + timedelta(minutes=minutes),
        **kwargs,
    )


class TestCommentLedger:
    """Test append-only behavior and projections."""

    def test_append_returns_new_ledger(self):
        ledger = CommentLedger()
        appended = ledger.append(entry(CommentRole.SUPERVISOR, "Looks good"))

        assert len(ledger) == 0
        assert len(appended) == 1
        assert appended.latest(CommentRole.SUPERVISOR).text == "Looks good"

    def test_threads_keep_chronological_order(self):
        ledger = CommentLedger()
        for i in range(3):
            ledger = ledger.append(entry(CommentRole.REVIEWER, f"note {i}", minutes=i))

        assert [e.text for e in ledger.for_role("reviewer")] == ["note 0", "note 1", "note 2"]
        assert ledger.for_role(CommentRole.SUPERVISOR) == ()
        assert ledger.latest(CommentRole.SUPERVISOR) is None

    def test_to_dict_always_has_legacy_threads(self):
        assert CommentLedger().to_dict() == {"supervisor": [], "reviewer": []}

    def test_to_dict_adds_employee_thread_when_present(self):
        ledger = CommentLedger().append(
            entry(CommentRole.EMPLOYEE, action=WorkflowAction.SUBMIT)
        )
        projected = ledger.to_dict()
        assert set(projected) == {"supervisor", "reviewer", "employee"}
        assert projected["employee"][0]["action"] == "submit"
        assert projected["employee"][0]["timestamp"] == START.isoformat()

    def test_equality_and_ids(self):
        first = entry(CommentRole.SUPERVISOR, "a")
        ledger = CommentLedger([first])
        assert ledger == CommentLedger([first])
        assert ledger.ids() == {first.id}


class TestLegacyImport:
    """Test reading the legacy two-keyed comments shape."""

    def test_reads_json_string(self):
        payload = json.dumps(
            {
                "supervisor": [
                    {
                        "userId": str(SUPERVISOR_ID),
                        "name": "Sam Supervisor",
                        "comment": "Please add targets",
                        "timestamp": "2024-02-01T10:00:00Z",
                        "action": "request_changes",
                    }
                ],
                "reviewer": [
                    {
                        "userId": "legacy-user-7",
                        "name": "Rita",
                        "comment": "Fine by me",
                        "timestamp": "2024-01-01T10:00:00+00:00",
                    }
                ],
            }
        )
        ledger = CommentLedger.from_legacy(payload)

        assert len(ledger) == 2
        # merged in timestamp order
        assert [e.role for e in ledger] == [CommentRole.REVIEWER, CommentRole.SUPERVISOR]
        supervisor = ledger.latest(CommentRole.SUPERVISOR)
        assert supervisor.author_id == SUPERVISOR_ID
        assert supervisor.text == "Please add targets"
        assert supervisor.action == WorkflowAction.REQUEST_CHANGES
        assert supervisor.timestamp == datetime(2024, 2, 1, 10, 0, tzinfo=timezone.utc)

        reviewer = ledger.latest(CommentRole.REVIEWER)
        assert isinstance(reviewer.author_id, UUID)
        assert reviewer.action == WorkflowAction.COMMENT

    def test_non_uuid_ids_map_deterministically(self):
        payload = {"reviewer": [{"userId": "legacy-user-7", "comment": "x", "timestamp": "2024-01-01"}]}
        first = CommentLedger.from_legacy(payload)
        second = CommentLedger.from_legacy(payload)
        assert first.latest("reviewer").author_id == second.latest("reviewer").author_id

    def test_tolerates_malformed_payloads(self):
        assert len(CommentLedger.from_legacy(None)) == 0
        assert len(CommentLedger.from_legacy("")) == 0
        assert len(CommentLedger.from_legacy("{not json")) == 0
        assert len(CommentLedger.from_legacy("[1, 2]")) == 0
        assert len(CommentLedger.from_legacy({"supervisor": "oops", "reviewer": None})) == 0

    def test_skips_non_object_items(self):
        ledger = CommentLedger.from_legacy(
            {"supervisor": ["text only", {"userId": str(uuid4()), "comment": "ok", "timestamp": "bad"}]}
        )
        assert len(ledger) == 1
        assert ledger.latest("supervisor").timestamp.tzinfo is not None
