"""Comment ledger - append-only, role-threaded log of workflow actions.

The ledger is stored as one flat, ordered list of entries tagged with the
role they were made in. ``to_dict`` projects it onto the per-role shape the
legacy records used, and ``from_legacy`` reads that shape back.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Iterator
from uuid import NAMESPACE_URL, UUID, uuid4, uuid5

from performance_engine.workflow.types import CommentRole, WorkflowAction

logger = logging.getLogger(__name__)

# Threads always present in the projected shape
LEGACY_THREADS = (CommentRole.SUPERVISOR, CommentRole.REVIEWER)


@dataclass(frozen=True)
class CommentEntry:
    """A single ledger entry. Entries are never edited once appended."""

    author_id: UUID
    author_display_name: str
    role: CommentRole
    text: str
    action: WorkflowAction
    timestamp: datetime
    via_override: bool = False
    id: UUID = field(default_factory=uuid4)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return {
            "id": str(self.id),
            "author_id": str(self.author_id),
            "author_display_name": self.author_display_name,
            "role": self.role.value,
            "text": self.text,
            "action": self.action.value,
            "timestamp": self.timestamp.isoformat(),
            "via_override": self.via_override,
        }


class CommentLedger:
    """Immutable sequence of comment entries.

    ``append`` returns a new ledger; the original is never modified, so a
    rejected transition cannot leave a half-written thread behind.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Iterable[CommentEntry] = ()):
        self._entries: tuple[CommentEntry, ...] = tuple(entries)

    def append(self, entry: CommentEntry) -> CommentLedger:
        """Return a new ledger with ``entry`` at the end of its role's thread."""
        return CommentLedger((*self._entries, entry))

    def for_role(self, role: CommentRole | str) -> tuple[CommentEntry, ...]:
        """Entries of one role's thread, in chronological order."""
        role = CommentRole(role)
        return tuple(e for e in self._entries if e.role == role)

    def latest(self, role: CommentRole | str) -> CommentEntry | None:
        """Most recent entry in a role's thread."""
        thread = self.for_role(role)
        return thread[-1] if thread else None

    @property
    def entries(self) -> tuple[CommentEntry, ...]:
        return self._entries

    def ids(self) -> set[UUID]:
        return {e.id for e in self._entries}

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        """Project onto the per-role shape.

        ``supervisor`` and ``reviewer`` are always present; ``employee`` is
        added only when the ledger holds employee submissions.
        """
        result: dict[str, list[dict[str, Any]]] = {
            role.value: [e.to_dict() for e in self.for_role(role)]
            for role in LEGACY_THREADS
        }
        employee = self.for_role(CommentRole.EMPLOYEE)
        if employee:
            result[CommentRole.EMPLOYEE.value] = [e.to_dict() for e in employee]
        return result

    @classmethod
    def from_legacy(cls, payload: str | dict[str, Any] | None) -> CommentLedger:
        """Build a ledger from a legacy serialized comments field.

        Accepts a JSON string or an already-decoded dict keyed by role.
        Missing or non-list threads are treated as empty. Entries of
        different threads are merged in timestamp order.
        """
        if payload is None or payload == "":
            return cls()
        if isinstance(payload, str):
            try:
                payload = json.loads(payload)
            except json.JSONDecodeError:
                logger.warning("Discarding undecodable legacy comments payload")
                return cls()
        if not isinstance(payload, dict):
            return cls()

        entries: list[CommentEntry] = []
        for role in CommentRole:
            thread = payload.get(role.value)
            if not isinstance(thread, list):
                continue
            for item in thread:
                if isinstance(item, dict):
                    entries.append(_entry_from_legacy(role, item))

        entries.sort(key=lambda e: e.timestamp)
        return cls(entries)

    def __iter__(self) -> Iterator[CommentEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CommentLedger):
            return NotImplemented
        return self._entries == other._entries

    def __hash__(self) -> int:
        return hash(self._entries)

    def __repr__(self) -> str:
        return f"CommentLedger({len(self._entries)} entries)"


def _coerce_uuid(value: Any) -> UUID:
    """Map a legacy identifier to a UUID, deterministically for non-UUID ids."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        return uuid5(NAMESPACE_URL, f"legacy:{value}")


def _entry_from_legacy(role: CommentRole, item: dict[str, Any]) -> CommentEntry:
    raw_ts = item.get("timestamp")
    try:
        timestamp = datetime.fromisoformat(str(raw_ts))
    except ValueError:
        timestamp = datetime.fromtimestamp(0, tz=timezone.utc)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)

    try:
        action = WorkflowAction(item.get("action") or WorkflowAction.COMMENT.value)
    except ValueError:
        action = WorkflowAction.COMMENT

    entry_id = item.get("id")
    return CommentEntry(
        id=_coerce_uuid(entry_id) if entry_id else uuid4(),
        author_id=_coerce_uuid(item.get("authorId") or item.get("userId") or ""),
        author_display_name=str(item.get("authorDisplayName") or item.get("name") or ""),
        role=role,
        text=str(item.get("text") or item.get("comment") or ""),
        action=action,
        timestamp=timestamp,
    )
