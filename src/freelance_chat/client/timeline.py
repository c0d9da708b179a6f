"""Canonical timeline records and the single normalization boundary.

Messages reach a client in several shapes: REST history (``_id``/``id``,
``content``, ``createdAt``, nested ``sender`` objects), live relay events
(``messageId``, ``senderId``, ``timestamp``) and the proposal synthesized from
an application record. ``normalize_message`` and ``proposal_from_application``
turn all of them into one of three record types; nothing downstream looks at
raw payloads.
"""

from __future__ import annotations

import bisect
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, ClassVar
from uuid import uuid4

TEMP_ID_PREFIX = "temp_"
PROPOSAL_ID_PREFIX = "application_"


@dataclass
class TimelineEntry:
    """Fields shared by every entry shown in a conversation."""

    id: str
    sender: str | None
    receiver: str | None
    text: str
    timestamp: datetime

    kind: ClassVar[str] = "entry"

    @property
    def is_system(self) -> bool:
        return False

    @property
    def is_cover_letter(self) -> bool:
        return False

    def deletable_by(self, user_id: str) -> bool:
        return False


@dataclass
class ChatMessage(TimelineEntry):
    """A real message, persisted or awaiting persistence."""

    job_id: str | None = None
    read: bool = False
    is_pending: bool = False

    kind: ClassVar[str] = "message"

    def deletable_by(self, user_id: str) -> bool:
        return not self.is_pending and self.sender == user_id


@dataclass
class ProposalMessage(TimelineEntry):
    """The application's cover letter, shown as the opening message."""

    bid: float | None = None
    application_id: str | None = None

    kind: ClassVar[str] = "proposal"

    @property
    def is_cover_letter(self) -> bool:
        return True


@dataclass
class SystemMessage(TimelineEntry):
    """A status-transition notice posted from the conversation view."""

    job_id: str | None = None

    kind: ClassVar[str] = "system"

    @property
    def is_system(self) -> bool:
        return True


def new_temp_id() -> str:
    return f"{TEMP_ID_PREFIX}{uuid4().hex}"


def is_temp_id(message_id: str) -> bool:
    return message_id.startswith(TEMP_ID_PREFIX)


def ref_id(value: Any) -> str | None:
    """Return the id of a reference that may be a bare id or an embedded record."""
    if value is None:
        return None
    if isinstance(value, Mapping):
        nested = value.get("_id") or value.get("id")
        return str(nested) if nested is not None else None
    return str(value)


def parse_timestamp(value: Any) -> datetime:
    """Parse ISO-8601 strings, epoch milliseconds or datetimes into aware UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value / 1000, UTC)
    elif isinstance(value, str) and value:
        text = value[:-1] + "+00:00" if value.endswith("Z") else value
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return datetime.now(UTC)
    else:
        return datetime.now(UTC)

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _first(raw: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None


def normalize_message(raw: Mapping[str, Any]) -> ChatMessage | SystemMessage:
    """Convert a REST or live message payload to its canonical record."""
    message_id = _first(raw, "_id", "id", "messageId")
    sender = ref_id(_first(raw, "sender", "senderId"))
    receiver = ref_id(_first(raw, "receiver", "receiverId"))
    text = _first(raw, "content", "text") or ""
    timestamp = parse_timestamp(_first(raw, "createdAt", "created_at", "timestamp"))
    job_id = ref_id(_first(raw, "jobId", "job_id", "job"))

    common: dict[str, Any] = {
        "id": str(message_id) if message_id is not None else new_temp_id(),
        "sender": sender,
        "receiver": receiver,
        "text": str(text),
        "timestamp": timestamp,
        "job_id": job_id,
    }
    if raw.get("isSystem") or raw.get("is_system"):
        return SystemMessage(**common)
    return ChatMessage(read=bool(raw.get("read", False)), **common)


def application_job_id(application: Mapping[str, Any]) -> str | None:
    return ref_id(_first(application, "jobId", "job"))


def application_freelancer_id(application: Mapping[str, Any]) -> str | None:
    return ref_id(_first(application, "freelancerId", "freelancer", "applicant"))


def application_employer_id(application: Mapping[str, Any]) -> str | None:
    employer = _first(application, "employerId", "employer")
    if employer is None:
        job = application.get("job")
        if isinstance(job, Mapping):
            employer = _first(job, "employerId", "employer")
    return ref_id(employer)


def proposal_from_application(application: Mapping[str, Any]) -> ProposalMessage | None:
    """Synthesize the cover-letter entry, or None if the application has no proposal.

    The id is derived from the application id, so it is stable across reloads
    and cannot collide with a server-assigned message id.
    """
    text = _first(application, "proposal", "coverLetter")
    if not text:
        return None
    application_id = ref_id(_first(application, "_id", "id"))
    bid = _first(application, "bid", "proposedRate")
    return ProposalMessage(
        id=f"{PROPOSAL_ID_PREFIX}{application_id}",
        sender=application_freelancer_id(application),
        receiver=application_employer_id(application),
        text=str(text),
        timestamp=parse_timestamp(_first(application, "appliedAt", "createdAt")),
        bid=float(bid) if bid is not None else None,
        application_id=application_id,
    )


class Timeline:
    """Ordered, id-unique entries of one conversation.

    The proposal, when present, is always first; everything else is ordered by
    timestamp, with arrival order breaking ties.
    """

    def __init__(self) -> None:
        self.proposal: ProposalMessage | None = None
        self._entries: list[TimelineEntry] = []
        self._ids: set[str] = set()

    def __iter__(self) -> Iterator[TimelineEntry]:
        if self.proposal is not None:
            yield self.proposal
        yield from self._entries

    def __len__(self) -> int:
        return len(self._entries) + (1 if self.proposal is not None else 0)

    def __contains__(self, message_id: object) -> bool:
        if self.proposal is not None and message_id == self.proposal.id:
            return True
        return message_id in self._ids

    @property
    def entries(self) -> list[TimelineEntry]:
        return list(self)

    def get(self, message_id: str) -> TimelineEntry | None:
        if self.proposal is not None and self.proposal.id == message_id:
            return self.proposal
        for entry in self._entries:
            if entry.id == message_id:
                return entry
        return None

    def load(
        self,
        history: Iterable[TimelineEntry],
        proposal: ProposalMessage | None = None,
    ) -> None:
        """Replace persisted entries with ``history``.

        Pending entries survive a reload so that sends still in flight can be
        reconciled when they complete.
        """
        pending = [
            entry
            for entry in self._entries
            if isinstance(entry, ChatMessage) and entry.is_pending
        ]
        self.proposal = proposal
        self._entries = []
        self._ids = set()
        for entry in history:
            self.add(entry)
        for entry in pending:
            self.add(entry)

    def add(self, entry: TimelineEntry) -> bool:
        """Insert ``entry`` in timestamp order unless its id is already present."""
        if entry.id in self:
            return False
        keys = [existing.timestamp for existing in self._entries]
        self._entries.insert(bisect.bisect_right(keys, entry.timestamp), entry)
        self._ids.add(entry.id)
        return True

    def remove(self, message_id: str) -> TimelineEntry | None:
        for index, entry in enumerate(self._entries):
            if entry.id == message_id:
                del self._entries[index]
                self._ids.discard(message_id)
                return entry
        return None

    def replace(self, message_id: str, entry: TimelineEntry) -> None:
        """Swap ``message_id`` for ``entry``; if ``entry`` already arrived, just drop the old one."""
        self.remove(message_id)
        self.add(entry)
