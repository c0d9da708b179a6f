"""Per-user conversation state: history, live events and optimistic sends.

``ConversationController`` is what a chat view binds to. It merges three
sources into one ordered ``Timeline`` per application:

* persisted history fetched over REST,
* the proposal synthesized from the application record,
* live ``receive_message`` pushes.

Because the server both persists and relays a message, the same id can show
up twice; ``Timeline.add`` drops the second copy.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from freelance_chat.client.api import MessagingApi
from freelance_chat.client.errors import ApiError, LiveConnectionError
from freelance_chat.client.live import CONNECT_EVENT, LiveConnection
from freelance_chat.client.timeline import (
    ChatMessage,
    SystemMessage,
    Timeline,
    TimelineEntry,
    application_employer_id,
    application_freelancer_id,
    application_job_id,
    new_temp_id,
    normalize_message,
    parse_timestamp,
    proposal_from_application,
    ref_id,
)

logger = logging.getLogger(__name__)

LiveFactory = Callable[[], LiveConnection]


@dataclass
class SendResult:
    """Outcome of a send; failed sends are safe to retry with the same text."""

    ok: bool
    entry: TimelineEntry | None = None
    error: str | None = None


class ConversationController:
    """Conversation state for one signed-in user.

    The live connection is created by ``open()`` and released by ``close()``;
    the controller is its only owner.
    """

    def __init__(
        self,
        api: MessagingApi,
        user_id: str,
        *,
        role: str = "freelancer",
        live_factory: LiveFactory | None = None,
    ) -> None:
        self.api = api
        self.user_id = user_id
        self.role = role
        self._live_factory = live_factory
        self.live: LiveConnection | None = None

        self.applications: list[dict[str, Any]] = []
        self.active_application_id: str | None = None
        self.timelines: dict[str, Timeline] = {}
        self.compose_text = ""
        self.online_users: set[str] = set()
        self.typing_users: set[str] = set()
        self.last_error: str | None = None
        self._hidden: set[str] = set()
        self._joined_peer: str | None = None

    @property
    def is_employer(self) -> bool:
        return self.role == "employer"

    # Lifecycle -----------------------------------------------------------------

    async def open(self) -> None:
        """Create and connect the live channel; REST keeps working if it fails."""
        if self._live_factory is None or self.live is not None:
            return
        live = self._live_factory()
        live.on(CONNECT_EVENT, self._on_connect)
        live.on("receive_message", self._on_receive_message)
        live.on("message_sent", self._on_message_sent)
        live.on("message_deleted", self._on_message_deleted)
        live.on("message_read_receipt", self._on_read_receipt)
        live.on("messages_read", self._on_messages_read)
        live.on("online_users", self._on_online_users)
        live.on("user_online", self._on_user_online)
        live.on("user_offline", self._on_user_offline)
        live.on("user_typing", self._on_user_typing)
        live.on("user_stopped_typing", self._on_user_stopped_typing)
        live.on("error", self._on_live_error)
        self.live = live
        try:
            await live.connect()
        except LiveConnectionError as exc:
            logger.warning("Live channel unavailable: %s", exc)
            self.last_error = str(exc)

    async def close(self) -> None:
        if self.live is None:
            return
        await self._leave_room()
        await self.live.close()
        self.live = None

    async def reconnect(self) -> None:
        """Drop the live channel and open a fresh one, rejoining the active room."""
        if self.live is not None:
            await self.live.close()
            self.live = None
        self._joined_peer = None
        await self.open()

    # Applications --------------------------------------------------------------

    async def load_applications(self) -> list[dict[str, Any]]:
        """Fetch the applications this user can chat about."""
        try:
            if self.is_employer:
                self.applications = await self.api.get_employer_applications()
            else:
                self.applications = await self.api.get_my_applications()
        except ApiError as exc:
            logger.warning("Could not load applications: %s", exc.message)
            self.last_error = exc.message
            self.applications = []
        return self.applications

    def application(self, application_id: str | None) -> dict[str, Any] | None:
        if application_id is None:
            return None
        for application in self.applications:
            if ref_id(application.get("_id") or application.get("id")) == application_id:
                return application
        return None

    @property
    def active_application(self) -> dict[str, Any] | None:
        return self.application(self.active_application_id)

    def counterpart_id(self, application: Mapping[str, Any]) -> str | None:
        if self.is_employer:
            return application_freelancer_id(application)
        return application_employer_id(application)

    # Timeline ------------------------------------------------------------------

    @property
    def timeline(self) -> Timeline | None:
        if self.active_application_id is None:
            return None
        return self.timelines.get(self.active_application_id)

    @property
    def messages(self) -> list[TimelineEntry]:
        """Visible entries of the active conversation, proposal first."""
        timeline = self.timeline
        if timeline is None:
            return []
        return [entry for entry in timeline if entry.id not in self._hidden]

    async def select(self, application_id: str) -> list[TimelineEntry]:
        """Switch to ``application_id``: leave the old room, load history, join the new one."""
        await self._leave_room()
        self.active_application_id = application_id
        self.typing_users.clear()
        timeline = self.timelines.setdefault(application_id, Timeline())

        application = self.application(application_id)
        if application is None:
            self.last_error = "Application not found"
            timeline.load([])
            return self.messages

        job_id = application_job_id(application)
        history: list[TimelineEntry] = []
        if job_id is None:
            self.last_error = "Job not found for application"
        else:
            try:
                raw_messages = await self.api.get_job_messages(job_id)
            except ApiError as exc:
                logger.warning("Could not load messages for job %s: %s", job_id, exc.message)
                self.last_error = exc.message
            else:
                history = [normalize_message(raw) for raw in raw_messages]
                self.last_error = None

        timeline.load(history, proposal_from_application(application))
        await self._join_room(self.counterpart_id(application))
        return self.messages

    def _belongs_to_active(self, entry: ChatMessage | SystemMessage) -> bool:
        application = self.active_application
        if application is None:
            return False
        peer = self.counterpart_id(application)
        if peer is None or peer not in (entry.sender, entry.receiver):
            return False
        job_id = application_job_id(application)
        return entry.job_id is None or job_id is None or entry.job_id == job_id

    # Sending -------------------------------------------------------------------

    async def send(self, text: str | None = None) -> SendResult:
        """Optimistically append, persist, then reconcile or roll back."""
        body = self.compose_text if text is None else text
        application = self.active_application
        if not body.strip() or application is None:
            return SendResult(ok=False, error="Nothing to send")

        receiver_id = self.counterpart_id(application)
        if receiver_id is None:
            self.last_error = "Cannot send message: receiver not found"
            return SendResult(ok=False, error=self.last_error)

        job_id = application_job_id(application)
        # Bound now so a reply that lands after a conversation switch still
        # reconciles against the conversation it was sent from.
        timeline = self.timelines.setdefault(self.active_application_id, Timeline())

        temp_id = new_temp_id()
        pending = ChatMessage(
            id=temp_id,
            sender=self.user_id,
            receiver=receiver_id,
            text=body,
            timestamp=parse_timestamp(None),
            job_id=job_id,
            is_pending=True,
        )
        timeline.add(pending)
        self.compose_text = ""

        try:
            saved = await self.api.send_message(receiver_id, body, job_id)
        except ApiError as exc:
            timeline.remove(temp_id)
            self.compose_text = body
            self.last_error = f"Failed to send message: {exc.message}"
            logger.warning("Send failed, rolled back %s: %s", temp_id, exc.message)
            return SendResult(ok=False, error=self.last_error)

        entry = normalize_message(saved)
        if entry.sender is None:
            entry.sender = self.user_id
        timeline.replace(temp_id, entry)
        self.last_error = None

        await self._relay(entry, receiver_id)
        return SendResult(ok=True, entry=entry)

    async def update_status(self, status: str) -> SendResult:
        """Change the active application's status and post a notice about it."""
        application = self.active_application
        if application is None:
            return SendResult(ok=False, error="No conversation selected")

        application_id = self.active_application_id
        try:
            await self.api.update_application_status(application_id, status)
        except ApiError as exc:
            self.last_error = f"Failed to update status: {exc.message}"
            return SendResult(ok=False, error=self.last_error)
        application["status"] = status

        receiver_id = self.counterpart_id(application)
        if receiver_id is None:
            return SendResult(ok=False, error="Cannot send message: receiver not found")

        job_id = application_job_id(application)
        text = f"Application status updated to: {status}"
        try:
            saved = await self.api.send_message(receiver_id, text, job_id, is_system=True)
        except ApiError as exc:
            self.last_error = f"Status updated but notice not sent: {exc.message}"
            return SendResult(ok=False, error=self.last_error)

        entry = normalize_message({**saved, "isSystem": True})
        self.timelines.setdefault(application_id, Timeline()).add(entry)
        await self._relay(entry, receiver_id)
        return SendResult(ok=True, entry=entry)

    async def _relay(self, entry: ChatMessage | SystemMessage, receiver_id: str) -> None:
        # Carry the server id so the peer's relay copy and its later REST fetch
        # collapse into one entry.
        if self.live is None:
            return
        await self.live.emit(
            "send_message",
            {
                "receiverId": receiver_id,
                "content": entry.text,
                "jobId": entry.job_id,
                "messageId": entry.id,
                "isSystem": entry.is_system,
            },
        )

    # Other actions ---------------------------------------------------------------

    def hide_locally(self, message_id: str) -> None:
        """Hide an entry from this view only; the server copy is untouched."""
        self._hidden.add(message_id)

    async def delete_message(self, message_id: str) -> bool:
        """Delete one of the user's own persisted messages for both parties."""
        timeline = self.timeline
        entry = timeline.get(message_id) if timeline is not None else None
        if entry is None or not entry.deletable_by(self.user_id):
            return False
        try:
            await self.api.delete_message(message_id)
        except ApiError as exc:
            self.last_error = f"Failed to delete message: {exc.message}"
            return False
        timeline.remove(message_id)
        return True

    async def mark_conversation_read(self) -> int:
        """Mark everything the counterpart sent as read and tell them."""
        application = self.active_application
        peer = self.counterpart_id(application) if application is not None else None
        if peer is None:
            return 0
        try:
            count = await self.api.mark_all_read(peer)
        except ApiError as exc:
            self.last_error = exc.message
            return 0
        timeline = self.timeline
        if timeline is not None:
            for entry in timeline:
                if isinstance(entry, ChatMessage) and entry.sender == peer:
                    entry.read = True
        return count

    async def start_typing(self) -> None:
        await self._emit_typing("typing_start")

    async def stop_typing(self) -> None:
        await self._emit_typing("typing_stop")

    async def _emit_typing(self, event: str) -> None:
        application = self.active_application
        peer = self.counterpart_id(application) if application is not None else None
        if self.live is not None and peer is not None:
            await self.live.emit(event, {"receiverId": peer})

    # Rooms -----------------------------------------------------------------------

    async def _join_room(self, peer_id: str | None) -> None:
        if peer_id is None or self.live is None:
            return
        if await self.live.emit("join_conversation", {"userId": peer_id}):
            self._joined_peer = peer_id

    async def _leave_room(self) -> None:
        if self._joined_peer is None:
            return
        peer_id, self._joined_peer = self._joined_peer, None
        if self.live is not None:
            await self.live.emit("leave_conversation", {"userId": peer_id})

    # Live event handlers -----------------------------------------------------------

    async def _on_connect(self, _data: Any) -> None:
        application = self.active_application
        if application is not None:
            await self._join_room(self.counterpart_id(application))

    def _on_receive_message(self, data: Any) -> None:
        if not isinstance(data, Mapping):
            return
        entry = normalize_message(data)
        if not self._belongs_to_active(entry):
            return
        timeline = self.timeline
        if timeline is not None and not timeline.add(entry):
            logger.debug("Duplicate message %s skipped", entry.id)

    def _on_message_sent(self, data: Any) -> None:
        if isinstance(data, Mapping) and not data.get("delivered"):
            logger.debug("Message %s stored; recipient offline", data.get("messageId"))

    def _on_message_deleted(self, data: Any) -> None:
        # The sender's delete is not retracted from a copy already on screen;
        # it disappears on the next history fetch.
        if isinstance(data, Mapping):
            logger.debug(
                "Message %s deleted by %s; local copy kept",
                data.get("messageId"),
                data.get("deletedBy"),
            )

    def _on_read_receipt(self, data: Any) -> None:
        if not isinstance(data, Mapping):
            return
        message_id = ref_id(data.get("messageId"))
        for timeline in self.timelines.values():
            entry = timeline.get(message_id) if message_id else None
            if isinstance(entry, ChatMessage):
                entry.read = True

    def _on_messages_read(self, data: Any) -> None:
        if not isinstance(data, Mapping):
            return
        reader = ref_id(data.get("readBy"))
        for timeline in self.timelines.values():
            for entry in timeline:
                if isinstance(entry, ChatMessage) and entry.sender == self.user_id and entry.receiver == reader:
                    entry.read = True

    def _on_online_users(self, data: Any) -> None:
        if isinstance(data, list):
            self.online_users = {str(user_id) for user_id in data}

    def _on_user_online(self, data: Any) -> None:
        if isinstance(data, Mapping) and data.get("userId"):
            self.online_users.add(str(data["userId"]))

    def _on_user_offline(self, data: Any) -> None:
        if isinstance(data, Mapping) and data.get("userId"):
            self.online_users.discard(str(data["userId"]))
            self.typing_users.discard(str(data["userId"]))

    def _on_user_typing(self, data: Any) -> None:
        if isinstance(data, Mapping) and data.get("userId"):
            self.typing_users.add(str(data["userId"]))

    def _on_user_stopped_typing(self, data: Any) -> None:
        if isinstance(data, Mapping) and data.get("userId"):
            self.typing_users.discard(str(data["userId"]))

    def _on_live_error(self, data: Any) -> None:
        if isinstance(data, Mapping):
            self.last_error = str(data.get("message") or "Live channel error")
