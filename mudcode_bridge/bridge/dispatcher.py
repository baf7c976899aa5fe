"""
Per-endpoint policies for hook requests.

Each request reloads the state file, resolves the target channel and hands
text and files to the sink. Nothing is cached between requests, so the
mudcode CLI can rewrite the state file without notifying the bridge.

Endpoint outcomes:
- ``reload``: always OK
- ``send-files``: upload validated files, 400/404 on bad input or routing
- ``opencode-event``: relay ``session.error`` / ``session.idle`` output
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from ..log_config import get_logger
from ..types import OpencodeEvent, SendFilesEvent
from .files import validate_file_paths
from .parser import extract_file_paths, split_message_for_discord, strip_file_paths
from .state import BridgeState

SESSION_ERROR_PREFIX = "⚠️ OpenCode session error: "
UNKNOWN_ERROR_TEXT = "unknown error"
TEXT_PREVIEW_LENGTH = 100


class MessageSink(Protocol):
    """Outbound side of the bridge (the Discord client in production)."""

    async def send_message(self, channel_id: str, content: str) -> None: ...

    async def send_files(self, channel_id: str, content: str, file_paths: list[str]) -> None: ...


@dataclass(frozen=True)
class HookResponse:
    """Status code and plain-text body returned to the hook caller."""

    status_code: int
    message: str


OK = HookResponse(200, "OK")
INTERNAL_ERROR = HookResponse(500, "Internal error")
INVALID_EVENT = HookResponse(400, "Invalid event payload")


class SinkFailed(Exception):
    """Internal signal: the sink failed and the request must stop."""

    pass


class EventDispatcher:
    """Routes hook payloads to Discord channels."""

    def __init__(self, sink: MessageSink, state_path: Path):
        self.sink = sink
        self.state_path = state_path
        self.log = get_logger("dispatcher")

    def load_state(self) -> BridgeState:
        return BridgeState.load(self.state_path)

    async def handle_reload(self, body: bytes) -> HookResponse:
        """Reserved hook; state is already re-read on every request."""
        return OK

    async def handle_send_files(self, body: bytes) -> HookResponse:
        try:
            event = SendFilesEvent.model_validate_json(body)
        except ValidationError as e:
            self.log.debug("hook.invalid_payload", endpoint="send-files", exc=e)
            return HookResponse(400, "Invalid payload")

        project_name = event.project_name
        if project_name is None:
            return HookResponse(400, "Missing projectName")
        if not event.files:
            return HookResponse(400, "No files provided")

        state = self.load_state()
        if project_name not in state.projects:
            return HookResponse(404, "Project not found")

        channel_id = state.find_channel_id(project_name, event.agent_type, event.instance_id)
        if channel_id is None:
            return HookResponse(404, "No channel found for project/agent")

        valid_files = validate_file_paths(event.files, state.project_path(project_name))
        if not valid_files:
            self.log.info(
                "hook.send_files_rejected",
                project=project_name,
                requested=len(event.files),
            )
            return HookResponse(400, "No valid files")

        self.log.info(
            "hook.send_files",
            project=project_name,
            agent_type=event.agent_type,
            channel_id=channel_id,
            files=len(valid_files),
        )

        try:
            await self._deliver_files(project_name, channel_id, valid_files)
        except SinkFailed:
            return INTERNAL_ERROR
        return OK

    async def handle_opencode_event(self, body: bytes) -> HookResponse:
        try:
            event = OpencodeEvent.model_validate_json(body)
        except ValidationError as e:
            self.log.debug("hook.invalid_payload", endpoint="opencode-event", exc=e)
            return INVALID_EVENT

        project_name = event.project_name
        if project_name is None:
            return INVALID_EVENT

        state = self.load_state()
        channel_id = state.find_channel_id(project_name, event.agent_type, event.instance_id)
        if channel_id is None:
            self.log.info(
                "hook.channel_not_found",
                project=project_name,
                agent_type=event.agent_type,
                instance_id=event.instance_id,
            )
            return INVALID_EVENT

        instance = state.find_instance(project_name, event.agent_type, event.instance_id)
        if instance is not None and instance.event_hook is False:
            self.log.info(
                "hook.event_ignored",
                project=project_name,
                agent_type=event.agent_type,
                event_type=event.event_type,
                reason="event_hook_disabled",
            )
            return OK

        text = event.event_text
        self.log.info(
            "hook.opencode_event",
            project=project_name,
            agent_type=event.agent_type,
            instance_id=event.instance_id,
            event_type=event.event_type,
            text_length=len(text) if text else 0,
            text_preview=text[:TEXT_PREVIEW_LENGTH] if text else None,
        )

        try:
            if event.event_type == "session.error":
                await self._deliver_message(
                    project_name,
                    channel_id,
                    SESSION_ERROR_PREFIX + (text or UNKNOWN_ERROR_TEXT),
                )
            elif event.event_type == "session.idle":
                await self._relay_idle_output(
                    project_name, channel_id, event, state.project_path(project_name)
                )
        except SinkFailed:
            return INTERNAL_ERROR

        return OK

    async def _relay_idle_output(
        self,
        project_name: str,
        channel_id: str,
        event: OpencodeEvent,
        project_path: Path | None,
    ) -> None:
        """Send the turn's final text, then any project files it mentions.

        File paths are looked up in ``turnText`` when present because the
        visible text may be only the tail of the turn.
        """
        visible = event.event_text
        if visible is None:
            return

        search_text = event.turn_text or visible
        files = validate_file_paths(extract_file_paths(search_text), project_path)
        display = strip_file_paths(visible, files) if files else visible

        for chunk in split_message_for_discord(display):
            if not chunk.strip():
                continue
            await self._deliver_message(project_name, channel_id, chunk)

        if files:
            await self._deliver_files(project_name, channel_id, files)

    async def _deliver_message(self, project_name: str, channel_id: str, content: str) -> None:
        start_time = time.time()
        try:
            await self.sink.send_message(channel_id, content)
        except Exception as e:
            self.log.error(
                "hook.deliver_error",
                kind="message",
                project=project_name,
                channel_id=channel_id,
                duration_ms=int((time.time() - start_time) * 1000),
                exc=e,
            )
            raise SinkFailed() from e

    async def _deliver_files(self, project_name: str, channel_id: str, files: list[str]) -> None:
        start_time = time.time()
        try:
            await self.sink.send_files(channel_id, "", files)
        except Exception as e:
            self.log.error(
                "hook.deliver_error",
                kind="files",
                project=project_name,
                channel_id=channel_id,
                files=len(files),
                duration_ms=int((time.time() - start_time) * 1000),
                exc=e,
            )
            raise SinkFailed() from e
