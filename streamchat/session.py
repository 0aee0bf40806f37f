"""Streaming session engine.

Drives one model turn end to end: loads the transcript, appends an empty
assistant placeholder, streams the provider's events into it while
checkpointing in the background, dispatches any requested tool calls,
and performs a final save. The SessionManager allows at most one such
session at a time.

State machine:
    idle -> initiated -> streaming -> finalizing -> completed
    any non-idle state -> failed | cancelled
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from typing import Any
from uuid import uuid4

from streamchat.errors import (
    CorruptTranscriptError,
    SessionBusyError,
    ToolArgumentError,
    TranscriptNotFoundError,
    UnknownToolError,
)
from streamchat.notifications import NotificationEmitter, NotificationType
from streamchat.persistence.checkpoint import CheckpointScheduler
from streamchat.persistence.store import TranscriptStore
from streamchat.providers.base import CompletionProvider
from streamchat.schemas.config import SessionConfig
from streamchat.schemas.session import SessionResult, SessionState, ToolResult
from streamchat.schemas.streaming import (
    ContentDelta,
    PendingToolCall,
    StreamDone,
    ToolCallDelta,
)
from streamchat.schemas.transcript import Message, Role, Transcript
from streamchat.tools.registry import ToolRegistry, parse_arguments

logger = logging.getLogger(__name__)


def build_history(messages: list[Message]) -> list[dict[str, Any]]:
    """Filter a transcript down to what the completion API should see.

    Assistant turns that requested tools are replayed only when every
    call has a matching tool message; otherwise the partial tool turn is
    dropped together with any tool messages that answer it.
    """
    answered = {
        m.tool_call_id for m in messages
        if m.role == Role.TOOL and m.tool_call_id
    }
    replayed: set[str] = set()
    history: list[dict[str, Any]] = []

    for message in messages:
        if message.role in (Role.SYSTEM, Role.USER):
            history.append(message.to_api())
        elif message.role == Role.ASSISTANT:
            if not message.tool_calls:
                history.append(message.to_api())
                continue
            ids = [call.id for call in message.tool_calls]
            if all(ids) and all(call_id in answered for call_id in ids):
                history.append(message.to_api())
                replayed.update(ids)
        elif message.tool_call_id in replayed:
            history.append(message.to_api())

    return history


class StreamingSession:
    """A single streaming turn over one transcript.

    Owns the in-flight transcript and the pending tool calls until run()
    returns. The store and the checkpoint scheduler only ever see deep
    copies of the transcript.
    """

    def __init__(
        self,
        identifier: str,
        *,
        store: TranscriptStore,
        provider: CompletionProvider,
        tools: ToolRegistry,
        emitter: NotificationEmitter,
        config: SessionConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._identifier = identifier
        self._requested_identifier = identifier
        self._store = store
        self._provider = provider
        self._tools = tools
        self._emitter = emitter
        self._config = config
        self._clock = clock

        self._state = SessionState.IDLE
        self._transcript: Transcript | None = None
        self._message_index: int | None = None
        self._pending: dict[int, PendingToolCall] = {}
        self._tool_results: list[ToolResult] = []
        self._rounds = 0
        self._delta_count = 0
        self._cancel = asyncio.Event()
        self._scheduler: CheckpointScheduler | None = None

    @property
    def identifier(self) -> str:
        """Current transcript identifier (changes when a template forks)."""
        return self._identifier

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def message_index(self) -> int | None:
        """Index of the assistant message currently being streamed."""
        return self._message_index

    @property
    def checkpoints(self) -> int:
        return self._scheduler.checkpoints if self._scheduler else 0

    def cancel(self) -> None:
        """Request a cooperative stop; observed between stream events."""
        self._cancel.set()

    # ── Lifecycle ─────────────────────────────────────────────

    async def run(self) -> SessionResult:
        """Run the session to a terminal state and return its result.

        Load failures return a failed result before any model request is
        made and write nothing. Later failures keep the partial content
        and still attempt a final save.
        """
        self._state = SessionState.INITIATED
        try:
            self._transcript = await self._store.load(self._identifier)
        except (TranscriptNotFoundError, CorruptTranscriptError) as e:
            logger.warning("Session not started: %s", e)
            self._state = SessionState.FAILED
            return self._result(error=e)

        self._scheduler = CheckpointScheduler(
            self._checkpoint,
            interval=self._config.checkpoint_interval_ms / 1000,
            clock=self._clock,
        )

        error: Exception | None = None
        terminal = SessionState.COMPLETED
        try:
            if not await self._converse():
                terminal = SessionState.CANCELLED
        except asyncio.CancelledError:
            await self._finish(SessionState.CANCELLED)
            raise
        except Exception as e:
            logger.error("Session on %s failed: %s", self._identifier, e)
            error = e
            terminal = SessionState.FAILED

        persist_error = await self._finish(terminal)
        return self._result(error=error, persist_error=persist_error)

    async def _converse(self) -> bool:
        """Stream model turns until no follow-up is needed.

        Returns False when the session was cancelled.
        """
        while True:
            self._rounds += 1
            history = build_history(self._transcript.messages)
            await self._create_placeholder()

            self._state = SessionState.STREAMING
            if not await self._consume(history):
                return False

            self._state = SessionState.FINALIZING
            logger.info(
                "Streaming completed. %d deltas, %d chars",
                self._delta_count, len(self._current_message().content),
            )
            if not self._pending:
                return True

            await self._resolve_tool_calls()
            if not self._config.feed_tool_results:
                return True
            if self._rounds >= self._config.max_tool_rounds:
                logger.warning(
                    "Tool round limit (%d) reached, not feeding results back",
                    self._config.max_tool_rounds,
                )
                return True

            await self._emit_final(SessionState.FINALIZING)
            logger.info("Feeding tool results back for round %d", self._rounds + 1)

    async def _create_placeholder(self) -> None:
        self._transcript.messages.append(Message(role=Role.ASSISTANT, content=""))
        self._message_index = len(self._transcript.messages) - 1
        self._delta_count = 0
        logger.debug("Created empty assistant message at index %d", self._message_index)
        await self._emitter.emit(
            NotificationType.PLACEHOLDER_CREATED,
            index=self._message_index,
            content="",
            is_complete=False,
        )

    async def _consume(self, history: list[dict[str, Any]]) -> bool:
        """Feed stream events into the transcript, strictly in order.

        Returns False when a cancellation request stopped consumption.
        """
        specs = self._tools.specs() or None
        async with contextlib.aclosing(self._provider.stream(history, specs)) as events:
            async for event in events:
                if self._cancel.is_set():
                    logger.info("Session on %s cancelled", self._identifier)
                    return False

                if isinstance(event, ContentDelta):
                    await self._apply_content(event)
                elif isinstance(event, ToolCallDelta):
                    self._apply_tool_fragment(event)
                elif isinstance(event, StreamDone):
                    break
        return True

    async def _apply_content(self, event: ContentDelta) -> None:
        message = self._current_message()
        message.content += event.text
        self._delta_count += 1
        await self._emitter.emit(
            NotificationType.PROGRESS,
            index=self._message_index,
            content=message.content,
            is_complete=False,
        )
        self._scheduler.maybe_checkpoint(self._transcript)

    def _apply_tool_fragment(self, event: ToolCallDelta) -> None:
        pending = self._pending.get(event.index)
        if pending is None:
            pending = self._pending[event.index] = PendingToolCall(index=event.index)
        pending.absorb(event)

    def _current_message(self) -> Message:
        return self._transcript.messages[self._message_index]

    # ── Tool calls ────────────────────────────────────────────

    async def _resolve_tool_calls(self) -> None:
        """Attach completed calls to the assistant message and record results."""
        calls = [self._pending[index] for index in sorted(self._pending)]
        self._pending = {}
        for call in calls:
            if not call.call_id:
                call.call_id = f"call_{uuid4().hex[:24]}"

        self._current_message().tool_calls = [call.to_tool_call() for call in calls]

        for call in calls:
            result = self._dispatch(call)
            self._tool_results.append(result)
            self._transcript.messages.append(
                Message(role=Role.TOOL, content=result.output, tool_call_id=call.call_id)
            )
            await self._emitter.emit(
                NotificationType.TOOL_RESULT,
                index=len(self._transcript.messages) - 1,
                call_id=result.call_id,
                name=result.name,
                output=result.output,
                is_error=result.is_error,
            )

    def _dispatch(self, call: PendingToolCall) -> ToolResult:
        """Run one tool call; failures become the tool's output."""
        try:
            arguments = parse_arguments(call.arguments)
            output = self._tools.invoke(call.name, call.arguments)
        except (UnknownToolError, ToolArgumentError) as e:
            logger.warning("Tool call %s failed: %s", call.name or "<unnamed>", e)
            return ToolResult(
                call_id=call.call_id,
                name=call.name,
                output=f"Error: {e}",
                is_error=True,
            )
        except Exception as e:
            logger.exception("Tool %s raised", call.name)
            return ToolResult(
                call_id=call.call_id,
                name=call.name,
                arguments=arguments,
                output=f"Error: {e}",
                is_error=True,
            )
        return ToolResult(
            call_id=call.call_id, name=call.name, arguments=arguments, output=output,
        )

    # ── Persistence ───────────────────────────────────────────

    async def _checkpoint(self, snapshot: Transcript) -> None:
        await self._persist(snapshot, lightweight=True)

    async def _persist(self, snapshot: Transcript, *, lightweight: bool) -> None:
        identifier = await self._store.save(self._identifier, snapshot, lightweight=lightweight)
        if identifier != self._identifier:
            # The default template forked: follow the new file from now on.
            self._identifier = identifier
            self._transcript.title = snapshot.title

    async def _finish(self, terminal: SessionState) -> str | None:
        """Final save and terminal notification.

        Returns the persist error text, if the save failed.
        """
        persist_error: str | None = None
        try:
            await self._scheduler.drain()
        except Exception as e:
            logger.warning("Pending checkpoint of %s failed: %s", self._identifier, e)
        try:
            await self._persist(self._transcript.model_copy(deep=True), lightweight=False)
        except OSError as e:
            persist_error = str(e)
            logger.error("Final save of %s failed: %s", self._identifier, e)

        self._state = terminal
        await self._emit_final(terminal)
        return persist_error

    async def _emit_final(self, state: SessionState) -> None:
        if self._message_index is None:
            return
        await self._emitter.emit(
            NotificationType.FINAL,
            index=self._message_index,
            content=self._current_message().content,
            is_complete=True,
            state=state.value,
        )

    def _result(
        self,
        *,
        error: Exception | None = None,
        persist_error: str | None = None,
    ) -> SessionResult:
        content = ""
        if self._message_index is not None:
            content = self._current_message().content
        forked = self._identifier != self._requested_identifier
        return SessionResult(
            success=self._state == SessionState.COMPLETED,
            state=self._state,
            identifier=self._identifier,
            new_identifier=self._identifier if forked else None,
            message_index=self._message_index,
            content=content,
            error=str(error) if error else None,
            error_type=type(error).__name__ if error else None,
            persist_error=persist_error,
            tool_results=list(self._tool_results),
            rounds=self._rounds,
        )


class SessionManager:
    """Owns at most one active StreamingSession.

    start_session() is the single entry point a front end calls to run a
    streaming turn. Starting while another session is active raises
    SessionBusyError instead of interleaving two streams.
    """

    def __init__(
        self,
        store: TranscriptStore,
        provider: CompletionProvider,
        tools: ToolRegistry | None = None,
        emitter: NotificationEmitter | None = None,
        *,
        config: SessionConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._provider = provider
        self._tools = tools or ToolRegistry()
        self._emitter = emitter or NotificationEmitter()
        self._config = config or SessionConfig()
        self._clock = clock
        self._active: StreamingSession | None = None

    @property
    def active(self) -> StreamingSession | None:
        """The session currently running, if any."""
        return self._active

    @property
    def emitter(self) -> NotificationEmitter:
        return self._emitter

    async def start_session(self, identifier: str) -> SessionResult:
        """Stream one model turn into the transcript at ``identifier``.

        Raises:
            SessionBusyError: If a session is already active.
        """
        if self._active is not None:
            raise SessionBusyError(
                f"A session is already streaming into {self._active.identifier}"
            )

        session = StreamingSession(
            identifier,
            store=self._store,
            provider=self._provider,
            tools=self._tools,
            emitter=self._emitter,
            config=self._config,
            clock=self._clock,
        )
        self._active = session
        logger.info("Starting session on %s with %s", identifier, self._provider.display_name)
        try:
            return await session.run()
        finally:
            self._active = None

    def cancel(self) -> bool:
        """Ask the active session to stop. Returns False when idle."""
        if self._active is None:
            return False
        self._active.cancel()
        return True
