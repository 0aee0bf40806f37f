"""Transcript store for loading, saving, listing, and deleting chats.

Provides the TranscriptStore class that maps transcript identifiers
(file paths) to JSON documents on disk, with Pydantic schema
validation on read and atomic replacement on write.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import os
import stat
import tempfile
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

from pydantic import ValidationError

from streamchat.errors import CorruptTranscriptError, PersistError, TranscriptNotFoundError
from streamchat.notifications import NotificationEmitter, NotificationType
from streamchat.schemas.transcript import Message, Role, Transcript, TranscriptSummary

logger = logging.getLogger(__name__)

# Saving to a file with this name forks a new timestamped transcript
DEFAULT_TEMPLATE_NAME = "default.json"

_CHAT_PREFIX = "chat_"


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


# New files get the mode a plain open() would give them
_NEW_FILE_MODE = 0o666 & ~_current_umask()


def format_timestamp(moment: datetime) -> str:
    """Format a UTC moment as a filename-safe millisecond timestamp.

    ``2026-10-18T09:30:12.345Z`` becomes ``2026-10-18_09-30-12-345``.
    """
    return moment.strftime("%Y-%m-%d_%H-%M-%S-") + f"{moment.microsecond // 1000:03d}"


def serialize(transcript: Transcript) -> str:
    """Serialize a transcript with stable 2-space indentation."""
    return json.dumps(transcript.to_document(), indent=2, ensure_ascii=False) + "\n"


def error_transcript(error: Exception) -> Transcript:
    """Build the stand-in transcript a front end shows when loading fails."""
    return Transcript(
        messages=[Message(role=Role.SYSTEM, content=f"Error loading file: {error}")],
    )


def _atomic_write(path: Path, text: str) -> None:
    """Write text to path so readers only ever see a complete document.

    The replacement keeps the existing file's permission bits; a new file
    gets the umask default rather than mkstemp's 0600.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        mode = stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        mode = _NEW_FILE_MODE
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        os.chmod(tmp_name, mode)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise


class TranscriptStore:
    """File-backed transcript store.

    All public methods are async; blocking file I/O runs in a worker
    thread. When an emitter is given, full saves and deletes notify
    listeners so a sidebar can refresh.
    """

    def __init__(
        self,
        chats_dir: Path,
        default_template: Path,
        *,
        emitter: NotificationEmitter | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._chats_dir = Path(chats_dir)
        self._default_template = Path(default_template)
        self._emitter = emitter
        self._clock = clock or (lambda: datetime.now(UTC))
        self._reserved: set[Path] = set()

    @property
    def chats_dir(self) -> Path:
        return self._chats_dir

    @property
    def default_template(self) -> str:
        return str(self._default_template)

    def is_default(self, identifier: str) -> bool:
        """Whether the identifier names the reserved default-template slot."""
        return Path(identifier).name == DEFAULT_TEMPLATE_NAME

    def resolve(self, name: str) -> str:
        """Map a bare chat name to an identifier inside the chats directory.

        ``default`` names the template slot. Anything containing a path
        separator, or that already exists, is returned unchanged.
        """
        if name in ("default", DEFAULT_TEMPLATE_NAME):
            return str(self._default_template)
        path = Path(name)
        if path.exists() or len(path.parts) > 1:
            return str(path)
        if path.suffix != ".json":
            path = path.with_name(path.name + ".json")
        return str(self._chats_dir / path)

    # ── Read ──────────────────────────────────────────────────

    async def load(self, identifier: str) -> Transcript:
        """Read and validate a transcript.

        Raises:
            TranscriptNotFoundError: If the document does not exist.
            CorruptTranscriptError: If it is not a valid transcript.
        """
        return await asyncio.to_thread(self._read, identifier)

    def _read(self, identifier: str) -> Transcript:
        path = Path(identifier)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise TranscriptNotFoundError(identifier) from None
        except (OSError, UnicodeDecodeError) as e:
            raise CorruptTranscriptError(identifier, str(e)) from e

        try:
            transcript = Transcript.model_validate_json(raw)
        except ValidationError as e:
            first = e.errors()[0]
            raise CorruptTranscriptError(identifier, first.get("msg", str(e))) from e

        logger.debug("Loaded %s (%d messages)", path.name, len(transcript.messages))
        return transcript

    async def list(self) -> list[TranscriptSummary]:
        """List every transcript in the chats directory, newest first."""
        return await asyncio.to_thread(self._scan)

    def _scan(self) -> list[TranscriptSummary]:
        if not self._chats_dir.is_dir():
            return []

        summaries: list[TranscriptSummary] = []
        for path in self._chats_dir.glob("*.json"):
            try:
                stat = path.stat()
            except OSError:
                logger.warning("Failed to stat %s", path)
                continue

            title = None
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                if isinstance(data, dict) and isinstance(data.get("title"), str):
                    title = data["title"]
            except (OSError, ValueError):
                logger.warning("Failed to read title from %s", path.name)

            summaries.append(TranscriptSummary(
                identifier=str(path),
                filename=path.name,
                display_title=title or path.stem,
                modified_at=datetime.fromtimestamp(stat.st_mtime, UTC),
            ))

        summaries.sort(key=lambda s: s.modified_at, reverse=True)
        return summaries

    # ── Write ─────────────────────────────────────────────────

    async def save(
        self,
        identifier: str,
        transcript: Transcript,
        *,
        lightweight: bool = False,
    ) -> str:
        """Write a transcript and return the identifier it was written to.

        Saving to the default-template slot never overwrites it: a new
        ``chat_<timestamp>.json`` is allocated, the transcript's title is
        set to that timestamp, and the new identifier is returned.

        A lightweight save only writes. A full save also tells listeners
        that the transcript list changed.

        Raises:
            PersistError: If the document cannot be written.
        """
        forked = self.is_default(identifier)
        if forked:
            target, stamp = self._allocate()
            transcript.title = stamp
        else:
            target = Path(identifier)

        text = serialize(transcript)
        try:
            await asyncio.to_thread(_atomic_write, target, text)
        except OSError as e:
            raise PersistError(f"Failed to save {target}: {e}") from e
        finally:
            self._reserved.discard(target)

        if forked:
            logger.info("Forked default template into %s", target.name)
        else:
            logger.debug("Saved %s", target.name)

        if not lightweight and self._emitter is not None:
            await self._emitter.emit(NotificationType.TRANSCRIPT_LIST_CHANGED)
            if forked:
                await self._emitter.emit(
                    NotificationType.TRANSCRIPT_LOADED, identifier=str(target),
                )
        return str(target)

    def _allocate(self) -> tuple[Path, str]:
        """Pick an unused timestamped path in the chats directory."""
        moment = self._clock()
        while True:
            stamp = format_timestamp(moment)
            target = self._chats_dir / f"{_CHAT_PREFIX}{stamp}.json"
            if not target.exists() and target not in self._reserved:
                self._reserved.add(target)
                return target, stamp
            moment += timedelta(milliseconds=1)

    async def delete(self, identifier: str) -> None:
        """Remove a transcript.

        Raises:
            TranscriptNotFoundError: If the document does not exist.
            PersistError: If it cannot be removed.
        """
        try:
            await asyncio.to_thread(Path(identifier).unlink)
        except FileNotFoundError:
            raise TranscriptNotFoundError(identifier) from None
        except OSError as e:
            raise PersistError(f"Failed to delete {identifier}: {e}") from e

        logger.info("Deleted %s", identifier)
        if self._emitter is not None:
            await self._emitter.emit(NotificationType.TRANSCRIPT_DELETED, identifier=identifier)
            await self._emitter.emit(NotificationType.TRANSCRIPT_LIST_CHANGED)

    async def ensure_default_template(
        self,
        title: str = "New Chat",
        system_prompt: str = "You are a helpful assistant.",
    ) -> str:
        """Create the default template if it is missing and return its identifier."""
        path = self._default_template
        if not path.exists():
            template = Transcript(
                title=title,
                messages=[Message(role=Role.SYSTEM, content=system_prompt)],
            )
            try:
                await asyncio.to_thread(_atomic_write, path, serialize(template))
            except OSError as e:
                raise PersistError(f"Failed to create {path}: {e}") from e
            logger.info("Created default chat template at %s", path)
        return str(path)
