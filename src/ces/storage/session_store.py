"""
Session store for CES.

Persists sessions and checkpoints as JSON documents:

    <claude_dir>/sessions/session-{id}.json
    <claude_dir>/sessions/current.json
    <claude_dir>/sessions/checkpoint-{id}.json
    <claude_dir>/backup/sessions-backup-{timestamp}/

The session file and current.json are written one after the other with
no transaction; a failure between the two leaves current.json stale.
"""

import asyncio
import json
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import aiofiles

from ..models.session import Checkpoint, Session
from ..utils.errors import PersistenceError
from ..utils.formatting import backup_timestamp
from ..utils.logging import get_logger


logger = get_logger("ces.storage.sessions")

CURRENT_SESSION_FILE = "current.json"


@dataclass
class CleanHistoryResult:
    """Outcome of a history clean request."""
    cleaned: bool
    confirmation_required: bool = False
    nothing_to_clean: bool = False
    backup_path: Optional[Path] = None

    @property
    def message(self) -> str:
        if self.confirmation_required:
            return "This will clean all session history. Use --force to confirm."
        if self.nothing_to_clean:
            return "No session history to clean"
        return f"Session history cleaned (backup: {self.backup_path})"


class SessionStore:
    """JSON document storage for sessions and checkpoints."""

    def __init__(self, claude_dir: Path):
        self.claude_dir = Path(claude_dir)
        self.sessions_dir = self.claude_dir / "sessions"
        self.backup_dir = self.claude_dir / "backup"

    @property
    def current_file(self) -> Path:
        return self.sessions_dir / CURRENT_SESSION_FILE

    def session_file(self, session_id: str) -> Path:
        return self.sessions_dir / f"session-{session_id}.json"

    def checkpoint_file(self, checkpoint_id: str) -> Path:
        return self.sessions_dir / f"checkpoint-{checkpoint_id}.json"

    def ensure_directories(self) -> None:
        """Create the capability and session directories if missing."""
        try:
            self.claude_dir.mkdir(parents=True, exist_ok=True)
            self.sessions_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PersistenceError(
                f"Cannot create session directory {self.sessions_dir}: {e}",
                cause=e
            ) from e

    async def save_session(self, session: Session) -> None:
        """Write the session document and overwrite the current-session pointer."""
        self.ensure_directories()
        document = session.to_dict()

        await self._write_json(self.session_file(session.id), document)
        await self._write_json(self.current_file, document)

        logger.debug(
            "session_saved",
            session_id=session.id,
            checkpoints=len(session.checkpoints),
            status=session.status.value
        )

    async def save_checkpoint(self, checkpoint: Checkpoint) -> None:
        """Write a checkpoint document independent of its session file."""
        self.ensure_directories()
        await self._write_json(self.checkpoint_file(checkpoint.id), checkpoint.to_dict())
        logger.debug("checkpoint_saved", checkpoint_id=checkpoint.id)

    async def load_session(self, session_id: str) -> Optional[Session]:
        """Read a stored session; None when it does not exist."""
        path = self.session_file(session_id)
        return self._decode(Session, path, await self._read_json(path))

    async def load_current(self) -> Optional[Session]:
        """Read the session the current-session pointer refers to."""
        return self._decode(Session, self.current_file, await self._read_json(self.current_file))

    async def load_checkpoint(self, checkpoint_id: str) -> Optional[Checkpoint]:
        path = self.checkpoint_file(checkpoint_id)
        return self._decode(Checkpoint, path, await self._read_json(path))

    def list_session_ids(self) -> List[str]:
        """IDs of all stored sessions, sorted."""
        if not self.sessions_dir.is_dir():
            return []
        prefix = "session-"
        return sorted(
            path.stem[len(prefix):]
            for path in self.sessions_dir.glob(f"{prefix}*.json")
        )

    async def clean_history(self, force: bool = False) -> CleanHistoryResult:
        """Back up the session directory, then remove it.

        Without force nothing is touched. The originals are removed only
        after the backup copy succeeded.
        """
        if not force:
            logger.info("clean_history_confirmation_required")
            return CleanHistoryResult(cleaned=False, confirmation_required=True)

        if not self.sessions_dir.exists():
            logger.info("clean_history_nothing_to_clean", sessions_dir=str(self.sessions_dir))
            return CleanHistoryResult(cleaned=False, nothing_to_clean=True)

        backup_path = self.backup_dir / f"sessions-backup-{backup_timestamp()}"

        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            await asyncio.to_thread(shutil.copytree, self.sessions_dir, backup_path)
        except (OSError, shutil.Error) as e:
            logger.error(
                "history_backup_failed",
                sessions_dir=str(self.sessions_dir),
                backup_path=str(backup_path),
                error=str(e)
            )
            raise PersistenceError(
                f"Failed to back up session history to {backup_path}: {e}",
                cause=e
            ) from e

        logger.info("history_backup_created", backup_path=str(backup_path))

        try:
            await asyncio.to_thread(shutil.rmtree, self.sessions_dir)
        except OSError as e:
            raise PersistenceError(
                f"Backup created at {backup_path} but session history could not be removed: {e}",
                cause=e
            ) from e

        logger.info("history_cleaned", sessions_dir=str(self.sessions_dir))
        return CleanHistoryResult(cleaned=True, backup_path=backup_path)

    async def _write_json(self, path: Path, document: Dict[str, Any]) -> None:
        try:
            async with aiofiles.open(path, 'w', encoding='utf-8') as f:
                await f.write(json.dumps(document, indent=2))
        except (OSError, TypeError, ValueError) as e:
            logger.error("document_write_failed", path=str(path), error=str(e))
            raise PersistenceError(f"Failed to write {path}: {e}", cause=e) from e

    def _decode(self, model, path: Path, data: Optional[Dict[str, Any]]):
        if data is None:
            return None
        try:
            return model.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.error("document_invalid", path=str(path), error=str(e))
            raise PersistenceError(f"Invalid document {path}: {e}", cause=e) from e

    async def _read_json(self, path: Path) -> Optional[Dict[str, Any]]:
        if not path.exists():
            return None
        try:
            async with aiofiles.open(path, 'r', encoding='utf-8') as f:
                content = await f.read()
            return json.loads(content)
        except (OSError, ValueError) as e:
            logger.error("document_read_failed", path=str(path), error=str(e))
            raise PersistenceError(f"Failed to read {path}: {e}", cause=e) from e


__all__ = [
    'SessionStore',
    'CleanHistoryResult',
    'CURRENT_SESSION_FILE',
]
