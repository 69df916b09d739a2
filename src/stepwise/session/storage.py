"""Session persistence.

Each session owns one directory:

  <root>/.stepwise/sessions/<session-id>/session.yaml    metadata
  <root>/.stepwise/sessions/<session-id>/history.jsonl   message log

session.yaml holds ``id``, ``workDir``, ``createdAt`` and ``lastActivityAt``
(ISO timestamps).
"""

from __future__ import annotations

import shutil
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import yaml

from stepwise.config.paths import PROJECT_DIR
from stepwise.context.history_log import HISTORY_FILENAME, HistoryLog
from stepwise.errors import SessionError
from stepwise.logging import get_logger

log = get_logger("storage")

METADATA_FILENAME = "session.yaml"


def normalize_work_dir(work_dir: str | Path) -> Path:
    """Absolute, symlink-resolved form used as the session cache key."""
    return Path(work_dir).expanduser().resolve()


@dataclass
class Session:
    """Identity binding a working directory to a continuing conversation."""

    id: str
    work_dir: Path
    created_at: datetime = field(default_factory=datetime.now)
    last_activity_at: datetime = field(default_factory=datetime.now)

    def touch(self) -> None:
        self.last_activity_at = datetime.now()

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "workDir": str(self.work_dir),
            "createdAt": self.created_at.isoformat(),
            "lastActivityAt": self.last_activity_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, str]) -> Session:
        return cls(
            id=data["id"],
            work_dir=Path(data["workDir"]),
            created_at=datetime.fromisoformat(data["createdAt"]),
            last_activity_at=datetime.fromisoformat(data["lastActivityAt"]),
        )


class SessionStore:
    """Creates, loads and caches sessions.

    At most one Session object exists per normalized working directory for
    the lifetime of the store.
    """

    def __init__(self, root: str | Path) -> None:
        self.sessions_dir = Path(root).expanduser() / PROJECT_DIR / "sessions"
        self._by_work_dir: dict[Path, Session] = {}
        self._lock = threading.Lock()

    def session_dir(self, session_id: str) -> Path:
        return self.sessions_dir / session_id

    def history_log(self, session_id: str) -> HistoryLog:
        return HistoryLog(self.session_dir(session_id) / HISTORY_FILENAME)

    def create(self, work_dir: str | Path) -> Session:
        session = Session(id=str(uuid.uuid4()), work_dir=normalize_work_dir(work_dir))
        self.save(session)
        with self._lock:
            self._by_work_dir[session.work_dir] = session
        log.info("Created session %s for %s", session.id, session.work_dir)
        return session

    def load(self, session_id: str) -> Session | None:
        """Load a session, or None if missing or unreadable."""
        if not session_id or "/" in session_id or "\\" in session_id or session_id.startswith("."):
            return None
        path = self.session_dir(session_id) / METADATA_FILENAME
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
            return Session.from_dict(data)
        except Exception as e:
            log.warning("Failed to load session metadata from %s: %s", path, e)
            return None

    def get_or_create(self, work_dir: str | Path) -> Session:
        key = normalize_work_dir(work_dir)
        with self._lock:
            cached = self._by_work_dir.get(key)
        if cached is not None:
            return cached

        for session in self.list_sessions():
            if session.work_dir == key:
                with self._lock:
                    # Another caller may have won the race
                    session = self._by_work_dir.setdefault(key, session)
                log.debug("Resuming session %s for %s", session.id, key)
                return session

        return self.create(key)

    def save(self, session: Session) -> Path:
        """Write metadata atomically through a temp file.

        Raises:
            SessionError: If the metadata could not be written.
        """
        session_dir = self.session_dir(session.id)
        path = session_dir / METADATA_FILENAME
        temp_path = session_dir / f"{METADATA_FILENAME}.tmp"
        try:
            session_dir.mkdir(parents=True, exist_ok=True)
            with open(temp_path, "w", encoding="utf-8") as f:
                yaml.safe_dump(session.to_dict(), f, default_flow_style=False, sort_keys=False)
            temp_path.replace(path)
        except OSError as e:
            if temp_path.exists():
                temp_path.unlink()
            raise SessionError(f"Failed to save session {session.id}: {e}") from e
        log.debug("Saved session %s", session.id)
        return path

    def delete(self, session_id: str) -> bool:
        """Remove a session directory recursively. Returns False if it didn't exist."""
        session_dir = self.session_dir(session_id)
        if not session_dir.is_dir():
            return False
        shutil.rmtree(session_dir)
        with self._lock:
            self._by_work_dir = {
                k: s for k, s in self._by_work_dir.items() if s.id != session_id
            }
        log.info("Deleted session %s", session_id)
        return True

    def list_sessions(self) -> list[Session]:
        """All readable sessions, most recently active first."""
        if not self.sessions_dir.is_dir():
            return []
        sessions = [
            session
            for entry in self.sessions_dir.iterdir()
            if entry.is_dir() and (session := self.load(entry.name)) is not None
        ]
        sessions.sort(key=lambda s: s.last_activity_at, reverse=True)
        return sessions
