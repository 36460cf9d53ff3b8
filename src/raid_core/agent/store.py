"""Session snapshots saved as JSON files, so a paused session can be resumed later."""

import logging
from pathlib import Path

from pydantic import ValidationError

from raid_core.agent.types import SessionSnapshot
from raid_core.config import DEFAULT_SESSIONS_DIR
from raid_core.exceptions import SessionNotFoundError

logger = logging.getLogger(__name__)


class SessionStore:
    """Reads and writes session snapshots.

    One file per session, named {session_id}.json. Saving again overwrites
    the previous snapshot of the same session.

    Attributes:
        directory: Directory where snapshot files are kept
    """

    def __init__(self, directory: Path = DEFAULT_SESSIONS_DIR):
        """Initialize the store.

        Args:
            directory: Snapshot directory (created on first save)
        """
        self.directory = Path(directory)

    def path_for(self, session_id: str) -> Path:
        if not session_id or "/" in session_id or "\\" in session_id or session_id.startswith("."):
            raise ValueError(f"Invalid session id: {session_id!r}")
        return self.directory / f"{session_id}.json"

    def save(self, snapshot: SessionSnapshot) -> Path:
        """Save a snapshot.

        Returns:
            Path to the saved JSON file
        """
        self.directory.mkdir(parents=True, exist_ok=True)
        filepath = self.path_for(snapshot.session_id)
        filepath.write_text(snapshot.model_dump_json(indent=2))
        logger.debug(f"Saved session {snapshot.session_id} to {filepath}")
        return filepath

    def load(self, session_id: str) -> SessionSnapshot:
        """Load a snapshot.

        Raises:
            SessionNotFoundError: If no snapshot exists for the id
        """
        filepath = self.path_for(session_id)
        if not filepath.exists():
            raise SessionNotFoundError(session_id)
        return SessionSnapshot.model_validate_json(filepath.read_text())

    def list_sessions(self) -> list[SessionSnapshot]:
        """All readable snapshots, newest first.

        Files that fail to parse are skipped with a warning.
        """
        if not self.directory.exists():
            return []

        snapshots = []
        for filepath in self.directory.glob("*.json"):
            try:
                snapshots.append(SessionSnapshot.model_validate_json(filepath.read_text()))
            except (OSError, ValidationError) as e:
                logger.warning(f"Skipping unreadable session file {filepath.name}: {e}")
        snapshots.sort(key=lambda s: s.saved_at, reverse=True)
        return snapshots

    def delete(self, session_id: str) -> bool:
        """Delete a snapshot. Returns False if it did not exist."""
        filepath = self.path_for(session_id)
        if not filepath.exists():
            return False
        filepath.unlink()
        return True
