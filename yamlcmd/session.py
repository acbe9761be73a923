"""yamlcmd session - variables persisted between invocations.

The store is a single JSON object of string values kept in the user's
home directory and shared by every command. There is no locking: two
invocations saving at the same time race and the last writer wins.
"""

import json
from pathlib import Path

SESSION_FILE = Path.home() / ".yamlcmd_session.json"


class SessionStoreError(Exception):
    """The session file exists but does not hold a JSON object."""


class SessionStore:
    """Load and save the persisted variable mapping."""

    def __init__(self, path: str | Path | None = None):
        self.path = Path(path) if path else SESSION_FILE

    def load(self) -> dict[str, str]:
        """Return the stored mapping, or {} when nothing was saved yet."""
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except json.JSONDecodeError as e:
            raise SessionStoreError(f"Session file {self.path} is not valid JSON: {e}") from e
        if not isinstance(data, dict):
            raise SessionStoreError(f"Session file {self.path} must contain a JSON object")
        return {str(k): "" if v is None else str(v) for k, v in data.items()}

    def save(self, mapping: dict) -> None:
        """Overwrite the stored mapping. Callers merge before saving."""
        data = {str(k): "" if v is None else str(v) for k, v in mapping.items()}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=2))

    def clear(self) -> bool:
        """Delete the session file. Returns False if there was none."""
        if not self.path.exists():
            return False
        self.path.unlink()
        return True
