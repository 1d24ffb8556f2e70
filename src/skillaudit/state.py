"""Run-state persistence."""

import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from skillaudit.exceptions import PersistenceError
from skillaudit.parser.models import AnalysisState, SkillIterationResult

logger = logging.getLogger(__name__)


class StateStore:
    """Owns the run's state document and rewrites it in full on every change.

    Each write goes to a temporary file beside the target and is moved into
    place, so an interrupted run leaves the last complete document behind.
    """

    def __init__(self, path: Path, state: AnalysisState) -> None:
        self.path = path
        self.state = state

    def initialize(self) -> None:
        """Write the zero-iteration document before any skill runs."""
        self.persist()

    def append(self, iteration: SkillIterationResult) -> None:
        """Record one skill's result and persist immediately."""
        self.state.iterations.append(iteration)
        self.persist()

    def persist(self) -> None:
        write_text_atomic(self.path, self.state.model_dump_json(indent=2) + "\n")
        logger.debug(
            "Persisted state with %d iteration(s) to %s",
            len(self.state.iterations),
            self.path,
        )


def load_state(path: Path) -> AnalysisState:
    """Read a state document written by a previous run."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PersistenceError(path, f"Failed to read state file ({e.strerror})") from e

    try:
        return AnalysisState.model_validate_json(raw)
    except ValidationError as e:
        raise PersistenceError(
            path, f"Invalid state document ({e.error_count()} validation error(s))"
        ) from e


def write_text_atomic(path: Path, content: str) -> None:
    """Replace ``path`` with ``content`` via a temp file and ``os.replace``."""
    tmp_name: str | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(tmp_name, path)
    except OSError as e:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise PersistenceError(path, f"Failed to write file ({e.strerror or e})") from e
