"""Source file discovery under a project root."""

import logging
import os
from pathlib import Path

from skillaudit.exceptions import DiscoveryError

logger = logging.getLogger(__name__)

SOURCE_EXTENSION = ".ak"

SKIPPED_DIRS = frozenset({
    ".git",
    "target",
    ".skillaudit",
    ".tx3",
    "build",
})


def discover_source_files(project_root: Path) -> list[str]:
    """Return project-relative POSIX paths of every source file, sorted."""
    found: list[str] = []

    def _raise(error: OSError) -> None:
        raise DiscoveryError(f"Failed to read directory {error.filename}: {error.strerror}")

    for dirpath, dirnames, filenames in os.walk(project_root, onerror=_raise):
        dirnames[:] = sorted(name for name in dirnames if name not in SKIPPED_DIRS)
        for name in sorted(filenames):
            if Path(name).suffix.lower() != SOURCE_EXTENSION:
                continue
            relative = Path(dirpath, name).relative_to(project_root)
            found.append(relative.as_posix())

    found.sort()
    logger.debug("Discovered %d source files under %s", len(found), project_root)
    return found
