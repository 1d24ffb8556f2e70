"""Permission policy governing which reads a backend may request."""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from skillaudit.exceptions import InvalidProjectRootError, PathEscapeError
from skillaudit.parser.models import PermissionPromptSpec

SHELL_IDENTIFIER = "builtin"

READ_COMMANDS: tuple[str, ...] = ("read_file", "grep", "list_dir", "find_files")


class ReadScope(StrEnum):
    """How far backend read requests may reach."""

    WORKSPACE = "workspace"
    STRICT = "strict"


@dataclass(frozen=True)
class PermissionPolicy:
    """Concrete allow-list honored by the sandbox for one run."""

    read_scope: ReadScope
    project_root: Path
    allowed_commands: tuple[str, ...] = READ_COMMANDS
    allowed_paths: tuple[str, ...] = ()
    interactive_permissions: bool = False

    @property
    def is_strict(self) -> bool:
        return self.read_scope is ReadScope.STRICT

    def scope_rules(self) -> list[str]:
        """Plain-language rules shown to the backend and stored in state."""
        rules = [
            "Only paths inside the project root may be accessed.",
            "All operations are read-only; nothing is written or executed.",
        ]
        if self.is_strict:
            rules.append(
                "Strict scope: list_dir and find_files are denied; read_file and grep "
                "are limited to the listed source files."
            )
        else:
            rules.append(
                "Workspace scope: any file or directory under the project root may be read."
            )
        if self.interactive_permissions:
            rules.append("Every request must be approved by the operator before it runs.")
        return rules

    def to_prompt_spec(self) -> PermissionPromptSpec:
        """Serializable snapshot persisted in the run state."""
        return PermissionPromptSpec(
            shell=SHELL_IDENTIFIER,
            allowed_commands=list(self.allowed_commands),
            scope_rules=self.scope_rules(),
            workspace_root=".",
            read_scope=self.read_scope.value,
            interactive_permissions=self.interactive_permissions,
            allowed_paths=list(self.allowed_paths),
        )


def canonicalize_project_root(project_root: Path) -> Path:
    """Resolve the project root to an absolute, symlink-free directory."""
    try:
        canonical = project_root.resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise InvalidProjectRootError(project_root, str(e)) from e
    if not canonical.is_dir():
        raise InvalidProjectRootError(project_root, "not a directory")
    return canonical


def build_permission_policy(
    read_scope: ReadScope,
    project_root: Path,
    source_files: Sequence[str],
    *,
    interactive_permissions: bool = False,
) -> PermissionPolicy:
    """Derive the run's policy from the scope choice and discovered sources."""
    allowed_paths = tuple(source_files) if read_scope is ReadScope.STRICT else ()
    return PermissionPolicy(
        read_scope=read_scope,
        project_root=canonicalize_project_root(project_root),
        allowed_paths=allowed_paths,
        interactive_permissions=interactive_permissions,
    )


def resolve_scoped_path(project_root: Path, requested_path: str) -> Path:
    """Canonicalize a requested path and confine it to ``project_root``.

    ``project_root`` must already be canonical. Symlinks are followed before
    the containment check, so a link pointing outside the root is rejected.
    """
    requested = requested_path.strip() or "."
    candidate = Path(requested)
    if not candidate.is_absolute():
        candidate = project_root / candidate

    try:
        canonical = candidate.resolve(strict=True)
    except (OSError, RuntimeError, ValueError) as e:
        raise PathEscapeError(f"Path does not exist or is inaccessible: {requested}") from e

    if not is_within(project_root, canonical):
        raise PathEscapeError(f"Path escapes project root and is not allowed: {requested}")
    return canonical


def is_within(project_root: Path, candidate: Path) -> bool:
    """True when ``candidate`` is ``project_root`` or one of its descendants."""
    return candidate == project_root or candidate.is_relative_to(project_root)
