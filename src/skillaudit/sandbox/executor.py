"""Read-only execution of backend read requests."""

import fnmatch
import logging
import os
import re
from collections.abc import Callable, Iterator
from pathlib import Path

from skillaudit.agent.actions import FindFiles, Grep, ListDir, ReadAction, ReadFile
from skillaudit.exceptions import (
    CommandNotAllowedError,
    InvalidPatternError,
    PathEscapeError,
    SandboxError,
    ScopeDeniedError,
    UserDeniedError,
)
from skillaudit.sandbox.policy import PermissionPolicy, is_within, resolve_scoped_path

logger = logging.getLogger(__name__)

MAX_OUTPUT_CHARS = 30_000
MAX_PATTERN_CHARS = 1_000

ConfirmCallback = Callable[[str], bool]


def execute(
    request: ReadAction,
    policy: PermissionPolicy,
    *,
    confirm: ConfirmCallback | None = None,
) -> str:
    """Run one read request under ``policy`` and return its text output.

    Raises a ``SandboxError`` subclass when the request is denied or fails.
    """
    if request.kind not in policy.allowed_commands:
        raise CommandNotAllowedError(
            f"Command '{request.kind}' is not permitted by the permission policy"
        )

    root = policy.project_root
    target = resolve_scoped_path(root, request.path)
    enforce_read_scope(request, target, policy)

    if policy.interactive_permissions:
        _confirm_request(request, target, root, confirm)

    if isinstance(request, ReadFile):
        output = _read_file(target, root)
    elif isinstance(request, Grep):
        output = _grep(request, target, root)
    elif isinstance(request, ListDir):
        output = _list_dir(target, root)
    else:
        output = _find_files(request, target, root)

    return truncate_output(output)


def enforce_read_scope(request: ReadAction, target: Path, policy: PermissionPolicy) -> None:
    """Apply strict-scope rules to an already confined path."""
    if not policy.is_strict:
        return

    if isinstance(request, (ListDir, FindFiles)):
        raise ScopeDeniedError(
            "Request denied by strict read scope: "
            "directory listing and file discovery are not allowed"
        )

    if not target.is_file():
        raise ScopeDeniedError(
            "Request denied by strict read scope: only known source files can be accessed"
        )

    for allowed in policy.allowed_paths:
        try:
            if resolve_scoped_path(policy.project_root, allowed) == target:
                return
        except PathEscapeError:
            continue

    raise ScopeDeniedError(
        "Request denied by strict read scope: "
        f"'{display_relative(policy.project_root, target)}' is not an allowed source file"
    )


def truncate_output(output: str) -> str:
    return output[:MAX_OUTPUT_CHARS]


def display_relative(root: Path, path: Path) -> str:
    """Project-relative POSIX form of a confined path."""
    try:
        relative = path.relative_to(root).as_posix()
    except ValueError:
        return str(path)
    return relative or "."


def _confirm_request(
    request: ReadAction,
    target: Path,
    root: Path,
    confirm: ConfirmCallback | None,
) -> None:
    message = (
        f"[audit][permission] {request.summary()} -> {display_relative(root, target)}\n"
        "Allow this request?"
    )
    if confirm is None or not confirm(message):
        raise UserDeniedError(f"Request denied by user confirmation: {request.summary()}")


def _read_file(target: Path, root: Path) -> str:
    if not target.is_file():
        raise SandboxError(
            f"'{display_relative(root, target)}' is not a regular file; "
            "use list_dir or find_files for directories"
        )
    try:
        content = target.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise SandboxError(f"Cannot read {display_relative(root, target)}: {e.strerror}") from e
    return content or "(empty file)"


def _grep(request: Grep, target: Path, root: Path) -> str:
    if len(request.pattern) > MAX_PATTERN_CHARS:
        raise InvalidPatternError(
            f"Grep pattern is {len(request.pattern)} characters long; "
            f"the limit is {MAX_PATTERN_CHARS}"
        )
    try:
        regex = re.compile(request.pattern)
    except (re.error, RecursionError, OverflowError) as e:
        raise InvalidPatternError(f"Invalid grep pattern {request.pattern!r}: {e}") from e

    single_file = target.is_file()
    files = [target] if single_file else _walk_files(target, root)

    groups: list[str] = []
    size = 0
    for path in files:
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except (OSError, UnicodeDecodeError):
            logger.debug("grep skipped unreadable file %s", path)
            continue
        prefix = None if single_file else display_relative(root, path)
        block = _grep_lines(lines, regex, request.context_lines, prefix)
        if not block:
            continue
        groups.append(block)
        size += len(block)
        if size > MAX_OUTPUT_CHARS:
            break

    if not groups:
        return "(no matches)"
    return "\n--\n".join(groups)


def _grep_lines(
    lines: list[str],
    regex: re.Pattern[str],
    context: int,
    prefix: str | None,
) -> str:
    """Format matches the way ``grep -n -C`` does."""
    matches = [i for i, line in enumerate(lines) if regex.search(line)]
    if not matches:
        return ""

    matched = set(matches)
    out: list[str] = []
    last_end = -1
    for index in matches:
        start = max(0, index - context)
        end = min(len(lines) - 1, index + context)
        if out and start > last_end + 1:
            out.append("--")
        for j in range(max(start, last_end + 1), end + 1):
            sep = ":" if j in matched else "-"
            head = f"{prefix}{sep}" if prefix else ""
            out.append(f"{head}{j + 1}{sep}{lines[j]}")
        last_end = max(last_end, end)
    return "\n".join(out)


def _list_dir(target: Path, root: Path) -> str:
    if not target.is_dir():
        return _describe_entry(target)

    try:
        entries = sorted(target.iterdir(), key=lambda p: p.name)
    except OSError as e:
        raise SandboxError(f"Cannot list {display_relative(root, target)}: {e.strerror}") from e

    if not entries:
        return "(empty directory)"
    return "\n".join(_describe_entry(entry) for entry in entries)


def _describe_entry(path: Path) -> str:
    if path.is_symlink():
        marker = "l"
    elif path.is_dir():
        marker = "d"
    else:
        marker = "f"
    try:
        size = path.lstat().st_size
    except OSError:
        size = 0
    name = path.name + ("/" if marker == "d" else "")
    return f"{marker} {size:>10} {name}"


def _find_files(request: FindFiles, target: Path, root: Path) -> str:
    files = [target] if target.is_file() else _walk_files(target, root)
    found = sorted(
        display_relative(root, path)
        for path in files
        if request.glob is None or fnmatch.fnmatch(path.name, request.glob)
    )
    if not found:
        return "(no files found)"
    return "\n".join(found)


def _walk_files(directory: Path, root: Path) -> Iterator[Path]:
    """Yield regular files under ``directory`` that stay inside ``root``."""
    for dirpath, dirnames, filenames in os.walk(directory):
        dirnames.sort()
        for name in sorted(filenames):
            path = Path(dirpath, name)
            try:
                resolved = path.resolve(strict=True)
            except (OSError, RuntimeError):
                continue
            if resolved.is_file() and is_within(root, resolved):
                yield path
