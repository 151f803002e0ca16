"""Stable identifiers for projects and worktrees."""

from __future__ import annotations

import re
from pathlib import PurePath

_REMOTE_NAME_PATTERN = re.compile(r"[/:]([^/:]+?)(?:\.git)?$")
_SSH_REMOTE_PATTERN = re.compile(r"^[\w.-]+@([^:]+):(.+)$")
_REMOTE_SCHEME_PATTERN = re.compile(r"^(?:https?|git|ssh)://(?:[^@/]+@)?")
_WORKTREE_ID_PATTERN = re.compile(r"[^a-zA-Z0-9-]")


def hash_string(value: str) -> str:
    """Return an 8 character hex digest of ``value``.

    Rolling ``h * 31 + c`` over UTF-16 code units, wrapped to a signed 32-bit
    integer. Digests are stable across processes, which ``hash()`` is not.
    """
    encoded = value.encode("utf-16-le", "surrogatepass")
    digest = 0
    for index in range(0, len(encoded), 2):
        code_unit = encoded[index] | (encoded[index + 1] << 8)
        digest = (digest * 31 + code_unit) & 0xFFFFFFFF
    if digest >= 0x80000000:
        digest -= 0x100000000
    return f"{abs(digest):08x}"


def normalize_remote(url: str) -> str:
    """Reduce a git remote URL to ``host/owner/repo``.

    ``git@github.com:org/widget.git`` and ``https://github.com/org/widget``
    normalize to the same string.
    """
    normalized = url.strip().rstrip("/")
    if normalized.endswith(".git"):
        normalized = normalized[: -len(".git")]
    ssh_match = _SSH_REMOTE_PATTERN.match(normalized)
    if ssh_match and "://" not in normalized:
        normalized = f"{ssh_match.group(1)}/{ssh_match.group(2)}"
    return _REMOTE_SCHEME_PATTERN.sub("", normalized)


def extract_project_name(remote_or_path: str) -> str:
    """Human-readable name from a remote URL or a folder path."""
    match = _REMOTE_NAME_PATTERN.search(remote_or_path)
    if match:
        return match.group(1)
    parts = [part for part in PurePath(remote_or_path).parts if part.strip("/")]
    return parts[-1] if parts else "unknown"


def worktree_id_from_branch(branch: str) -> str:
    """``feature/ABC-123`` -> ``feature-abc-123``."""
    return _WORKTREE_ID_PATTERN.sub("-", branch.replace("/", "-")).lower()
