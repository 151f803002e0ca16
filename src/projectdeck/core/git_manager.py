"""Git lookups used to identify projects and discover worktrees."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from projectdeck.core.command_runner import CommandError, CommandRunner
from projectdeck.core.identity import worktree_id_from_branch

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"
DETACHED_BRANCH = "HEAD"
_BRANCH_REF_PREFIX = "branch refs/heads/"
_WORKTREE_PREFIX = "worktree "


@dataclass(slots=True, frozen=True)
class DiscoveredWorktree:
    """A worktree reported by git, before any ports are assigned."""

    path: Path
    branch: str

    @property
    def id(self) -> str:
        return worktree_id_from_branch(self.branch)


@dataclass(slots=True, frozen=True)
class BranchInfo:
    """A branch that a new worktree can be created from."""

    name: str
    is_remote: bool = False


def parse_worktree_porcelain(output: str) -> list[DiscoveredWorktree]:
    """Parse ``git worktree list --porcelain`` output.

    Blocks without a ``worktree`` line are skipped; blocks without a
    ``branch`` line (detached HEAD, bare repositories) get ``HEAD``.
    """
    worktrees: list[DiscoveredWorktree] = []
    for block in output.replace("\r\n", "\n").split("\n\n"):
        lines = [line for line in block.strip().splitlines() if line]
        path_line = next((line for line in lines if line.startswith(_WORKTREE_PREFIX)), None)
        if path_line is None:
            continue
        branch_line = next((line for line in lines if line.startswith(_BRANCH_REF_PREFIX)), None)
        branch = branch_line[len(_BRANCH_REF_PREFIX) :] if branch_line else DETACHED_BRANCH
        worktrees.append(
            DiscoveredWorktree(path=Path(path_line[len(_WORKTREE_PREFIX) :]), branch=branch)
        )
    return worktrees


class GitManager:
    """Git queries over a command runner.

    Lookups never raise: a missing git binary, a folder that is not a
    repository or a timeout all resolve to documented fallbacks.
    """

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    async def discover_worktrees(self, repo_path: Path) -> list[DiscoveredWorktree]:
        output = await self._try_git(repo_path, "worktree", "list", "--porcelain")
        worktrees = parse_worktree_porcelain(output) if output is not None else []
        if worktrees:
            return worktrees

        branch = await self.current_branch(repo_path) or DEFAULT_BRANCH
        return [DiscoveredWorktree(path=repo_path, branch=branch)]

    async def remote_url(self, repo_path: Path) -> str:
        output = await self._try_git(repo_path, "config", "--get", "remote.origin.url")
        return output.strip() if output else ""

    async def current_branch(self, repo_path: Path) -> str | None:
        output = await self._try_git(repo_path, "rev-parse", "--abbrev-ref", "HEAD")
        branch = output.strip() if output else ""
        return branch or None

    async def is_git_repo(self, path: Path) -> bool:
        output = await self._try_git(path, "rev-parse", "--is-inside-work-tree")
        return output is not None and output.strip() == "true"

    async def list_branches(self, repo_path: Path) -> list[BranchInfo]:
        """Local branches followed by remote-only branches."""
        local_output = await self._try_git(repo_path, "branch", "--format=%(refname:short)")
        if local_output is None:
            return []
        branches = [BranchInfo(name=name) for name in local_output.splitlines() if name.strip()]
        known = {branch.name for branch in branches}

        remote_output = await self._try_git(
            repo_path, "branch", "-r", "--format=%(refname:short)"
        )
        for line in (remote_output or "").splitlines():
            if not line.strip() or "HEAD" in line:
                continue
            name = line.strip().removeprefix("origin/")
            if name not in known:
                known.add(name)
                branches.append(BranchInfo(name=name, is_remote=True))
        return branches

    async def create_worktree(
        self,
        repo_path: Path,
        branch: str,
        worktree_path: Path,
        *,
        new_branch: bool = True,
    ) -> None:
        """Run ``git worktree add``; raises :class:`CommandError` on failure."""
        if new_branch:
            await self._runner.run(
                repo_path, "git", "worktree", "add", "-b", branch, str(worktree_path)
            )
        else:
            await self._runner.run(repo_path, "git", "worktree", "add", str(worktree_path), branch)

    @staticmethod
    def default_worktree_path(project_path: Path, branch: str) -> Path:
        """Sibling directory of ``project_path`` named after the branch."""
        return project_path.parent / worktree_id_from_branch(branch)

    async def _try_git(self, cwd: Path, *args: str) -> str | None:
        try:
            return await self._runner.run(cwd, "git", *args)
        except CommandError as exc:
            logger.debug("git %s unavailable in %s: %s", " ".join(args), cwd, exc)
            return None
