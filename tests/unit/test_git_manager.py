from pathlib import Path

import pytest

from projectdeck.core.command_runner import CommandError
from projectdeck.core.git_manager import (
    BranchInfo,
    DiscoveredWorktree,
    GitManager,
    parse_worktree_porcelain,
)
from tests.support.git_fakes import FailingRunner, FakeGitRunner, FakeRepo


def test_parse_worktree_porcelain_blocks() -> None:
    output = (
        "worktree /repo/a\n"
        "HEAD 1111111111111111111111111111111111111111\n"
        "branch refs/heads/main\n"
        "\n"
        "worktree /repo/feature\n"
        "HEAD 2222222222222222222222222222222222222222\n"
        "branch refs/heads/feature/ABC-123\n"
        "\n"
        "worktree /repo/detached\n"
        "HEAD 3333333333333333333333333333333333333333\n"
        "detached\n"
        "\n"
    )

    worktrees = parse_worktree_porcelain(output)

    assert worktrees == [
        DiscoveredWorktree(path=Path("/repo/a"), branch="main"),
        DiscoveredWorktree(path=Path("/repo/feature"), branch="feature/ABC-123"),
        DiscoveredWorktree(path=Path("/repo/detached"), branch="HEAD"),
    ]
    assert worktrees[1].id == "feature-abc-123"


def test_parse_worktree_porcelain_skips_blocks_without_path() -> None:
    assert parse_worktree_porcelain("") == []
    assert parse_worktree_porcelain("branch refs/heads/main\n") == []


@pytest.mark.asyncio
async def test_discover_falls_back_to_main_when_git_fails() -> None:
    runner = FailingRunner()
    git = GitManager(runner)

    worktrees = await git.discover_worktrees(Path("/not/a/repo"))

    assert worktrees == [DiscoveredWorktree(path=Path("/not/a/repo"), branch="main")]
    assert runner.calls == 2


@pytest.mark.asyncio
async def test_discover_uses_current_branch_when_list_is_empty() -> None:
    class _EmptyListRunner(FakeGitRunner):
        async def run(self, cwd: Path, *argv: str) -> str:
            if argv[1:3] == ("worktree", "list"):
                self.calls.append((cwd, argv))
                return ""
            return await super().run(cwd, *argv)

    git = GitManager(_EmptyListRunner({"/repo/a": FakeRepo(branch="develop")}))

    worktrees = await git.discover_worktrees(Path("/repo/a"))

    assert worktrees == [DiscoveredWorktree(path=Path("/repo/a"), branch="develop")]


@pytest.mark.asyncio
async def test_discover_lists_all_worktrees() -> None:
    runner = FakeGitRunner(
        {
            "/repo/a": FakeRepo(
                worktrees=[("/repo/a", "main"), ("/repo/a-feature", "feature/x")],
            )
        }
    )

    worktrees = await GitManager(runner).discover_worktrees(Path("/repo/a"))

    assert [w.branch for w in worktrees] == ["main", "feature/x"]


@pytest.mark.asyncio
async def test_remote_and_branch_lookups_absorb_failures() -> None:
    git = GitManager(FailingRunner())

    assert await git.remote_url(Path("/x")) == ""
    assert await git.current_branch(Path("/x")) is None
    assert await git.is_git_repo(Path("/x")) is False
    assert await git.list_branches(Path("/x")) == []


@pytest.mark.asyncio
async def test_remote_url_is_stripped() -> None:
    git = GitManager(FakeGitRunner({"/repo/a": FakeRepo(remote="git@github.com:org/widget.git")}))

    assert await git.remote_url(Path("/repo/a")) == "git@github.com:org/widget.git"
    assert await git.is_git_repo(Path("/repo/a")) is True


@pytest.mark.asyncio
async def test_list_branches_merges_remote_branches() -> None:
    runner = FakeGitRunner(
        {
            "/repo/a": FakeRepo(
                branches=["main", "feature/x"],
                remote_branches=["origin/HEAD", "origin/main", "origin/release"],
            )
        }
    )

    branches = await GitManager(runner).list_branches(Path("/repo/a"))

    assert branches == [
        BranchInfo(name="main"),
        BranchInfo(name="feature/x"),
        BranchInfo(name="release", is_remote=True),
    ]


@pytest.mark.asyncio
async def test_create_worktree_builds_git_arguments() -> None:
    runner = FakeGitRunner({"/repo/a": FakeRepo()})
    git = GitManager(runner)

    await git.create_worktree(Path("/repo/a"), "feature/x", Path("/repo/feature-x"))
    await git.create_worktree(
        Path("/repo/a"), "release", Path("/repo/release"), new_branch=False
    )

    assert runner.git_calls() == [
        ("worktree", "add", "-b", "feature/x", "/repo/feature-x"),
        ("worktree", "add", "/repo/release", "release"),
    ]


@pytest.mark.asyncio
async def test_create_worktree_propagates_failure() -> None:
    runner = FakeGitRunner({"/repo/a": FakeRepo()})
    runner.fail_worktree_add = True

    with pytest.raises(CommandError):
        await GitManager(runner).create_worktree(Path("/repo/a"), "x", Path("/repo/x"))


def test_default_worktree_path_is_sibling() -> None:
    assert GitManager.default_worktree_path(Path("/src/app"), "feature/Auth") == Path(
        "/src/feature-auth"
    )
