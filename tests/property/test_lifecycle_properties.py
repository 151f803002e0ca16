import asyncio
import re
from pathlib import Path

from hypothesis import given, settings
from hypothesis import strategies as st

from projectdeck.core.git_manager import GitManager
from projectdeck.core.identity import hash_string, normalize_remote, worktree_id_from_branch
from projectdeck.core.project_manager import ProjectManager
from projectdeck.models.project import PortClass
from tests.support.git_fakes import FakeGitRunner, FakeRepo
from tests.support.memory_store import MemoryStore

FOLDERS = ["/src/widget", "/src/gadget", "/src/gizmo"]
OPERATIONS = ["open", "add", "remove", "switch", "close", "release", "allocate"]


@given(st.text())
def test_hash_is_stable_eight_hex_digits(value: str) -> None:
    digest = hash_string(value)

    assert re.fullmatch(r"[0-9a-f]{8}", digest)
    assert digest == hash_string(value)


@given(st.text())
def test_worktree_ids_are_lowercase_slugs(branch: str) -> None:
    worktree_id = worktree_id_from_branch(branch)

    assert re.fullmatch(r"[a-z0-9-]*", worktree_id)
    assert len(worktree_id) == len(branch)


@given(
    owner=st.from_regex(r"[a-z][a-z0-9-]{0,10}", fullmatch=True),
    repo=st.from_regex(r"[a-z][a-z0-9_-]{0,10}", fullmatch=True),
)
def test_ssh_and_https_remotes_normalize_alike(owner: str, repo: str) -> None:
    ssh = normalize_remote(f"git@github.com:{owner}/{repo}.git")
    https = normalize_remote(f"https://github.com/{owner}/{repo}")

    assert ssh == https == f"github.com/{owner}/{repo}"


def _runner() -> FakeGitRunner:
    return FakeGitRunner(
        {
            "/src/widget": FakeRepo(
                worktrees=[("/src/widget", "main"), ("/src/widget-a", "feature/a")]
            ),
            "/src/gadget": FakeRepo(branch="develop"),
            "/src/gizmo": FakeRepo(branch=None),
        }
    )


async def _apply(manager: ProjectManager, operation: str, first: int, second: int) -> None:
    projects = manager.list()
    project = projects[first % len(projects)] if projects else None
    worktree = (
        project.worktrees[second % len(project.worktrees)]
        if project is not None and project.worktrees
        else None
    )

    if operation == "open":
        await manager.open_project(FOLDERS[first % len(FOLDERS)])
    elif operation == "add" and project is not None:
        await manager.add_worktree(project.id, Path(f"/extra/{first}-{second}"))
    elif operation == "close" and project is not None:
        await manager.close_project(project.id)
    elif project is not None and worktree is not None:
        if operation == "remove":
            await manager.remove_worktree(project.id, worktree.id)
        elif operation == "switch":
            await manager.switch_worktree(worktree.id, project.id)
        elif operation == "release":
            await manager.release_ports(project.id, worktree.id)
        elif operation == "allocate":
            await manager.allocate_ports(project.id, worktree.id)


def _check_invariants(manager: ProjectManager) -> None:
    projects = manager.list()
    project_ids = [project.id for project in projects]
    assert len(project_ids) == len(set(project_ids))
    assert manager.active_project_id is None or manager.active_project_id in project_ids
    if projects:
        assert manager.active_project_id is not None

    for port_class in PortClass:
        ports = [
            worktree.ports.get(port_class)
            for project in projects
            for worktree in project.worktrees
            if worktree.ports.get(port_class) != 0
        ]
        assert len(ports) == len(set(ports))

    for project in projects:
        worktree_ids = [worktree.id for worktree in project.worktrees]
        assert len(worktree_ids) == len(set(worktree_ids))
        if project.worktrees:
            assert project.active_worktree_id in worktree_ids
        else:
            assert project.active_worktree_id == ""
        assert [w.id for w in project.worktrees if w.is_active] == (
            [project.active_worktree_id] if project.worktrees else []
        )


@settings(max_examples=50, deadline=None)
@given(
    st.lists(
        st.tuples(
            st.sampled_from(OPERATIONS),
            st.integers(min_value=0, max_value=5),
            st.integers(min_value=0, max_value=5),
        ),
        max_size=25,
    )
)
def test_random_operations_preserve_invariants(
    operations: list[tuple[str, int, int]],
) -> None:
    async def scenario() -> None:
        store = MemoryStore()
        manager = ProjectManager(
            store, GitManager(_runner()), shared_context_root=Path("/shared")
        )
        for operation, first, second in operations:
            await _apply(manager, operation, first, second)
            _check_invariants(manager)
        await manager.events.drain()

        reloaded = ProjectManager(
            store, GitManager(_runner()), shared_context_root=Path("/shared")
        )
        await reloaded.load()
        assert [p.model_dump() for p in reloaded.list()] == [
            p.model_dump() for p in manager.list()
        ]
        assert reloaded.active_project_id == manager.active_project_id

    asyncio.run(scenario())
