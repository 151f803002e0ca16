import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from projectdeck.models.project import (
    LifecycleState,
    PortAllocation,
    PortClass,
    PortRange,
    Project,
    Worktree,
)


def test_port_allocation_accessors() -> None:
    ports = PortAllocation(dev=3000)

    ports.set(PortClass.PREVIEW, 4000)

    assert ports.get(PortClass.DEV) == 3000
    assert ports.get(PortClass.PREVIEW) == 4000
    assert ports.missing() == [PortClass.API]


def test_port_range_membership_and_overlap() -> None:
    dev = PortRange(start=3000, end=3099)

    assert 3000 in dev
    assert 3099 in dev
    assert 3100 not in dev
    assert "3000" not in dev
    assert dev.overlaps(PortRange(start=3099, end=3200))
    assert not dev.overlaps(PortRange(start=4000, end=4099))

    with pytest.raises(ValidationError):
        PortRange(start=0, end=10)


def test_state_serializes_with_camel_case_keys() -> None:
    project = Project(
        id="abc123",
        name="widget",
        git_remote="git@github.com:org/widget.git",
        worktrees=[
            Worktree(
                id="main",
                path=Path("/src/widget"),
                branch="main",
                ports=PortAllocation(dev=3000, api=19432, preview=4000),
                is_active=True,
            )
        ],
        active_worktree_id="main",
        shared_context_path=Path("/home/.projectdeck/projects/abc123"),
    )
    state = LifecycleState(projects=[project], active_project_id="abc123")

    data = json.loads(state.model_dump_json(by_alias=True))

    assert set(data) == {"projects", "activeProjectId"}
    record = data["projects"][0]
    assert record["gitRemote"] == "git@github.com:org/widget.git"
    assert record["activeWorktreeId"] == "main"
    assert record["sharedContextPath"] == "/home/.projectdeck/projects/abc123"
    assert record["worktrees"][0]["isActive"] is True
    assert "lastActive" in record["worktrees"][0]

    restored = LifecycleState.model_validate_json(state.model_dump_json(by_alias=True))
    assert restored.projects[0].find_worktree("main") is not None
    assert restored.projects[0].has_worktree_path(Path("/src/widget"))


def test_models_accept_field_names() -> None:
    worktree = Worktree(id="main", path=Path("/a"), branch="main", is_active=True)

    assert worktree.ports == PortAllocation()
    assert worktree.purpose is None

    before = worktree.last_active
    worktree.touch()
    assert worktree.last_active >= before
