import json
from pathlib import Path

import pytest

from projectdeck.config import Settings
from projectdeck.core.lifecycle import Lifecycle
from projectdeck.core.migration import LEGACY_STATE_KEY
from projectdeck.db.store import SQLiteStore
from projectdeck.models.project import PortClass, PortRange
from tests.support.git_fakes import FakeGitRunner, FakeRepo


@pytest.mark.asyncio
async def test_start_migrates_legacy_workspaces_once(tmp_path: Path) -> None:
    await SQLiteStore(tmp_path / "projectdeck.db").set(
        LEGACY_STATE_KEY,
        json.dumps({"state": {"openWorkspaces": ["/old/path"]}, "version": 1}),
    )
    runner = FakeGitRunner({"/old/path": FakeRepo()})

    lifecycle = Lifecycle.from_settings(Settings(home=tmp_path), runner=runner)
    report = await lifecycle.start()
    await lifecycle.stop()

    assert report.migrated == ["/old/path"]
    assert [p.name for p in lifecycle.manager.list()] == ["path"]
    shared = lifecycle.manager.list()[0].shared_context_path
    assert shared == lifecycle.shared_context.path_for(lifecycle.manager.list()[0].id)
    assert shared.parent == tmp_path / "projects"
    assert (shared / "shared" / "governance.md").is_file()

    restarted = Lifecycle.from_settings(Settings(home=tmp_path), runner=runner)
    second = await restarted.start()
    await restarted.stop()

    assert second.skipped is True
    assert [p.id for p in restarted.manager.list()] == [p.id for p in lifecycle.manager.list()]


@pytest.mark.asyncio
async def test_settings_flow_into_port_allocation(tmp_path: Path) -> None:
    ranges = {
        PortClass.DEV: PortRange(start=5000, end=5009),
        PortClass.API: PortRange(start=6000, end=6009),
        PortClass.PREVIEW: PortRange(start=7000, end=7009),
    }
    lifecycle = Lifecycle.from_settings(
        Settings(home=tmp_path, port_ranges=ranges),
        runner=FakeGitRunner({"/src/app": FakeRepo()}),
    )
    await lifecycle.start()

    project = await lifecycle.manager.open_project("/src/app")
    await lifecycle.stop()

    assert project.worktrees[0].ports.dev == 5000
    assert project.worktrees[0].ports.api == 6000
    assert project.worktrees[0].ports.preview == 7000
