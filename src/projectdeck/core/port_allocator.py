"""Port assignment for worktree dev, API and preview servers."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from projectdeck.models.project import PortAllocation, PortClass, PortRange, Project

logger = logging.getLogger(__name__)

DEFAULT_PORT_RANGES: dict[PortClass, PortRange] = {
    PortClass.DEV: PortRange(start=3000, end=3099),
    PortClass.API: PortRange(start=19432, end=19531),
    PortClass.PREVIEW: PortRange(start=4000, end=4099),
}


class PortExhaustedError(RuntimeError):
    """Every port in a class's range is already taken."""

    def __init__(self, port_class: PortClass, port_range: PortRange) -> None:
        self.port_class = port_class
        self.port_range = port_range
        super().__init__(
            f"No free {port_class.value} port in {port_range.start}-{port_range.end}"
        )


class PortAllocator:
    """Assign the lowest free port of each class.

    The used set is recomputed from the project list on every call; there is
    no separate pool, so removing a worktree frees its ports implicitly.
    Callers must serialize allocate-then-commit sequences.
    """

    def __init__(
        self,
        ranges: Mapping[PortClass, PortRange] | None = None,
        *,
        strict: bool = False,
    ) -> None:
        self._ranges = dict(ranges if ranges is not None else DEFAULT_PORT_RANGES)
        missing = [port_class.value for port_class in PortClass if port_class not in self._ranges]
        if missing:
            msg = f"Missing port ranges for: {', '.join(missing)}"
            raise ValueError(msg)
        classes = list(self._ranges)
        for index, first in enumerate(classes):
            for second in classes[index + 1 :]:
                if self._ranges[first].overlaps(self._ranges[second]):
                    msg = f"Port ranges for {first.value} and {second.value} overlap"
                    raise ValueError(msg)
        self._strict = strict

    @property
    def ranges(self) -> dict[PortClass, PortRange]:
        return dict(self._ranges)

    @staticmethod
    def used_ports(
        projects: Iterable[Project],
        port_class: PortClass,
        pending: Iterable[PortAllocation] = (),
    ) -> set[int]:
        used = {
            worktree.ports.get(port_class)
            for project in projects
            for worktree in project.worktrees
        }
        used.update(allocation.get(port_class) for allocation in pending)
        used.discard(0)
        return used

    def allocate(
        self,
        projects: Iterable[Project],
        port_classes: Iterable[PortClass] | None = None,
        *,
        pending: Iterable[PortAllocation] = (),
        current: PortAllocation | None = None,
    ) -> PortAllocation:
        """Allocate ports for the requested classes.

        ``pending`` holds allocations handed out but not yet committed to
        ``projects``. Fields of ``current`` that already hold a port inside the
        configured range are kept; anything else is reassigned.
        An exhausted range yields ``0``, or :class:`PortExhaustedError` in
        strict mode.
        """
        projects = list(projects)
        pending = list(pending)
        allocation = current.model_copy() if current is not None else PortAllocation()
        for port_class in port_classes if port_classes is not None else PortClass:
            port_range = self._ranges[port_class]
            if allocation.get(port_class) in port_range:
                continue
            used = self.used_ports(projects, port_class, pending)
            port = next(
                (
                    candidate
                    for candidate in range(port_range.start, port_range.end + 1)
                    if candidate not in used
                ),
                0,
            )
            if port == 0:
                if self._strict:
                    raise PortExhaustedError(port_class, port_range)
                logger.warning(
                    "Port range %s-%s for %s is exhausted; leaving it unallocated",
                    port_range.start,
                    port_range.end,
                    port_class.value,
                )
            allocation.set(port_class, port)
        return allocation
