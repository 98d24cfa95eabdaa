"""
Rebuilding when template sources change.
"""
from __future__ import annotations

import asyncio
import fnmatch
import typing as t
from pathlib import Path

from .pretty_utils import print_with_style
from .sequencer import SingleFlight

if t.TYPE_CHECKING:
    from collections.abc import Awaitable, Iterable


class Watcher:
    """
    Watches @directory recursively and calls @rebuild whenever a file whose
    name matches @pattern is added or modified. Rebuilds never overlap;
    changes arriving during a rebuild cause one more rebuild after it ends.
    """
    def __init__(self,
                 directory: Path,
                 pattern: str,
                 rebuild: t.Callable[[], Awaitable[t.Any]]):
        self.directory = directory
        self.pattern = pattern
        # Only the file name part of the pattern applies; the whole tree is watched.
        self.name_pattern = pattern.rsplit('/', 1)[-1]
        self.flight = SingleFlight(rebuild)
        self._tasks: set[asyncio.Task] = set()

    def watch_filter(self, change, path: str) -> bool:
        from watchfiles import Change
        return change in (Change.added, Change.modified) and fnmatch.fnmatch(Path(path).name, self.name_pattern)

    def handle_changes(self, changes: Iterable[tuple[t.Any, str]]) -> asyncio.Task | None:
        """
        Schedule a rebuild if any of @changes is relevant. Returns the
        scheduled task, if there is one.
        """
        relevant = sorted({path for change, path in changes if self.watch_filter(change, path)})
        if not relevant:
            return None
        for path in relevant:
            print_with_style(f'Changed: {path}', style='blue')
        task = asyncio.ensure_future(self.flight.submit())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def wait_idle(self):
        """
        Wait for every scheduled rebuild to finish.
        """
        while self._tasks:
            await asyncio.gather(*self._tasks)

    async def watch(self, stop_event: asyncio.Event | None = None):
        """
        Watch until @stop_event is set (or forever).
        """
        from watchfiles import awatch

        print_with_style(f'Watching {self.directory} for {self.pattern} changes...')
        async for changes in awatch(self.directory, watch_filter=self.watch_filter, stop_event=stop_event):
            self.handle_changes(changes)
        await self.wait_idle()
