"""
Running stages strictly one after another.
"""
from __future__ import annotations

import asyncio
import enum
import typing as t

from .pretty_utils import print_error, print_with_style

if t.TYPE_CHECKING:
    from collections.abc import Awaitable, Sequence

StageInvocation = t.Callable[[], 'Awaitable[t.Any]']


def stage_name(stage: StageInvocation) -> str:
    return getattr(stage, 'name', '') or getattr(stage, '__name__', '') or repr(stage)


class RunStatus(enum.Enum):
    PENDING = 'pending'
    RUNNING = 'running'
    COMPLETED = 'completed'
    FAILED = 'failed'


class PipelineRun:
    """
    The record of one invocation of a sequence of stages.
    """
    def __init__(self, label: str, stages: Sequence[StageInvocation]):
        self.label = label
        self.stages = list(stages)
        self.status = RunStatus.PENDING
        self.completed: list[str] = []
        self.failed_index: int | None = None

    @property
    def failed_stage(self):
        if self.failed_index is None:
            return None
        return stage_name(self.stages[self.failed_index])

    def __repr__(self):
        if self.status is RunStatus.FAILED:
            return f'<PipelineRun {self.label}: failed at stage {self.failed_index} ({self.failed_stage})>'
        return f'<PipelineRun {self.label}: {self.status.value}>'


class PipelineError(Exception):
    """
    Exception raised when a stage of a run fails. The stage's own exception is
    chained as `__cause__`.
    """
    def __init__(self, run: PipelineRun):
        self.run = run
        super().__init__(f'{run.label} failed at stage {run.failed_stage!r}')


class Sequencer:
    """
    Runs stages in order, starting each only after the previous one has
    finished. An optional @settle_delay (seconds) is slept between stages.
    Nothing is rolled back when a stage fails.
    """
    def __init__(self, settle_delay: float = 0.0):
        self.settle_delay = settle_delay

    async def run(self, stages: Sequence[StageInvocation], label: str = 'build') -> PipelineRun:
        run = PipelineRun(label, stages)
        run.status = RunStatus.RUNNING
        for index, stage in enumerate(run.stages):
            if index and self.settle_delay:
                await asyncio.sleep(self.settle_delay)
            name = stage_name(stage)
            print_with_style(f'Starting {name}...', style='cyan')
            try:
                await stage()
            except Exception as e:
                run.status = RunStatus.FAILED
                run.failed_index = index
                print_error(f'{name} failed: {e}')
                raise PipelineError(run) from e
            run.completed.append(name)
            print_with_style(f'Finished {name}.', style='green')
        run.status = RunStatus.COMPLETED
        return run


class SingleFlight:
    """
    Ensures at most one invocation of @func is in progress. Requests arriving
    while it runs are coalesced into a single follow-up invocation.
    """
    def __init__(self, func: t.Callable[[], Awaitable[t.Any]]):
        self.func = func
        self.running = False
        self.pending = False

    async def submit(self):
        if self.running:
            self.pending = True
            return
        self.running = True
        try:
            while True:
                self.pending = False
                await self.func()
                if not self.pending:
                    break
        finally:
            self.running = False
            self.pending = False
