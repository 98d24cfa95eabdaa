"""
The per-file streaming transform that most stages are built from.
"""
from __future__ import annotations

import asyncio
import inspect
import typing as t
from pathlib import Path

from .core import ContextDir, ErrorPolicy, File, PathCalc, StageError, Step, TransformIOError
from .pretty_utils import print_error

if t.TYPE_CHECKING:
    from collections.abc import Awaitable, Sequence

FileFunc = t.Callable[[File], 'File | Awaitable[File]']


class FileTransform(Step):
    """
    A Step applying a per-file function to every file matched by a glob
    pattern inside one of the Context's directories, writing each result to
    the path given by @path_calc.

    Files are processed concurrently on the running event loop, with no
    ordering guarantee between them. The Step only returns once every write
    has completed. A failure for one file either fails the whole Step
    (`ErrorPolicy.ABORT`) or is logged and drops that file's output
    (`ErrorPolicy.SKIP`).

    Subclasses override `transform()`; alternatively a plain @func may be
    passed. Either may be synchronous or return an awaitable.
    """
    policy = ErrorPolicy.ABORT
    error_cls: t.Type[StageError] = TransformIOError

    def __init__(self,
                 source: ContextDir,
                 pattern: str,
                 path_calc: PathCalc,
                 *,
                 exclude: Sequence[str] = (),
                 policy: ErrorPolicy | None = None,
                 func: FileFunc | None = None,
                 name: str | None = None):
        self.source: ContextDir = source
        self.pattern = pattern
        self.path_calc = path_calc
        self.exclude = tuple(exclude)
        self.policy = policy or self.policy
        self.func = func
        if name:
            self.name = name

    def transform(self, file: File) -> File | Awaitable[File]:
        if self.func is None:
            raise NotImplementedError(f'{self} has no transform function')
        return self.func(file)

    def find_inputs(self) -> list[Path]:
        return self.context.find_inputs(self.source, self.pattern, self.exclude)

    def read(self, path: Path) -> File:
        try:
            return File(path, path.read_bytes())
        except OSError as e:
            raise TransformIOError(path, str(self), [str(e)]) from e

    def write(self, file: File) -> None:
        try:
            file.path.parent.mkdir(parents=True, exist_ok=True)
            file.path.write_bytes(file.contents)
        except OSError as e:
            raise TransformIOError(file.path, str(self), [str(e)]) from e

    async def process(self, path: Path) -> Path | None:
        """
        Read, transform and write a single file, applying this Step's error
        policy. Returns the written path, or None if the file was skipped.
        """
        try:
            source = self.read(path)
            try:
                result = self.transform(source)
                if inspect.isawaitable(result):
                    result = await result
            except StageError:
                raise
            except Exception as e:
                raise self.error_cls(path, str(self), [str(e) or e.__class__.__name__]) from e
            output = result.evolve(path=self.path_calc(self.context, result.path), stage=str(self))
            self.write(output)
        except StageError as e:
            for record in e.records:
                print_error(str(record))
            if self.policy is ErrorPolicy.ABORT:
                raise
            return None
        return output.path

    async def __call__(self) -> list[Path]:
        tasks = [asyncio.ensure_future(self.process(path)) for path in self.find_inputs()]
        if not tasks:
            return []

        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        errors = [task.exception() for task in done if not task.cancelled() and task.exception()]
        if errors:
            raise errors[0]
        return [path for task in tasks if (path := task.result())]
