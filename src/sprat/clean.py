"""
Steps which prepare the output and intermediate directories.
"""
from __future__ import annotations

import typing as t
from pathlib import Path

from .core import ContextDir, Step
from .pretty_utils import print_warning, print_with_style

if t.TYPE_CHECKING:
    from collections.abc import Iterable


def _rm_unpreserved(path: Path, preserve: set[Path]):
    removed_all = True
    for child in path.iterdir():
        if child in preserve:
            removed_all = False
            continue
        if child.is_dir() and not child.is_symlink():
            if _rm_unpreserved(child, preserve):
                child.rmdir()
            else:
                removed_all = False
        else:
            child.unlink()
    return removed_all


def clean(root: Path, preserve: Iterable[str | Path] = ()):
    """
    Delete everything under @root except the @preserve subpaths (relative to
    @root) and the directories containing them. A missing @root is not an
    error.
    """
    if not root.exists():
        return
    _rm_unpreserved(root, {root / p for p in preserve})


class CleanStep(Step):
    """
    Empties a configured directory. By default the output directory is
    emptied, keeping the configured preserved subpaths; pass @preserve to
    override them. A directory containing the template sources is never
    emptied.
    """
    name = 'clean'

    def __init__(self,
                 target: ContextDir = 'output_dir',
                 preserve: Iterable[str | Path] | None = None,
                 name: str | None = None):
        self.target: ContextDir = target
        self.preserve = None if preserve is None else tuple(preserve)
        if name:
            self.name = name

    async def __call__(self):
        root = self.context[self.target]
        if self.context['source_dir'].resolve().is_relative_to(root.resolve()):
            print_warning(f'Not cleaning "{root}": it contains the template sources.')
            return
        clean(root, self.context['preserve'] if self.preserve is None else self.preserve)


class EnsureDirStep(Step):
    """
    Creates a configured directory, along with any missing parents.
    """
    name = 'ensure-output-dir'

    def __init__(self, target: ContextDir = 'output_dir'):
        self.target: ContextDir = target

    async def __call__(self):
        self.context[self.target].mkdir(parents=True, exist_ok=True)
        print_with_style(f'Directory "{self.context[self.target]}" is ready.')
