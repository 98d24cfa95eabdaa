"""
Practical implementations of PathCalcs.
"""
from pathlib import Path

from .core import CONTEXT_DIR_KEYS, Context, ContextDir, PathCalc


def _relative_to_context(context: Context, path: Path):
    for key in ('intermediate_dir', 'output_dir', 'source_dir'):
        if path.is_relative_to(context[key]):
            return path.relative_to(context[key])
    return Path(path.name)


class DirPathCalc(PathCalc):
    """
    PathCalc which makes its input paths children of a specified directory,
    keeping their position relative to whichever configured directory they
    came from. If @ext is specified, it will replace the extension of input
    paths. If @suffix is specified, it will be appended to the stem, so that
    `welcome.html` with a suffix of `.min` becomes `welcome.min.html`.
    """
    def __init__(self,
                 dest: Path | ContextDir,
                 ext: str | None = None,
                 suffix: str | None = None):
        self.dest = dest
        self.ext = ext
        self.suffix = suffix

    def __call__(self, context: Context, path: Path) -> Path:
        if self.dest in CONTEXT_DIR_KEYS:
            dest = context[self.dest]
        else:
            dest = Path(self.dest)

        new_path = dest / _relative_to_context(context, path)
        if self.ext is not None:
            new_path = new_path.with_suffix(self.ext)
        if self.suffix:
            new_path = new_path.with_stem(new_path.stem + self.suffix)
        return new_path


class OutputDirPathCalc(DirPathCalc):
    """
    DirPathCalc targeting the Context's output directory.
    """
    def __init__(self, ext: str | None = None, suffix: str | None = None):
        super().__init__('output_dir', ext, suffix)


class IntermediateDirPathCalc(DirPathCalc):
    """
    DirPathCalc targeting the Context's intermediate directory.
    """
    def __init__(self, ext: str | None = None, suffix: str | None = None):
        super().__init__('intermediate_dir', ext, suffix)
