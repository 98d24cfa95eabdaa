"""
Core classes and types for the Sprat build pipeline.
"""
from __future__ import annotations

import abc
import enum
import fnmatch
import typing as t
from dataclasses import dataclass
from pathlib import Path

from .dependencies import Dependency

if t.TYPE_CHECKING:
    from collections.abc import Sequence, Set


ContextDir = t.Literal['source_dir', 'intermediate_dir', 'output_dir']
CONTEXT_DIR_KEYS: set[ContextDir] = {'source_dir', 'intermediate_dir', 'output_dir'}


class InputBuildSettings(t.TypedDict, total=False):
    """
    TypedDict for defining build settings in a Sprat config file.
    """
    source_dir: Path
    intermediate_dir: Path | None
    output_dir: Path
    preserve: Sequence[str]
    template_pattern: str
    pretty: bool
    debug: bool
    template_globals: dict[str, t.Any]
    settle_delay: float
    host: str
    port: int
    default_file: str
    open_browser: bool
    wait: float
    log_level: int


class BuildSettings(t.TypedDict):
    """
    TypedDict for processed build settings ready for passing to Context.
    """
    source_dir: Path
    intermediate_dir: Path
    output_dir: Path
    preserve: Sequence[str]
    template_pattern: str
    pretty: bool
    debug: bool
    template_globals: dict[str, t.Any]
    settle_delay: float
    host: str
    port: int
    default_file: str
    open_browser: bool
    wait: float
    log_level: int


DEFAULT_SETTINGS = InputBuildSettings(
    source_dir=Path('src'),
    intermediate_dir=None,
    output_dir=Path('dist'),
    preserve=('images',),
    template_pattern='*.jinja',
    pretty=True,
    debug=False,
    template_globals={},
    settle_delay=0.0,
    host='localhost',
    port=8080,
    default_file='index.html',
    open_browser=True,
    wait=0.5,
    log_level=2,
)


def resolve_settings(settings: InputBuildSettings | None = None) -> BuildSettings:
    """
    Fill in defaults for any missing keys of @settings. The intermediate
    directory defaults to an `mjml` directory inside the source directory.
    """
    merged = dict(DEFAULT_SETTINGS)
    if settings:
        merged.update({k: v for k, v in settings.items() if v is not None})
    for key in CONTEXT_DIR_KEYS:
        if merged.get(key) is not None:
            merged[key] = Path(merged[key])
    if merged.get('intermediate_dir') is None:
        merged['intermediate_dir'] = merged['source_dir'] / 'mjml'
    merged['preserve'] = tuple(merged['preserve'])
    merged['template_globals'] = dict(merged['template_globals'])
    return t.cast(BuildSettings, merged)


class ErrorPolicy(enum.Enum):
    """
    What a stage does when its transform fails for one file.
    """
    # The stage, and the run containing it, fails.
    ABORT = 'abort'
    # The failure is logged and the file produces no output.
    SKIP = 'skip'


@dataclass(frozen=True)
class File:
    """
    A single file flowing through a stage. `stage` names the stage which
    produced this version of the file, or is empty for files read from disk.
    """
    path: Path
    contents: bytes
    stage: str = ''

    def evolve(self, **changes: t.Any) -> File:
        return File(**{'path': self.path, 'contents': self.contents, 'stage': self.stage, **changes})

    @property
    def text(self) -> str:
        return self.contents.decode('utf-8')


@dataclass(frozen=True)
class ErrorRecord:
    file_path: Path
    stage_name: str
    message: str

    def __str__(self):
        return f'[{self.stage_name}] {self.file_path}: {self.message}'


class Context:
    """
    A context and configuration class for running Sprat stages.
    """
    def __init__(self, settings: BuildSettings):
        self.settings = settings

    @t.overload
    def __getitem__(self, key: ContextDir) -> Path: ...
    @t.overload
    def __getitem__(self, key: str) -> t.Any: ...
    def __getitem__(self, key):
        return self.settings[key]

    def bind(self, step: Step):
        """
        Bind a Step to this Context, checking to ensure its availability.
        """
        if not step.is_available():
            raise StepUnavailableException(step)
        step.bind(self)

    def find_inputs(self, source: ContextDir, pattern: str, exclude: Sequence[str] = ()):
        """
        Return the files under the @source directory matching the glob
        @pattern, minus any whose name matches one of the @exclude globs.
        Sorted so that runs are reproducible; processing order is still not
        guaranteed.
        """
        root = self.settings[source]
        if not root.exists():
            return []
        return sorted(
            path for path in root.glob(pattern)
            if path.is_file() and not any(fnmatch.fnmatch(path.name, e) for e in exclude)
        )


class PathCalc(abc.ABC):
    """
    Abstract base class for path calculators which determine the output path
    of a file from its input path.
    """
    @abc.abstractmethod
    def __call__(self, context: Context, path: Path) -> Path:
        ...


class Step(abc.ABC):
    """
    Abstract base class for Steps, the named stages used to build a Sprat
    pipeline. Calling a bound Step runs it to completion.
    """
    name: str = ''
    context: Context
    _step_registry: list[t.Type[Step]] = []

    def __init_subclass__(cls, **kw):
        super().__init_subclass__(**kw)
        cls._step_registry.append(cls)

    @classmethod
    def get_all_steps(cls):
        """
        Return a list of all currently known Steps.
        """
        return list(cls._step_registry)

    @classmethod
    def get_available_steps(cls):
        """
        Return a list of all currently known Steps whose requirements are met.
        """
        return [s for s in cls._step_registry if s.is_available()]

    @classmethod
    def is_available(cls) -> bool:
        """
        Return whether this Step's requirements are installed, making it
        available for use.
        """
        return all(d.satisfied for d in cls.get_dependencies())

    @classmethod
    def get_dependencies(cls) -> Set[Dependency]:
        """
        Return the requirements for this Step.
        """
        return set()

    def bind(self, context: Context):
        """
        Bind this Step to a Context.
        """
        self.context = context

    def __str__(self):
        return self.name or self.__class__.__name__

    @abc.abstractmethod
    async def __call__(self) -> t.Any:
        ...


class StepUnavailableException(Exception):
    """
    Exception raised with a step to be used is unavailable due to missing
    dependencies.
    """
    def __init__(self, step: Step, *args: t.Any):
        self.step = step
        super().__init__(*args)


class StageError(Exception):
    """
    Base class for failures of a stage on one file. Carries one `ErrorRecord`
    per message reported for that file.
    """
    def __init__(self, file_path: Path, stage_name: str, messages: Sequence[str]):
        self.file_path = file_path
        self.stage_name = stage_name
        self.records = [ErrorRecord(file_path, stage_name, str(m)) for m in messages]
        super().__init__(f'{stage_name} failed for {file_path}: ' + '; '.join(str(m) for m in messages))


class CompileError(StageError):
    """
    A template or markup compiler reported one or more errors for a file.
    """


class TransformIOError(StageError):
    """
    A file could not be read or written.
    """


class MinifyError(StageError):
    """
    The minifier raised for a file.
    """


class ServerError(Exception):
    """
    The preview server could not be started.
    """
