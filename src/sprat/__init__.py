"""
Sprat builds deliverable HTML email from Jinja-templated MJML, with a
cache-free preview server and a watch mode for rebuilding on change.
"""
from .clean import CleanStep, EnsureDirStep
from .core import (
    BuildSettings, CompileError, Context, ErrorPolicy, ErrorRecord, File, InputBuildSettings,
    MinifyError, ServerError, StageError, Step, TransformIOError, resolve_settings,
)
from .jinja import JinjaTemplateStep
from .markup import MarkupResult, MJMLStep, mjml_compile
from .minify import EMAIL_MINIFY_OPTIONS, HTMLMinifierStep, MinifyOptions
from .paths import DirPathCalc, IntermediateDirPathCalc, OutputDirPathCalc
from .pipeline import Pipeline, StageSet
from .postprocess import remove_empty_styles
from .sequencer import PipelineError, PipelineRun, RunStatus, Sequencer, SingleFlight
from .transform import FileTransform
from .verify import VerifyStep
from .watcher import Watcher
