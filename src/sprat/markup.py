"""
Steps for compiling intermediate MJML markup into deliverable HTML.
"""
from __future__ import annotations

import io
import typing as t
from pathlib import Path

from .core import CompileError, ErrorPolicy, File
from .dependencies import PipDependency
from .paths import OutputDirPathCalc
from .postprocess import remove_empty_styles
from .transform import FileTransform


class MarkupResult(t.NamedTuple):
    html: str
    errors: list[t.Any]


MarkupCompiler = t.Callable[[str, Path], MarkupResult]


def mjml_compile(markup: str, path: Path) -> MarkupResult:
    """
    Compile MJML with the `mjml` package, resolving `<mj-include>` relative
    to the directory of @path.
    """
    from mjml import mjml_to_html
    result = mjml_to_html(io.BytesIO(markup.encode('utf-8')), template_dir=path.parent)
    return MarkupResult(result.html, list(result.errors or []))


class MJMLStep(FileTransform):
    """
    Compiles every intermediate MJML file into an HTML file in the output
    directory, then strips the empty `style` attributes the compiler can leave
    behind. A compiler error for any file stops the build.
    """
    name = 'compile-to-html'
    policy = ErrorPolicy.ABORT
    error_cls = CompileError

    @classmethod
    def get_dependencies(cls):
        return {
            PipDependency('mjml'),
            PipDependency('lxml'),
        }

    def __init__(self, compiler: MarkupCompiler | None = None):
        super().__init__('intermediate_dir', '*.mjml', OutputDirPathCalc('.html'))
        self.compiler = compiler or mjml_compile

    def transform(self, file: File) -> File:
        result = self.compiler(file.text, file.path)
        if result.errors:
            raise CompileError(file.path, str(self), [str(e) for e in result.errors])
        html = remove_empty_styles(result.html)
        return file.evolve(contents=html.encode('utf-8'))
