"""
Steps for compiling Jinja templates into intermediate MJML markup.
"""
from __future__ import annotations

import typing as t

from .core import CompileError, ErrorPolicy, File
from .dependencies import PipDependency
from .paths import IntermediateDirPathCalc
from .transform import FileTransform

if t.TYPE_CHECKING:
    from jinja2 import Environment


class JinjaTemplateStep(FileTransform):
    """
    Renders every template source into the intermediate directory, replacing
    its extension with `.mjml`. Any template error stops the build.
    """
    name = 'compile-to-intermediate'
    policy = ErrorPolicy.ABORT
    error_cls = CompileError

    @classmethod
    def get_dependencies(cls):
        return {
            PipDependency('jinja2'),
        }

    def __init__(self,
                 pattern: str | None = None,
                 env: Environment | None = None,
                 extra_globals: dict[str, t.Any] | None = None):
        super().__init__('source_dir', pattern or '', IntermediateDirPathCalc('.mjml'))
        self._env = env
        self._extra_globals = extra_globals

    def bind(self, context):
        super().bind(context)
        self.pattern = self.pattern or context['template_pattern']

    @property
    def env(self):
        """
        Returns the Jinja `Environment` for this Step, creating and caching it
        if necessary. Build-mode flags come from the Context: `pretty` keeps
        block whitespace as authored and `debug` makes undefined variables an
        error.
        """
        if self._env:
            return self._env

        from jinja2 import Environment, FileSystemLoader, StrictUndefined, Undefined
        pretty = self.context['pretty']
        self._env = Environment(
            loader=FileSystemLoader(self.context['source_dir']),
            autoescape=True,
            trim_blocks=not pretty,
            lstrip_blocks=not pretty,
            keep_trailing_newline=pretty,
            undefined=StrictUndefined if self.context['debug'] else Undefined,
        )
        self._env.globals.update(self.context['template_globals'])
        if self._extra_globals:
            self._env.globals.update(self._extra_globals)
        return self._env

    def transform(self, file: File) -> File:
        from jinja2 import TemplateError

        name = file.path.relative_to(self.context['source_dir']).as_posix()
        try:
            rendered = self.env.get_template(name).render()
        except TemplateError as e:
            raise CompileError(file.path, str(self), [f'{e.__class__.__name__}: {e}']) from e
        return file.evolve(contents=rendered.encode('utf-8'))
