"""
The fixed set of Sprat stages and the named tasks built from them.
"""
from __future__ import annotations

import asyncio

from .clean import CleanStep, EnsureDirStep
from .core import BuildSettings, Context, Step
from .jinja import JinjaTemplateStep
from .markup import MarkupCompiler, MJMLStep
from .minify import HTMLMinifierStep, MinifyOptions, EMAIL_MINIFY_OPTIONS
from .pretty_utils import print_error
from .sequencer import PipelineError, PipelineRun, Sequencer
from .server import start_server
from .verify import VerifyStep
from .watcher import Watcher

TASK_NAMES = (
    'default',
    'clean',
    'compile-to-intermediate',
    'compile-to-html',
    'minify',
    'verify',
    'serve',
    'watch',
)


class StageSet:
    """
    The pipeline's stages, each bound to the same Context.
    """
    def __init__(self,
                 context: Context,
                 markup_compiler: MarkupCompiler | None = None,
                 minify_options: MinifyOptions = EMAIL_MINIFY_OPTIONS):
        self.clean = CleanStep()
        self.clean_intermediate = CleanStep('intermediate_dir', preserve=(), name='clean-intermediate')
        self.ensure_output_dir = EnsureDirStep()
        self.compile_to_intermediate = JinjaTemplateStep()
        self.compile_to_html = MJMLStep(markup_compiler)
        self.minify = HTMLMinifierStep(minify_options)
        self.verify = VerifyStep()
        for step in self.build():
            context.bind(step)

    def build(self) -> list[Step]:
        """
        Every stage, starting from empty output and intermediate directories.
        """
        return [
            self.clean,
            self.clean_intermediate,
            self.ensure_output_dir,
            self.compile_to_intermediate,
            self.compile_to_html,
            self.minify,
            self.verify,
        ]

    def rebuild(self) -> list[Step]:
        """
        The stages re-run after a template change.
        """
        return [self.compile_to_intermediate, self.compile_to_html, self.minify, self.verify]


class Pipeline:
    """
    Entry points for building, serving and watching a Sprat project.
    """
    def __init__(self,
                 settings: BuildSettings,
                 markup_compiler: MarkupCompiler | None = None,
                 minify_options: MinifyOptions = EMAIL_MINIFY_OPTIONS):
        self.context = Context(settings)
        self.stages = StageSet(self.context, markup_compiler, minify_options)
        self.sequencer = Sequencer(settings['settle_delay'])

    async def run_stages(self, stages: list[Step], label: str) -> PipelineRun:
        return await self.sequencer.run(stages, label)

    async def build(self) -> PipelineRun:
        return await self.run_stages(self.stages.build(), 'build')

    async def rebuild(self) -> PipelineRun:
        """
        Re-run the compile stages after a change. A failure is reported and
        swallowed so that watching can continue.
        """
        try:
            return await self.run_stages(self.stages.rebuild(), 'rebuild')
        except PipelineError as e:
            print_error(f'Rebuild failed; waiting for the next change. ({e})')
            return e.run

    def start_server(self):
        return start_server(
            self.context['port'],
            self.context['output_dir'],
            host=self.context['host'],
            default_file=self.context['default_file'],
            log_level=self.context['log_level'],
            open_browser=self.context['open_browser'],
            wait=self.context['wait'],
        )

    def watcher(self) -> Watcher:
        return Watcher(
            self.context['source_dir'],
            self.context['template_pattern'],
            self.rebuild,
        )

    async def watch(self, stop_event: asyncio.Event | None = None):
        await self.watcher().watch(stop_event)

    async def serve(self, stop_event: asyncio.Event | None = None):
        httpd = self.start_server()
        try:
            await (stop_event or asyncio.Event()).wait()
        finally:
            httpd.shutdown()
            httpd.server_close()

    async def run_default(self, stop_event: asyncio.Event | None = None):
        """
        Build everything, then serve the output and rebuild on changes.
        """
        await self.build()
        httpd = self.start_server()
        try:
            await self.watch(stop_event)
        finally:
            httpd.shutdown()
            httpd.server_close()

    async def run_task(self, name: str, stop_event: asyncio.Event | None = None):
        """
        Run one of the named tasks in `TASK_NAMES`.
        """
        if name == 'clean':
            return await self.run_stages([self.stages.clean, self.stages.clean_intermediate], name)
        stages = {
            'compile-to-intermediate': self.stages.compile_to_intermediate,
            'compile-to-html': self.stages.compile_to_html,
            'minify': self.stages.minify,
            'verify': self.stages.verify,
        }
        if name in stages:
            return await self.run_stages([stages[name]], name)
        if name == 'default':
            return await self.run_default(stop_event)
        if name == 'serve':
            return await self.serve(stop_event)
        if name == 'watch':
            return await self.watch(stop_event)
        raise ValueError(f'Unknown task {name!r}; expected one of {", ".join(TASK_NAMES)}')
