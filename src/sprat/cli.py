"""
Sprat's command line interface.
"""
from __future__ import annotations

import argparse
import asyncio
import importlib
import runpy
import sys
import typing as t
from pathlib import Path

from .core import InputBuildSettings, ServerError, Step, StepUnavailableException, resolve_settings
from .pipeline import TASK_NAMES, Pipeline
from .pretty_utils import print_error, print_with_style
from .sequencer import PipelineError


def load_config_settings(config_file: Path | None = None, module: str | None = None) -> InputBuildSettings | None:
    """
    Return the `SETTINGS` of a config file path or importable module, if
    either is given.
    """
    if config_file:
        namespace = runpy.run_path(str(config_file))
        return namespace.get('SETTINGS')
    if module:
        return getattr(importlib.import_module(module), 'SETTINGS', None)
    return None


def build_parser():
    parser = argparse.ArgumentParser(prog='sprat', description='Build, preview and watch HTML email templates.')
    parser.add_argument('task',
                        nargs='?',
                        choices=TASK_NAMES,
                        default='default',
                        help='task to run (default: build, serve and watch)')
    group = parser.add_mutually_exclusive_group()
    group.add_argument('-c', '--config',
                       help='file path to a config file defining SETTINGS',
                       type=Path,
                       dest='config_file')
    group.add_argument('-m',
                       help='import path of a config module defining SETTINGS',
                       dest='module')
    parser.add_argument('--audit-steps',
                        help='show which stages have their dependencies installed, instead of running',
                        action='store_true')

    settings = parser.add_argument_group('build settings')
    settings.add_argument('-s', '--source',
                          help='directory with template sources',
                          type=Path,
                          dest='source_dir')
    settings.add_argument('-i', '--intermediate',
                          help='directory for compiled MJML; defaults to SOURCE/mjml',
                          type=Path,
                          dest='intermediate_dir')
    settings.add_argument('-o', '--output',
                          help='output directory for final HTML',
                          type=Path,
                          dest='output_dir')
    settings.add_argument('--preserve',
                          help='output subpath to keep when cleaning; may be repeated',
                          action='append')
    settings.add_argument('--pattern',
                          help='glob selecting template sources',
                          dest='template_pattern')
    settings.add_argument('--pretty',
                          help='keep template whitespace as authored',
                          action=argparse.BooleanOptionalAction)
    settings.add_argument('--debug',
                          help='fail on undefined template variables',
                          action=argparse.BooleanOptionalAction)
    settings.add_argument('--settle-delay',
                          help='seconds to wait between stages',
                          type=float)

    preview = parser.add_argument_group('preview server')
    preview.add_argument('--host',
                         help='host to serve from')
    preview.add_argument('-p', '--port',
                         help='port to serve from',
                         type=int)
    preview.add_argument('--default-file',
                         help='document served for directories and missing paths')
    preview.add_argument('--open',
                         help='open a browser once the server is up',
                         action=argparse.BooleanOptionalAction,
                         dest='open_browser')
    preview.add_argument('--wait',
                         help='seconds to wait before opening a browser',
                         type=float)
    preview.add_argument('--log-level',
                         help='0 = silent, 1 = errors, 2 = info, 3 = debug',
                         type=int,
                         choices=range(4))
    return parser


def merge_settings(config: InputBuildSettings | None, args: argparse.Namespace):
    """
    Combine config file settings with command line overrides.
    """
    merged: dict[str, t.Any] = dict(config or {})
    for key in InputBuildSettings.__annotations__:
        value = getattr(args, key, None)
        if value is not None:
            merged[key] = value
    return resolve_settings(t.cast(InputBuildSettings, merged))


def pprint_step(step: t.Type[Step]):
    """
    Prettily display dependency information for the given Step class.
    """
    missing = [str(d) for d in step.get_dependencies() if not d.satisfied]
    if missing:
        text = ', '.join(missing)
        print_with_style(f'✗ {step.__name__} (missing: {text})', style='red')
    else:
        print_with_style(f'✓ {step.__name__}', style='green')


def pprint_missing_deps(step: Step):
    """
    Prettily display an error for the given Step with missing dependencies.
    """
    print_error(f'{step} is unavailable due to missing dependencies!')
    for dep in step.get_dependencies():
        if dep.satisfied:
            print_with_style(f'✓ {dep}', style='green')
        else:
            print_with_style(f'✗ {dep}: {dep.install_hint}', style='red')


def audit_steps():
    all_steps = set(Step.get_all_steps())
    available_steps = set(Step.get_available_steps())
    groups = {
        'Available steps': available_steps,
        'Unavailable steps': all_steps - available_steps,
    }
    for group_label, step_group in groups.items():
        print(f'{group_label} ({len(step_group)})')
        for step in sorted(step_group, key=lambda s: s.__name__):
            pprint_step(step)


def main(arguments: list[str] | None = None):
    """
    Sprat main function. Resolves settings from an optional config file and
    command line arguments, then runs the requested task.
    """
    args = build_parser().parse_args(arguments)

    if args.audit_steps:
        audit_steps()
        return

    settings = merge_settings(load_config_settings(args.config_file, args.module), args)
    try:
        pipeline = Pipeline(settings)
    except StepUnavailableException as e:
        pprint_missing_deps(e.step)
        sys.exit(1)

    try:
        asyncio.run(pipeline.run_task(args.task))
    except PipelineError as e:
        print_error(str(e))
        sys.exit(1)
    except ServerError as e:
        print_error(str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        print_with_style('Stopped.')
