import asyncio
from pathlib import Path

import pytest

from sprat.core import CompileError, Context, ErrorPolicy, File, TransformIOError
from sprat.paths import OutputDirPathCalc
from sprat.test_harness import make_settings
from sprat.transform import FileTransform


@pytest.fixture
def context(tmp_path: Path):
    context = Context(make_settings(tmp_path))
    context['source_dir'].mkdir(parents=True)
    for name in ['a', 'b', 'c']:
        (context['source_dir'] / f'{name}.txt').write_text(name)
    return context


def upper(file: File):
    return file.evolve(contents=file.contents.upper())


async def async_upper(file: File):
    await asyncio.sleep(0)
    return upper(file)


def fail_on_b(file: File):
    if file.path.stem == 'b':
        raise ValueError('b is broken')
    return upper(file)


def make_step(context: Context, func, **kw):
    step = FileTransform('source_dir', '*.txt', OutputDirPathCalc('.out'), func=func, name='shout', **kw)
    context.bind(step)
    return step


@pytest.mark.parametrize('func', [upper, async_upper])
def test_transform_writes_renamed_outputs(context: Context, func):
    step = make_step(context, func)
    written = asyncio.run(step())
    output_dir = context['output_dir']
    assert sorted(written) == [output_dir / 'a.out', output_dir / 'b.out', output_dir / 'c.out']
    assert (output_dir / 'b.out').read_text() == 'B'


def test_abort_policy_raises(context: Context):
    step = make_step(context, fail_on_b, policy=ErrorPolicy.ABORT)
    with pytest.raises(TransformIOError) as exc_info:
        asyncio.run(step())
    assert exc_info.value.stage_name == 'shout'
    assert exc_info.value.file_path == context['source_dir'] / 'b.txt'
    assert 'b is broken' in exc_info.value.records[0].message
    assert not (context['output_dir'] / 'b.out').exists()


def test_skip_policy_drops_failed_file(context: Context, capsys):
    step = make_step(context, fail_on_b, policy=ErrorPolicy.SKIP)
    written = asyncio.run(step())
    output_dir = context['output_dir']
    assert sorted(written) == [output_dir / 'a.out', output_dir / 'c.out']
    assert not (output_dir / 'b.out').exists()
    assert 'b is broken' in capsys.readouterr().err


def test_error_class_is_used(context: Context):
    class CompileStep(FileTransform):
        error_cls = CompileError

    step = CompileStep('source_dir', '*.txt', OutputDirPathCalc(), func=fail_on_b)
    context.bind(step)
    with pytest.raises(CompileError):
        asyncio.run(step())


def test_no_inputs(context: Context):
    step = FileTransform('intermediate_dir', '*.mjml', OutputDirPathCalc(), func=upper)
    context.bind(step)
    assert asyncio.run(step()) == []


def test_missing_transform(context: Context):
    step = FileTransform('source_dir', '*.txt', OutputDirPathCalc())
    context.bind(step)
    with pytest.raises(TransformIOError, match='no transform function'):
        asyncio.run(step())
