import asyncio
from pathlib import Path

import pytest
from watchfiles import Change

from sprat.pipeline import Pipeline
from sprat.test_harness import make_settings, passthrough_markup, snapshot, write_templates
from sprat.watcher import Watcher


@pytest.mark.parametrize('change,name,expected', [
    (Change.added, 'welcome.jinja', True),
    (Change.modified, 'welcome.jinja', True),
    (Change.deleted, 'welcome.jinja', False),
    (Change.modified, 'welcome.mjml', False),
    (Change.modified, 'partials/footer.jinja', True),
])
def test_watch_filter(tmp_path: Path, change: Change, name: str, expected: bool):
    async def rebuild():
        pass
    watcher = Watcher(tmp_path, '*.jinja', rebuild)
    assert watcher.watch_filter(change, str(tmp_path / name)) is expected


def test_irrelevant_changes_do_not_rebuild(tmp_path: Path):
    calls = []

    async def rebuild():
        calls.append(True)

    async def scenario():
        watcher = Watcher(tmp_path, '*.jinja', rebuild)
        assert watcher.handle_changes({(Change.modified, str(tmp_path / 'mjml' / 'welcome.mjml'))}) is None
        task = watcher.handle_changes({(Change.modified, str(tmp_path / 'welcome.jinja'))})
        assert task is not None
        await task

    asyncio.run(scenario())
    assert calls == [True]


def test_rapid_changes_are_coalesced(tmp_path: Path):
    calls = 0
    running = 0
    overlapped = False

    async def rebuild():
        nonlocal calls, running, overlapped
        calls += 1
        running += 1
        overlapped = overlapped or running > 1
        await asyncio.sleep(0.05)
        running -= 1

    async def scenario():
        watcher = Watcher(tmp_path, '*.jinja', rebuild)
        for _ in range(5):
            watcher.handle_changes({(Change.modified, str(tmp_path / 'welcome.jinja'))})
            await asyncio.sleep(0.005)
        await watcher.wait_idle()

    asyncio.run(scenario())
    assert calls == 2
    assert not overlapped


def test_watch_triggered_rebuild(tmp_path: Path):
    settings = make_settings(tmp_path)
    write_templates(settings, {
        'welcome.jinja': '<div style="">Hi</div>',
        'other.jinja': '<p>Other</p>',
    })
    pipeline = Pipeline(settings, markup_compiler=passthrough_markup)
    asyncio.run(pipeline.build())
    output_dir = settings['output_dir']
    (output_dir / 'images').mkdir()
    (output_dir / 'images' / 'logo.png').write_bytes(b'\x89PNG')
    before = snapshot(output_dir)

    write_templates(settings, {'welcome.jinja': '<div style="">Hello</div>'})

    async def scenario():
        watcher = pipeline.watcher()
        watcher.handle_changes({(Change.modified, str(settings['source_dir'] / 'welcome.jinja'))})
        await watcher.wait_idle()

    asyncio.run(scenario())
    after = snapshot(output_dir)
    assert after['welcome.html'] == b'<div>Hello</div>'
    assert after['images/logo.png'] == before['images/logo.png']
    assert after['other.html'] == before['other.html']
    assert after['other.min.html'] == before['other.min.html']


def test_watch_filesystem_events(tmp_path: Path):
    source_dir = tmp_path / 'src'
    source_dir.mkdir()

    async def scenario():
        seen = asyncio.Event()
        stop = asyncio.Event()

        async def rebuild():
            seen.set()

        watcher = Watcher(source_dir, '*.jinja', rebuild)
        watch_task = asyncio.ensure_future(watcher.watch(stop))
        await asyncio.sleep(0.5)
        (source_dir / 'welcome.jinja').write_text('<p>hi</p>')
        try:
            await asyncio.wait_for(seen.wait(), timeout=10)
        finally:
            stop.set()
            await asyncio.wait_for(watch_task, timeout=10)

    asyncio.run(scenario())
