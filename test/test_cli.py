import importlib
import sys
from pathlib import Path

import pytest

from sprat.cli import build_parser, load_config_settings, main, merge_settings
from sprat.test_harness import make_settings, write_templates


def base_args(tmp_path: Path):
    return ['--source', str(tmp_path / 'src'), '--output', str(tmp_path / 'dist'), '--log-level', '0']


def test_merge_settings_overrides_config(tmp_path: Path):
    config = {'source_dir': tmp_path / 'templates', 'port': 9000, 'pretty': False}
    args = build_parser().parse_args(['watch', '--port', '9100', '--no-open', '--preserve', 'img'])
    settings = merge_settings(config, args)
    assert settings['source_dir'] == tmp_path / 'templates'
    assert settings['port'] == 9100
    assert settings['pretty'] is False
    assert settings['open_browser'] is False
    assert settings['preserve'] == ('img',)
    assert args.task == 'watch'


def test_default_task():
    assert build_parser().parse_args([]).task == 'default'


def test_load_config_file(tmp_path: Path):
    config_file = tmp_path / 'config.py'
    config_file.write_text(
        'from pathlib import Path\n'
        'SETTINGS = {"source_dir": Path("emails"), "port": 8181}\n'
    )
    assert load_config_settings(config_file) == {'source_dir': Path('emails'), 'port': 8181}
    assert load_config_settings() is None


def test_cli_compile_to_intermediate(tmp_path: Path):
    write_templates(make_settings(tmp_path), {'welcome.jinja': '<mjml>{{ 1 + 1 }}</mjml>'})
    main(['compile-to-intermediate', *base_args(tmp_path)])
    assert (tmp_path / 'src' / 'mjml' / 'welcome.mjml').read_text() == '<mjml>2</mjml>'


def test_cli_clean(tmp_path: Path):
    output_dir = tmp_path / 'dist'
    (output_dir / 'images').mkdir(parents=True)
    (output_dir / 'old.html').write_text('old')
    main(['clean', *base_args(tmp_path)])
    assert [p.name for p in output_dir.iterdir()] == ['images']


def test_cli_failure_exit_code(tmp_path: Path, capsys):
    write_templates(make_settings(tmp_path), {'broken.jinja': '{% endif %}'})
    with pytest.raises(SystemExit) as exc_info:
        main(['compile-to-intermediate', *base_args(tmp_path)])
    assert exc_info.value.code == 1
    assert 'broken.jinja' in capsys.readouterr().err


def test_cli_audit_steps(capsys):
    main(['--audit-steps'])
    out = capsys.readouterr().out
    assert 'Available steps' in out
    assert 'JinjaTemplateStep' in out
    assert 'HTMLMinifierStep' in out


def test_audit_steps_reports_missing_lxml(monkeypatch, capsys):
    for name in [m for m in sys.modules if m == 'sprat' or m.startswith('sprat.')]:
        monkeypatch.delitem(sys.modules, name)
    for name in ['lxml', 'lxml.etree', 'lxml.html']:
        monkeypatch.setitem(sys.modules, name, None)

    cli = importlib.import_module('sprat.cli')
    cli.main(['--audit-steps'])
    unavailable = capsys.readouterr().out.split('Unavailable steps')[1]
    assert 'VerifyStep' in unavailable
    assert 'MJMLStep' in unavailable
    assert 'JinjaTemplateStep' not in unavailable
