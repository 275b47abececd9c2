import argparse
import textwrap

import pytest

from milesync.config import ConfigError, default_config, load_config
from milesync.env_auth import DEFAULT_TOKEN_VARS
from milesync.logging import configure_logging
from milesync.runtime import execute_command, prepare_config

CONFIG = textwrap.dedent(
    """\
    remote:
      base_url: gitlab.example.com
      namespace: team
      project: app
      token: $TEST_MILESYNC_TOKEN
    schedule:
      interval: Weekly
      advance: 8
    http:
      timeout: 12.5
    logging:
      json_enabled: true
      level: DEBUG
    """
)


def _write(tmp_path, text=CONFIG):
    path = tmp_path / 'milesync.config.yaml'
    path.write_text(text)
    return path


def _args(**kw):
    base = dict(
        config=None, base_url=None, namespace=None, project=None, token=None,
        interval=None, advance=None, timeout=None, log_level=None, json_logs=False,
    )
    base.update(kw)
    return argparse.Namespace(**base)


@pytest.fixture(autouse=True)
def _no_env_tokens(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for var in DEFAULT_TOKEN_VARS:
        monkeypatch.delenv(var, raising=False)


def test_load_config_sections(tmp_path, monkeypatch):
    monkeypatch.setenv('TEST_MILESYNC_TOKEN', 'glpat-from-env')
    cfg = load_config(_write(tmp_path))
    assert cfg.base_url == 'gitlab.example.com'
    assert cfg.token == 'glpat-from-env'
    assert cfg.interval == 'weekly'
    assert cfg.advance == 8
    assert cfg.request_timeout == 12.5
    assert cfg.logging_json_enabled is True
    assert cfg.logging_level == 'DEBUG'
    assert cfg.source_file.name == 'milesync.config.yaml'


def test_unset_env_reference_is_kept_literal(tmp_path, monkeypatch):
    monkeypatch.delenv('TEST_MILESYNC_TOKEN', raising=False)
    assert load_config(_write(tmp_path)).token == '$TEST_MILESYNC_TOKEN'


def test_defaults():
    cfg = default_config()
    assert cfg.interval == 'daily'
    assert cfg.advance == 30
    assert cfg.request_timeout == 30.0
    assert cfg.missing_remote_fields() == ['base_url', 'namespace', 'project', 'token']


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / 'nope.yaml')


def test_invalid_interval(tmp_path):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, 'schedule:\n  interval: fortnightly\n'))


def test_negative_advance(tmp_path):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, 'schedule:\n  advance: -2\n'))


def test_section_must_be_mapping(tmp_path):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, 'remote: [a, b]\n'))


def test_invalid_yaml(tmp_path):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, 'remote: {base_url: [\n'))


def test_cli_flags_override_file(tmp_path, monkeypatch):
    monkeypatch.setenv('TEST_MILESYNC_TOKEN', 'file-token')
    path = _write(tmp_path)
    cfg = prepare_config(_args(config=str(path), interval='MONTHLY', advance=2, token='cli-token'))
    assert cfg.interval == 'monthly'
    assert cfg.advance == 2
    assert cfg.token == 'cli-token'
    assert cfg.namespace == 'team'


def test_default_file_is_picked_up(tmp_path):
    _write(tmp_path)
    cfg = prepare_config(_args(timeout=5.0, log_level='WARNING'))
    assert cfg.project == 'app'
    assert cfg.request_timeout == 5.0
    assert cfg.logging_level == 'WARNING'


def test_token_falls_back_to_environment(monkeypatch):
    monkeypatch.setenv('GITLAB_TOKEN', 'env-token')
    assert prepare_config(_args()).token == 'env-token'
    assert prepare_config(_args(), resolve_env_token=False).token is None


def test_json_logs_flag(tmp_path):
    assert prepare_config(_args(json_logs=True)).logging_json_enabled is True


def test_execute_command_reports_exit_code(capsys):
    logger = configure_logging(name='test.runtime')
    assert execute_command(lambda: 3, 'demo', logger) == 3
    assert 'command_demo' in capsys.readouterr().out


def test_execute_command_reraises(capsys):
    def _boom():
        raise ValueError('x')

    logger = configure_logging(name='test.runtime')
    with pytest.raises(ValueError):
        execute_command(_boom, 'broken', logger)
    assert 'command broken crashed' in capsys.readouterr().out
