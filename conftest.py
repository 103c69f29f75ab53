"""
Pytest configuration and fixtures for all tests.
"""

import io

import pytest
from rich.console import Console

from domain_watcher import config as config_module
from domain_watcher.config import WatchConfig
from domain_watcher.console import StatusReporter


VALID_CONFIG = {
    "smtp_server": "smtp.example.com",
    "smtp_port": 465,
    "smtp_user": "watcher@example.com",
    "smtp_pass": "smtp-secret",
    "domain_name": "example.com",
    "email": "owner@example.org",
    "log": False,
    "provider": "whoisjson.com",
    "api_key": "whois-token-1234",
    "frequency": 1,
}


@pytest.fixture(autouse=True)
def isolate_secrets(monkeypatch, tmp_path):
    """Keep the real keychain, environment and config dir out of every test."""
    monkeypatch.setattr(config_module, "_is_macos", lambda: False)
    for env_var in config_module.SECRET_ENV_VARS.values():
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.delenv(config_module.CONFIG_ENV_VAR, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


@pytest.fixture
def config_data() -> dict:
    return dict(VALID_CONFIG)


@pytest.fixture
def watch_config(config_data) -> WatchConfig:
    return WatchConfig.from_dict(config_data)


@pytest.fixture
def console_output() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def reporter(console_output):
    """A StatusReporter that prints into console_output."""
    console = Console(file=console_output, force_terminal=False, width=200)
    with StatusReporter(console=console) as reporter:
        yield reporter
