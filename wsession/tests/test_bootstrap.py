import pytest

from wsession.bootstrap import build_settings


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    monkeypatch.delenv("WSESSION_CONFIG_FILE", raising=False)
    monkeypatch.chdir(tmp_path)


def test_command_line_overrides():
    settings = build_settings(
        ["ws://cli.test/feed", "--protocol", "a", "--protocol", "b", "--heartbeat", "--reconnect", "--dummy", "--log-level", "debug"]
    )

    assert str(settings.url) == "ws://cli.test/feed"
    assert settings.protocols == ["a", "b"]
    assert settings.heartbeat_options() is not None
    assert settings.reconnect_options().retries == -1
    assert settings.transport == "dummy"
    assert settings.log_level == "DEBUG"


def test_no_arguments_keep_defaults():
    settings = build_settings([])

    assert settings.heartbeat_options() is None
    assert settings.reconnect_options() is None
    assert settings.transport == "websocket"
