from __future__ import annotations

import pytest

from aquasense import cli
from aquasense.config import AquaSenseConfig


def test_invalid_environment_exits_with_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AQUASENSE_PORT", "eighty")

    assert cli.main(["serve"]) == 2


def test_serve_flags_override_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[AquaSenseConfig] = []
    monkeypatch.setenv("AQUASENSE_PORT", "8080")
    monkeypatch.setattr(cli, "run_server", seen.append)

    assert cli.main(["serve", "--port", "9001", "--db", "/tmp/tank.db", "--mqtt"]) == 0

    assert seen[0].port == 9001
    assert seen[0].database_path == "/tmp/tank.db"
    assert seen[0].mqtt_enabled is True


def test_watch_uses_given_url(monkeypatch: pytest.MonkeyPatch) -> None:
    seen: list[AquaSenseConfig] = []

    async def fake_watch(config: AquaSenseConfig) -> None:
        seen.append(config)

    monkeypatch.setattr(cli, "_watch", fake_watch)

    assert cli.main(["-v", "watch", "--url", "http://tank.local:5000"]) == 0

    assert seen[0].server_url == "http://tank.local:5000"
