"""Tests for the dojo command line."""

import json

import pytest
import yaml

from dojo.cli import main
from dojo.registry import start_registry_server
from dojo.service import RegistrationService
from dojo.tokens import derive_tokens


class FakeMonitor:
    def __init__(self, team, registry):
        pass

    def start(self):
        pass

    def stop(self):
        pass

    def join(self, timeout=None):
        pass


@pytest.fixture
def registry_port(tokens):
    service = RegistrationService(tokens, monitor_factory=FakeMonitor)
    server = start_registry_server(service, host="127.0.0.1", port=0)
    yield server.server_address[1]
    server.shutdown()
    server.server_close()


class TestTokensCommand:
    def test_json(self, monkeypatch, capsys):
        monkeypatch.setenv("DOJO_SECRET", "cli-secret")
        main(["tokens", "--team-count", "3", "--format", "json"])
        out = json.loads(capsys.readouterr().out)
        assert out == {str(i): t for i, t in enumerate(derive_tokens("cli-secret", 3))}

    def test_text(self, monkeypatch, capsys):
        monkeypatch.setenv("DOJO_SECRET", "cli-secret")
        main(["tokens", "--team-count", "2"])
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 2
        assert lines[1].split() == ["1", derive_tokens("cli-secret", 2)[1]]


class TestRegistryCommands:
    def test_register_get_list_delete(self, registry_port, tokens, capsys):
        common = ["--registry-host", "127.0.0.1", "--registry-port", str(registry_port)]
        main(["registry", "register", *common, "--token", tokens[4], "0.1.2.3:3294"])
        main(["registry", "get", *common, "--format", "json", "4"])
        assert json.loads(capsys.readouterr().out) == {"address": "http://0.1.2.3:3294/", "status": ""}

        main(["registry", "list", *common])
        assert "http://0.1.2.3:3294/" in capsys.readouterr().out

        main(["registry", "delete", *common, "--token", tokens[4], "4"])
        main(["registry", "list", *common])
        assert capsys.readouterr().out.strip() == "(no servers)"

    def test_get_missing_exits(self, registry_port):
        with pytest.raises(SystemExit) as exc:
            main(["registry", "get", "--registry-host", "127.0.0.1",
                  "--registry-port", str(registry_port), "9"])
        assert exc.value.code == 1

    def test_register_bad_token_exits(self, registry_port, capsys):
        with pytest.raises(SystemExit):
            main(["registry", "register", "--registry-host", "127.0.0.1",
                  "--registry-port", str(registry_port), "--token", "bad", "h:1"])
        assert "unknown team token" in capsys.readouterr().err


def test_no_command_prints_help():
    with pytest.raises(SystemExit):
        main([])


class TestConfigCommand:
    def test_prints_merged_config_without_secret(self, tmp_path, capsys):
        path = tmp_path / "dojo.yaml"
        path.write_text("secret: do-not-print\nport: 9000\nteam_count: 5\n")
        main(["config", "--config", str(path), "--poll-timeout", "2.5"])
        out = capsys.readouterr().out
        assert "do-not-print" not in out
        data = yaml.safe_load(out)
        assert data["port"] == 9000
        assert data["team_count"] == 5
        assert data["poll_timeout"] == 2.5
        assert data["host"] == "0.0.0.0"
