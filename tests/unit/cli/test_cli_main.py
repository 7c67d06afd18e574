"""Tests for the credcore command-line interface."""

import json
import stat
from datetime import datetime
from pathlib import Path

import pytest
from fastapi import FastAPI
from httpx import ASGITransport

from credcore.cli.main import build_parser, run
from credcore.crypto.idkey import IdentityKey

TEST_TOKEN = "test-internal-token"


@pytest.fixture(autouse=True)
def _client_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("CRED_CLIENT_ENDPOINT", "http://test")
    monkeypatch.setenv("CRED_CLIENT_AUDIENCE", "http://localhost:8000")
    monkeypatch.setenv("CRED_CLIENT_TOKEN", TEST_TOKEN)
    monkeypatch.setenv("CRED_CLIENT_ID_KEY_FILE", str(tmp_path / "id.pem"))


@pytest.fixture
def key_file(tmp_path: Path) -> Path:
    return tmp_path / "id.pem"


async def _run(app: FastAPI, *argv: str) -> int:
    return await run(list(argv), transport=ASGITransport(app=app))


class TestKeygen:
    """credcore keygen."""

    async def test_writes_private_key(
        self, app: FastAPI, key_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert await _run(app, "keygen", "--kind", "ec") == 0
        printed = capsys.readouterr().out.strip()
        assert printed == IdentityKey.from_file(key_file).id
        assert stat.S_IMODE(key_file.stat().st_mode) == 0o600

    async def test_refuses_to_overwrite(
        self, app: FastAPI, key_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert await _run(app, "keygen", "--kind", "ec") == 0
        first = key_file.read_text()
        assert await _run(app, "keygen", "--kind", "ec") == 1
        assert "already exists" in capsys.readouterr().err
        assert key_file.read_text() == first

    async def test_force(self, app: FastAPI, key_file: Path) -> None:
        assert await _run(app, "keygen", "--kind", "ec") == 0
        first = key_file.read_text()
        assert await _run(app, "keygen", "--kind", "ec", "--force") == 0
        assert key_file.read_text() != first

    async def test_explicit_path(self, app: FastAPI, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "other.pem"
        assert await _run(app, "keygen", "--kind", "ec", "-i", str(path)) == 0
        assert path.exists()


class TestRegisteredClientsCommands:
    """credcore registered-clients ..."""

    async def test_lifecycle(
        self, app: FastAPI, key_file: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert await _run(app, "keygen", "--kind", "ec") == 0
        client_id = capsys.readouterr().out.strip()

        assert (
            await _run(
                app,
                "registered-clients",
                "create",
                "--client-name",
                "deploy bot",
                "--type",
                "Agent",
                "--redirect-uri",
                "https://bot.example.com/cb",
            )
            == 0
        )
        out = capsys.readouterr().out
        header, _, body = out.partition("\n")
        assert header == "# Registered API client:"
        created = json.loads(body)
        assert created["id"] == client_id
        assert created["type"] == "Agent"
        assert created["redirect_uris"] == ["https://bot.example.com/cb"]
        assert "allow-logins" not in created["metadata"]

        assert await _run(app, "rc", "ls") == 0
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 1
        assert lines[0].startswith(client_id)

        assert await _run(app, "clients", "current") == 0
        assert json.loads(capsys.readouterr().out)["id"] == client_id

        assert (
            await _run(app, "rc", "update", client_id, "--allow-logins", "all") == 0
        )
        assert capsys.readouterr().out.strip() == f"{client_id}: updated"

        assert await _run(app, "rc", "get", client_id) == 0
        fetched = json.loads(capsys.readouterr().out)
        assert fetched["metadata"] == {"allow-logins": "all"}
        assert fetched["client_name"] == "deploy bot"

        assert await _run(app, "rc", "rm", client_id) == 0
        assert capsys.readouterr().out.strip() == f"{client_id}: deleted"

        assert await _run(app, "rc", "get", client_id) == 1
        assert "error: not_found" in capsys.readouterr().err

    async def test_list_detail_pages(
        self, app: FastAPI, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        ids = []
        for i in range(3):
            path = tmp_path / f"k{i}.pem"
            assert await _run(app, "keygen", "--kind", "ec", "-i", str(path)) == 0
            ids.append(capsys.readouterr().out.strip())
            assert await _run(app, "rc", "create", "-i", str(path)) == 0
        capsys.readouterr()

        assert await _run(app, "rc", "list", "--per-page", "2") == 0
        lines = capsys.readouterr().out.splitlines()
        assert [line.split()[0] for line in lines] == ids
        for line in lines:
            client_id, created_at = line.split()
            assert line == f"{client_id:<48}   {created_at}"
            assert datetime.fromisoformat(created_at).tzinfo is not None

        assert await _run(app, "rc", "list", "-d", "--per-page", "2") == 0
        assert capsys.readouterr().out.count('"id"') == 3

    async def test_unknown_type_rejected_locally(
        self, app: FastAPI, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert await _run(app, "keygen", "--kind", "ec") == 0
        capsys.readouterr()
        assert await _run(app, "rc", "create", "--type", "UnknownType") == 1
        assert "error: invalid_type" in capsys.readouterr().err

        assert await _run(app, "rc", "list") == 0
        assert capsys.readouterr().out == ""

    async def test_duplicate_create(
        self, app: FastAPI, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert await _run(app, "keygen", "--kind", "ec") == 0
        assert await _run(app, "rc", "create") == 0
        capsys.readouterr()
        assert await _run(app, "rc", "create") == 1
        assert "error: duplicate_id" in capsys.readouterr().err

    async def test_missing_key_file(
        self, app: FastAPI, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert await _run(app, "rc", "create") == 1
        assert "error: " in capsys.readouterr().err

    async def test_delete_unknown(
        self, app: FastAPI, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert await _run(app, "rc", "delete", "missing") == 1
        assert "error: not_found" in capsys.readouterr().err

    async def test_wrong_admin_token(
        self,
        app: FastAPI,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setenv("CRED_CLIENT_TOKEN", "wrong")
        assert await _run(app, "rc", "list") == 1
        assert "error: unauthorized" in capsys.readouterr().err


class TestParser:
    """Argument parsing."""

    def test_allow_logins_choices(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["rc", "update", "x", "--allow-logins", "some"])

    def test_update_defaults_are_unset(self) -> None:
        args = build_parser().parse_args(["rc", "update", "x"])
        assert args.client_name is None
        assert args.allow_logins is None

    def test_create_defaults(self) -> None:
        args = build_parser().parse_args(["rc", "create"])
        assert args.type == "Server"
        assert args.client_name == ""
