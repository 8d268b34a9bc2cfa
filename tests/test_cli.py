import json
from unittest.mock import MagicMock

import pytest
import redis
from typer.testing import CliRunner

from daipk import cli as cli_module
from daipk.cli import cli
from daipk.storage.pool import RedisClientPool

runner = CliRunner()


def parse(output: str) -> dict:
    lines = [line for line in output.splitlines() if line.startswith("{")]
    return json.loads(lines[-1])


@pytest.fixture
def cli_pool(pool, monkeypatch):
    monkeypatch.setattr(cli_module, "get_pool", lambda uri=None: pool)
    return pool


def test_cli_base():
    assert runner.invoke(cli, "--help").exit_code == 0
    assert runner.invoke(cli, "--settings").exit_code == 0
    res = runner.invoke(cli, "--version")
    assert res.exit_code == 0
    assert "0.1.0" in res.output


def test_cli_insert_fetch(cli_pool):
    res = runner.invoke(
        cli, ["insert", "-n", "users", "--capacity", "u8"], input="alice\nbob\n\n"
    )
    assert res.exit_code == 0
    data = parse(res.stdout)
    assert data == {"bound": {"alice": "users-0", "bob": "users-1"}, "overflow": []}

    res = runner.invoke(cli, ["fetch", "-n", "users"], input="alice\ncarol\n")
    assert res.exit_code == 0
    data = parse(res.stdout)
    assert data == {"found": {"alice": "users-0"}, "not_found": ["carol"]}


def test_cli_sharded(cli_pool, tmp_path):
    keys = tmp_path / "keys.txt"
    keys.write_text("\n".join(f"user:{i}" for i in range(300)))
    res = runner.invoke(
        cli,
        ["insert", "-n", "users", "--capacity", "u8", "--sharded", "-i", str(keys)],
    )
    assert res.exit_code == 0
    data = parse(res.stdout)
    assert len(data["bound"]) == 300
    assert data["bound"]["user:299"] == "users_1-43"

    res = runner.invoke(
        cli, ["fetch", "-n", "users", "--shards", "2", "-i", str(keys)]
    )
    assert res.exit_code == 0
    data = parse(res.stdout)
    assert len(data["found"]) == 300
    assert data["not_found"] == []

    # shards are discovered from the store
    res = runner.invoke(
        cli, ["fetch", "-n", "users", "--sharded"], input="user:0\nuser:299\n"
    )
    assert res.exit_code == 0
    data = parse(res.stdout)
    assert data["found"] == {"user:0": "users_0-0", "user:299": "users_1-43"}


def test_cli_error(monkeypatch):
    client = MagicMock()
    client.execute_command.side_effect = redis.ConnectionError("Connection refused")
    pool = RedisClientPool(client=client)
    monkeypatch.setattr(cli_module, "get_pool", lambda uri=None: pool)
    res = runner.invoke(cli, ["insert", "-n", "users"], input="alice\n")
    assert res.exit_code == 1

    res = runner.invoke(cli, ["insert", "-n", ""], input="alice\n")
    assert res.exit_code == 1
    res = runner.invoke(cli, ["fetch", "-n", "", "--sharded"], input="alice\n")
    assert res.exit_code == 1
