from __future__ import annotations

import io
import types
from pathlib import Path

import pytest

import auto_diagnostic.cli as cli
from auto_diagnostic import __version__
from auto_diagnostic.config import load_run_config
from auto_diagnostic.util.errors import ExitCode
from auto_diagnostic.util.rich_progress import FetchProgress

CONFIG = """
[general]
profile = "test-profile"

[open_ai]
model = "gpt-4o"
max_token = 50
api_key = "sk-config"

[[rds]]
order_no = 2
db_identifier = "orders-db"

[[app_description]]
order_no = 1
description = "Orders API"
"""


class _FakeRdsClient:
    def describe_db_instances(self, **_kwargs):
        return {
            "DBInstances": [
                {
                    "DBInstanceIdentifier": "orders-db",
                    "DBInstanceClass": "db.t4g.medium",
                    "Engine": "postgresql",
                    "EngineVersion": "16.1",
                    "StorageType": "gp3",
                    "DBInstanceStatus": "available",
                    "MultiAZ": True,
                }
            ]
        }


def _chunk(content):
    return types.SimpleNamespace(choices=[types.SimpleNamespace(delta=types.SimpleNamespace(content=content))])


@pytest.fixture
def config_file(tmp_path, monkeypatch) -> Path:
    for name in ("AUTO_DIAG_PROFILE", "AUTO_DIAG_TIME_ZONE", "AUTO_DIAG_LOG_LEVEL", "AUTO_DIAG_JSON_LOGS"):
        monkeypatch.delenv(name, raising=False)
    path = tmp_path / "config.toml"
    path.write_text(CONFIG, encoding="utf-8")
    return path


def test_dry_run_prints_prompt_and_skips_diagnosis(config_file) -> None:
    run = load_run_config(argv=[str(config_file), "--dry-run", "--print-prompt-data"])
    out = io.StringIO()

    def _no_llm(_key):
        raise AssertionError("dry run must not call the model")

    code = cli.cmd_run(
        run,
        clients=types.SimpleNamespace(rds=_FakeRdsClient()),
        client_factory=_no_llm,
        out=out,
        progress=FetchProgress(2, enabled=False),
    )

    text = out.getvalue()
    assert code == 0
    assert f"- auto-diagnostic {__version__} -" in text
    assert "<data>\nInformation: [App Description]\nOrders API\n</data>\n\n" in text
    assert text.index("Orders API") < text.index("DB identifier: [`orders-db`]")
    assert "Multi AZ: [true]" in text


def test_run_streams_diagnosis(config_file, monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    run = load_run_config(argv=[str(config_file)])
    out = io.StringIO()
    seen = {}

    def _factory(api_key):
        seen["api_key"] = api_key

        def _create(**kwargs):
            seen["messages"] = kwargs["messages"]
            return iter([_chunk("# RDS\n"), _chunk("healthy")])

        return types.SimpleNamespace(chat=types.SimpleNamespace(completions=types.SimpleNamespace(create=_create)))

    code = cli.cmd_run(
        run,
        clients=types.SimpleNamespace(rds=_FakeRdsClient()),
        client_factory=_factory,
        out=out,
        progress=FetchProgress(2, enabled=False),
    )

    assert code == 0
    assert seen["api_key"] == "sk-config"
    assert seen["messages"][0]["content"].startswith("You are an AWS diagnostic assistant.")
    assert seen["messages"][1]["content"].startswith("<data>\nInformation: [App Description]")
    assert out.getvalue().endswith("# RDS\nhealthy\n")
    assert "<data>" not in out.getvalue()


def test_main_maps_config_errors_to_exit_code(tmp_path, capsys, monkeypatch) -> None:
    monkeypatch.setattr(cli, "setup_logging", lambda *_a, **_k: None)

    with pytest.raises(SystemExit) as exc_info:
        cli.main([str(tmp_path / "missing.toml")])

    assert exc_info.value.code == int(ExitCode.CONFIG_ERROR)
    assert "Config file not found" in capsys.readouterr().err


def test_main_maps_missing_api_key(config_file, capsys, monkeypatch) -> None:
    monkeypatch.setattr(cli, "setup_logging", lambda *_a, **_k: None)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    config_file.write_text(CONFIG.replace('api_key = "sk-config"\n', ""), encoding="utf-8")
    real_cmd_run = cli.cmd_run

    def _cmd_run(run):
        return real_cmd_run(
            run,
            clients=types.SimpleNamespace(rds=_FakeRdsClient()),
            out=io.StringIO(),
            progress=FetchProgress(2, enabled=False),
        )

    monkeypatch.setattr(cli, "cmd_run", _cmd_run)

    with pytest.raises(SystemExit) as exc_info:
        cli.main([str(config_file)])

    assert exc_info.value.code == int(ExitCode.CREDENTIAL_ERROR)
    assert "OPENAI_API_KEY variable is not set" in capsys.readouterr().err
