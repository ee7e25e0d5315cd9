from __future__ import annotations

from pathlib import Path

import pytest

import signer_monitor.main as main_mod
from signer_monitor.config import load_config, parse_bool, split_signer_keys
from signer_monitor.errors import ConfigError
from signer_monitor.main import main


BASE_ENV = {
    "SIGNER_PUBLIC_KEYS": "SP_A, SP_B,,",
    "DISCORD_WEBHOOK_URL": "https://discord.com/api/webhooks/1/token",
    "CHECK_INTERVAL": "300",
    "API_URL": "https://api.example.com/",
    "REPEAT_CHECKS": "true",
}


def test_load_config_from_env() -> None:
    config = load_config(env=dict(BASE_ENV))
    assert config.signer_public_keys == ["SP_A", "SP_B"]
    assert config.check_interval == 300
    assert config.api_url == "https://api.example.com"
    assert config.repeat_checks is True
    assert config.rpc_url is None
    assert config.health_check_enabled is False
    assert config.check_concurrency == 10


def test_rpc_url_enables_health_check() -> None:
    config = load_config(env={**BASE_ENV, "RPC_URL": "http://node:20443/"})
    assert config.rpc_url == "http://node:20443"
    assert config.health_check_enabled is True


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("true", True), ("TRUE", True), ("1", True), ("yes", True), ("false", False), ("0", False), ("nope", False)],
)
def test_parse_bool(raw: str, expected: bool) -> None:
    assert parse_bool(raw) is expected


def test_split_signer_keys() -> None:
    assert split_signer_keys(" a ,b,, c ") == ["a", "b", "c"]
    assert split_signer_keys(["a", " b "]) == ["a", "b"]
    assert split_signer_keys(None) == []


def test_missing_required_values_are_listed() -> None:
    env = dict(BASE_ENV)
    del env["API_URL"]
    del env["DISCORD_WEBHOOK_URL"]
    with pytest.raises(ConfigError) as excinfo:
        load_config(env=env)
    msg = str(excinfo.value)
    assert "API_URL" in msg and "DISCORD_WEBHOOK_URL" in msg


def test_blank_signer_list_is_missing() -> None:
    with pytest.raises(ConfigError):
        load_config(env={**BASE_ENV, "SIGNER_PUBLIC_KEYS": " , "})


@pytest.mark.parametrize("interval", ["0", "-5", "often"])
def test_invalid_interval_is_config_error(interval: str) -> None:
    with pytest.raises(ConfigError) as excinfo:
        load_config(env={**BASE_ENV, "CHECK_INTERVAL": interval})
    assert "check_interval" in str(excinfo.value)


def test_yaml_file_is_overridden_by_env(tmp_path: Path) -> None:
    cfg = tmp_path / "monitor.yaml"
    cfg.write_text(
        "signer_public_keys: [SP_YAML]\n"
        "discord_webhook_url: https://discord.com/api/webhooks/2/yaml\n"
        "check_interval: 60\n"
        "api_url: https://yaml.example.com\n"
        "repeat_checks: false\n"
        "check_concurrency: 3\n",
        encoding="utf-8",
    )
    config = load_config(str(cfg), env={"CHECK_INTERVAL": "120"})
    assert config.signer_public_keys == ["SP_YAML"]
    assert config.check_interval == 120
    assert config.repeat_checks is False
    assert config.check_concurrency == 3


def test_config_path_from_env(tmp_path: Path) -> None:
    cfg = tmp_path / "monitor.yaml"
    cfg.write_text("api_url: https://yaml.example.com\n", encoding="utf-8")
    env = {k: v for k, v in BASE_ENV.items() if k != "API_URL"}
    env["SIGNER_MONITOR_CONFIG"] = str(cfg)
    assert load_config(env=env).api_url == "https://yaml.example.com"


def test_missing_config_file_is_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "absent.yaml"), env=dict(BASE_ENV))


def test_main_returns_1_when_config_missing(monkeypatch, tmp_path: Path) -> None:
    for name in list(BASE_ENV) + ["SIGNER_MONITOR_CONFIG", "RPC_URL", "LOG_LEVEL", "CHECK_CONCURRENCY"]:
        monkeypatch.delenv(name, raising=False)
    # Keep load_dotenv from picking up a developer's .env.
    monkeypatch.chdir(tmp_path)
    assert main(["--once"]) == 1


def test_main_once_runs_single_tick(monkeypatch, tmp_path: Path, chain_api, webhook, webhook_url: str) -> None:
    chain_api.route("/v2/pox", {"current_cycle": {"id": 5, "min_threshold_ustx": 100}})
    chain_api.route("/extended/v2/pox/cycles/5/signers/SP_A", {"stacked_amount": 99})
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SIGNER_MONITOR_CONFIG", raising=False)
    monkeypatch.delenv("RPC_URL", raising=False)
    monkeypatch.delenv("CHECK_CONCURRENCY", raising=False)
    monkeypatch.setenv("SIGNER_PUBLIC_KEYS", "SP_A")
    monkeypatch.setenv("DISCORD_WEBHOOK_URL", webhook_url)
    monkeypatch.setenv("CHECK_INTERVAL", "300")
    monkeypatch.setenv("API_URL", chain_api.base_url)
    monkeypatch.setenv("REPEAT_CHECKS", "true")

    assert main(["--once", "--log-level", "WARNING"]) == 0
    assert chain_api.gets == ["/v2/pox", "/extended/v2/pox/cycles/5/signers/SP_A"]
    assert len(webhook.messages) == 1
    assert "-1.00%" in webhook.messages[0]


@pytest.mark.parametrize("name", ["API_URL", "DISCORD_WEBHOOK_URL"])
def test_whitespace_only_url_is_config_error(name: str) -> None:
    with pytest.raises(ConfigError) as excinfo:
        load_config(env={**BASE_ENV, name: "   "})
    assert name.lower() in str(excinfo.value)


def test_whitespace_only_rpc_url_disables_health_check() -> None:
    config = load_config(env={**BASE_ENV, "RPC_URL": "  "})
    assert config.rpc_url is None
    assert config.health_check_enabled is False


class _RecordingLogger:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict]] = []

    def info(self, event: str, **kw) -> None:
        self.events.append((event, kw))

    warning = error = debug = info


@pytest.mark.asyncio
async def test_run_monitor_logs_tick_counts_at_shutdown(monkeypatch, chain_api, webhook_url: str) -> None:
    recorder = _RecordingLogger()

    async def _no_wait() -> None:
        return None

    monkeypatch.setattr(main_mod, "logger", recorder)
    monkeypatch.setattr(main_mod, "_wait_for_shutdown", _no_wait)
    config = load_config(env={**BASE_ENV, "API_URL": chain_api.base_url, "DISCORD_WEBHOOK_URL": webhook_url})

    assert await main_mod.run_monitor(config) == 0
    stopped = [kw for event, kw in recorder.events if event == "Scheduler stopped"]
    assert stopped == [{"ticks_completed": 0, "ticks_failed": 0}]
