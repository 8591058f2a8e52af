"""Unit tests for configuration."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from workflow_service.config import ServiceSettings


def test_settings_defaults(monkeypatch) -> None:
    for name in (
        "LOG_LEVEL",
        "WORKFLOW_STATE_PATH",
        "WORKFLOW_SERVICE_BUCKET_NAME",
        "WORKFLOW_SNAPSHOT_PREFIX",
        "OPENAI_MODEL",
        "OPENAI_TEMPERATURE",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = ServiceSettings()

    assert settings.log_level == "INFO"
    assert settings.state_path == Path("agent_state")
    assert settings.bucket_name == ""
    assert settings.snapshot_prefix == ""
    assert settings.openai_model == "gpt-4"
    assert settings.openai_temperature == 0.7


def test_settings_from_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("WORKFLOW_STATE_PATH", str(tmp_path))
    monkeypatch.setenv("WORKFLOW_SERVICE_BUCKET_NAME", "snapshots")
    monkeypatch.setenv("WORKFLOW_SNAPSHOT_PREFIX", "prod")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-4o-mini")
    monkeypatch.setenv("WORKFLOW_CORS_ORIGINS", "http://a.example, ,http://b.example")

    settings = ServiceSettings()

    assert settings.bucket_name == "snapshots"
    assert settings.snapshot_prefix == "prod"
    assert settings.openai_model == "gpt-4o-mini"
    assert settings.event_store_dir == tmp_path / "events"
    assert settings.snapshot_store_dir == tmp_path / "snapshots"
    assert settings.parsed_cors_origins() == ["http://a.example", "http://b.example"]


def test_settings_reject_out_of_range_temperature(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_TEMPERATURE", "3.5")

    with pytest.raises(ValidationError):
        ServiceSettings()
