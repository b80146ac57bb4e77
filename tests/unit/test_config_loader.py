from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from navia.core.config.loader import load_assistant_config
from navia.core.config.models import AssistantConfig
from navia.core.exceptions import ConfigError


def _write_config(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "assistant.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def _base_config(**overrides) -> dict:
    data = {
        "assistant_id": "navia-test",
        "agents": [
            {"domain": "finance", "name": "finance_agent", "guardrails": ["max 200 words"]},
            {"domain": "daily_task", "name": "daily_task_agent"},
        ],
    }
    data.update(overrides)
    return data


def test_loads_config_with_defaults(tmp_path: Path) -> None:
    path = _write_config(tmp_path, _base_config())
    config = load_assistant_config(path, project_root=tmp_path)

    assert isinstance(config, AssistantConfig)
    assert config.enabled_domains == ["finance", "daily_task"]
    assert config.default_domain == "daily_task"
    assert config.retrieval.semantic_top_k == 3
    assert config.get_agent("finance").guardrails == ["max 200 words"]
    assert config.get_agent("career") is None


def test_config_path_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write_config(tmp_path, _base_config(assistant_id="from-env"))
    monkeypatch.setenv("CONFIG_PATH", "assistant.json")
    assert load_assistant_config(project_root=tmp_path).assistant_id == "from-env"


def test_missing_file_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_assistant_config(tmp_path / "nope.json", project_root=tmp_path)


def test_invalid_json_raises(tmp_path: Path) -> None:
    path = tmp_path / "assistant.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError, match="Invalid JSON"):
        load_assistant_config(path, project_root=tmp_path)


def test_unknown_domain_rejected(tmp_path: Path) -> None:
    data = _base_config(agents=[{"domain": "travel", "name": "travel_agent"}])
    with pytest.raises(ConfigError, match="Invalid config schema"):
        load_assistant_config(_write_config(tmp_path, data), project_root=tmp_path)


def test_default_domain_must_be_enabled(tmp_path: Path) -> None:
    data = _base_config(agents=[{"domain": "finance", "name": "finance_agent"}])
    with pytest.raises(ConfigError, match="default_domain"):
        load_assistant_config(_write_config(tmp_path, data), project_root=tmp_path)


def test_env_file_does_not_override_existing_variables(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_dir = tmp_path / "config" / "env"
    env_dir.mkdir(parents=True)
    (env_dir / ".env").write_text("NAVIA_TEST_A=from-file\nNAVIA_TEST_B=from-file\n", encoding="utf-8")
    monkeypatch.setenv("NAVIA_TEST_A", "already-set")
    monkeypatch.delenv("NAVIA_TEST_B", raising=False)

    load_assistant_config(_write_config(tmp_path, _base_config(env_file_path="config/env/.env")), project_root=tmp_path)

    assert os.environ["NAVIA_TEST_A"] == "already-set"
    assert os.environ["NAVIA_TEST_B"] == "from-file"
    monkeypatch.delenv("NAVIA_TEST_B", raising=False)
