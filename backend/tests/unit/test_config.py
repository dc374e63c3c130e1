# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Unit tests for YAML configuration loading
"""

from pathlib import Path

import pytest

from flashfusion.core import config as config_module
from flashfusion.core.config import Config, load_config, reload_config
from flashfusion.core.errors import ConfigurationError


def write_config(directory: Path, text: str) -> str:
    path = directory / "flashfusion.yaml"
    path.write_text(text)
    return str(path)


def test_missing_file_uses_defaults(temp_data_dir, monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)

    config = load_config(str(temp_data_dir / "absent.yaml"))

    assert config == Config()
    assert config.strict_expressions is True
    assert config.strict_interpolation is False


def test_full_config(temp_data_dir, monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    path = write_config(temp_data_dir, """
server:
  host: 127.0.0.1
  port: 9001
paths:
  data_dir: /tmp/ff
http:
  timeout: 5
  allowed_hosts: [API.example.com, "*.internal.test"]
llm:
  model: claude-test
  max_tokens: 512
  cache_ttl_seconds: 0
engine:
  strict_expressions: false
  strict_interpolation: true
logging:
  level: DEBUG
  format: text
""")

    config = load_config(path)

    assert config.service_host == "127.0.0.1"
    assert config.service_port == 9001
    assert config.workflows_path == Path("/tmp/ff/workflows")
    assert config.executions_path == Path("/tmp/ff/executions")
    assert config.http_timeout == 5.0
    assert config.allowed_hosts == ["api.example.com", "*.internal.test"]
    assert config.llm_model == "claude-test"
    assert config.llm_max_tokens == 512
    assert config.llm_cache_ttl_seconds == 0.0
    assert config.strict_expressions is False
    assert config.strict_interpolation is True
    assert config.log_level == "DEBUG"
    assert config.log_format == "text"


def test_log_level_env_override(temp_data_dir, monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    path = write_config(temp_data_dir, "logging:\n  level: DEBUG\n")

    assert load_config(path).log_level == "WARNING"


def test_invalid_yaml(temp_data_dir):
    path = write_config(temp_data_dir, "server: [unclosed\n")
    with pytest.raises(ConfigurationError, match="Invalid YAML"):
        load_config(path)


def test_non_mapping_yaml(temp_data_dir):
    path = write_config(temp_data_dir, "- just\n- a list\n")
    with pytest.raises(ConfigurationError, match="mapping"):
        load_config(path)


def test_reload_reads_config_path_env(temp_data_dir, monkeypatch):
    path = write_config(temp_data_dir, "llm:\n  model: from-env-path\n")
    monkeypatch.setenv("FLASHFUSION_CONFIG_PATH", path)
    monkeypatch.setattr(config_module, "_config", None)

    assert reload_config().llm_model == "from-env-path"


def test_api_key_from_env(monkeypatch):
    monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
    assert Config().get_anthropic_api_key() == "sk-test"
