# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
FlashFusion Configuration - Single source of truth.
YAML is king. Env vars ONLY for secrets and the config location.
"""

import logging
import os
import yaml
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, List

from flashfusion.core.errors import ConfigurationError

_logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "/app/configs/flashfusion.yaml"


# =============================================================================
# CONFIGURATION DATACLASS
# =============================================================================

@dataclass(frozen=True)
class Config:
    """
    Immutable application configuration.
    All values from YAML. No hidden state.
    """

    # -- Server --
    service_host: str = "0.0.0.0"
    service_port: int = 8000

    # -- Paths --
    data_dir: str = "/app/volumes/flashfusion"

    # -- HTTP (api_call nodes) --
    http_timeout: float = 30.0
    allowed_hosts: List[str] = field(default_factory=list)

    # -- LLM (ai_task nodes) --
    llm_model: str = "claude-sonnet-4-5-20250929"
    llm_max_tokens: int = 4096
    llm_cache_ttl_seconds: float = 300.0

    # -- Engine --
    strict_expressions: bool = True
    strict_interpolation: bool = False

    # -- Logging --
    log_level: str = "INFO"
    log_format: str = "json"

    # -- Derived paths --
    @property
    def workflows_path(self) -> Path:
        return Path(self.data_dir) / "workflows"

    @property
    def executions_path(self) -> Path:
        return Path(self.data_dir) / "executions"

    def get_anthropic_api_key(self) -> Optional[str]:
        """Get Anthropic API key from environment"""
        return get_anthropic_api_key()


# =============================================================================
# SECRETS - The ONLY thing from environment variables
# =============================================================================

def get_anthropic_api_key() -> Optional[str]:
    """API keys cannot be in version control."""
    return os.getenv("ANTHROPIC_API_KEY")


# =============================================================================
# LOADER
# =============================================================================

def load_config(path: str = DEFAULT_CONFIG_PATH) -> Config:
    """
    Load configuration from YAML.
    Returns defaults if file doesn't exist.
    """
    if not Path(path).exists():
        _logger.info(f"Config not found at {path}, using defaults")
        return Config(log_level=os.getenv("LOG_LEVEL", "INFO"))

    with open(path) as f:
        try:
            y = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML: {e}", config_file=path)

    if not isinstance(y, dict):
        raise ConfigurationError("Top-level config must be a mapping", config_file=path)

    # Helper to safely navigate nested dicts
    def get(d: dict, *keys, default=None):
        for k in keys:
            if not isinstance(d, dict):
                return default
            d = d.get(k, {})
        return d if d != {} else default

    defaults = Config()
    strict_expressions = get(y, "engine", "strict_expressions")
    strict_interpolation = get(y, "engine", "strict_interpolation")

    return Config(
        # Server
        service_host=get(y, "server", "host") or defaults.service_host,
        service_port=int(get(y, "server", "port") or defaults.service_port),

        # Paths
        data_dir=get(y, "paths", "data_dir") or defaults.data_dir,

        # HTTP
        http_timeout=float(get(y, "http", "timeout") or defaults.http_timeout),
        allowed_hosts=[
            str(host).strip().lower() for host in (get(y, "http", "allowed_hosts") or []) if str(host).strip()
        ],

        # LLM
        llm_model=get(y, "llm", "model") or defaults.llm_model,
        llm_max_tokens=int(get(y, "llm", "max_tokens") or defaults.llm_max_tokens),
        llm_cache_ttl_seconds=float(
            get(y, "llm", "cache_ttl_seconds", default=defaults.llm_cache_ttl_seconds)
        ),

        # Engine
        strict_expressions=defaults.strict_expressions if strict_expressions is None else bool(strict_expressions),
        strict_interpolation=defaults.strict_interpolation if strict_interpolation is None else bool(strict_interpolation),

        # Logging
        log_level=os.getenv("LOG_LEVEL") or get(y, "logging", "level") or defaults.log_level,
        log_format=get(y, "logging", "format") or defaults.log_format,
    )


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create global config instance."""
    global _config
    if _config is None:
        config_path = os.getenv("FLASHFUSION_CONFIG_PATH", DEFAULT_CONFIG_PATH)
        _config = load_config(config_path)
    return _config


def reload_config() -> Config:
    """Force reload configuration."""
    global _config
    _config = None
    return get_config()
