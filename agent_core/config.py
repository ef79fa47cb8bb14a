"""
Agent Core Configuration

Configuration model, YAML loader, logging setup and lifecycle wiring.

The library never reads configuration or configures logging on import.
Callers opt in through load_config() / configure_logging().

Example config (YAML):

    min_confidence: 0.6
    context_min_confidence: 0.5
    allowed_modules: [device, notification]
    max_context_events: 10
    log_level: INFO
"""

import logging
import os
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .audit_trail import AuditTrail
from .context_gate import ContextGate
from .errors import ConfigError
from .intent_generator import IntentGenerator
from .lifecycle import IntentLifecycle
from .planner import Planner
from .policy_engine import PolicyEngine
from .providers import LLMProvider

logger = logging.getLogger("agent_core_config")

# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------
CONFIG_ENV_VAR = "AGENT_CORE_CONFIG"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class AgentCoreConfig(BaseModel):
    """Settings for the three lifecycle gates."""
    min_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    context_min_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    allowed_modules: List[str] = Field(default_factory=list)
    max_context_events: int = Field(default=10, ge=1)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level


def read_yaml_file(file_path: Path) -> dict:
    """Read and parse a YAML file."""
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {file_path}")
    with open(file_path, 'r') as f:
        return yaml.safe_load(f) or {}


def load_config(path: Optional[Union[str, Path]] = None) -> AgentCoreConfig:
    """
    Load configuration.

    Source order: explicit path, then the file named by AGENT_CORE_CONFIG,
    then built-in defaults. Invalid files raise ConfigError.
    """
    if path is None:
        path = os.getenv(CONFIG_ENV_VAR)
    if not path:
        return AgentCoreConfig()

    config_path = Path(path)
    try:
        data = read_yaml_file(config_path)
    except FileNotFoundError as e:
        raise ConfigError(str(e)) from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping: {config_path}")

    try:
        config = AgentCoreConfig(**data)
    except ValidationError as e:
        raise ConfigError(
            f"Invalid configuration in {config_path}",
            errors=[err["msg"] for err in e.errors()],
        ) from e

    logger.info(f"Configuration loaded: {config_path}")
    return config


def configure_logging(level: Union[str, int] = "INFO") -> None:
    """
    Apply the log format and level to the root logger.

    basicConfig is a no-op once the root logger has handlers, so the level
    is also set directly.
    """
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger().setLevel(level)


def build_lifecycle(
    config: Optional[AgentCoreConfig] = None,
    llm: Optional[LLMProvider] = None,
    setup_logging: bool = False,
) -> IntentLifecycle:
    """
    Wire generator, policy engine, context gate and audit trail from config.

    With setup_logging=True the config's log_level is applied through
    configure_logging().
    """
    config = config or AgentCoreConfig()
    if setup_logging:
        configure_logging(config.log_level)
    gate = ContextGate(min_confidence=config.context_min_confidence)
    return IntentLifecycle(
        generator=IntentGenerator(min_confidence=config.min_confidence),
        policy=PolicyEngine(allowed_modules=config.allowed_modules),
        gate=gate,
        audit=AuditTrail(),
        llm=llm,
        planner=Planner(max_context_events=config.max_context_events, gate=gate),
    )
