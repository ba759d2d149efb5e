"""
policyctl configuration loader.

Configuration is optional: every value has a default and command-line flags
take precedence over whatever the YAML file provides.
"""

from dataclasses import dataclass, field
from pathlib import Path

import yaml


@dataclass
class DatabaseConfig:
    path: str = "db.sqlite"
    synchronous: str = "NORMAL"
    pool_recycle: int = 3600  # seconds a pooled connection may sit idle
    echo: bool = False


@dataclass
class PolicyFileConfig:
    path: str = "policy.json"
    indent: int = 2


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class Config:
    """Static configuration loaded from a YAML file."""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    policy: PolicyFileConfig = field(default_factory=PolicyFileConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _section(data: dict, name: str) -> dict:
    """Get a config section, which must be a mapping if present."""
    section = data[name] or {}
    if not isinstance(section, dict):
        raise ValueError(f"Config section '{name}' must be a mapping")
    return section


def load_config(config_path: str | Path) -> Config:
    """Load configuration from a YAML file."""
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError("Config file must contain a mapping")

    config = Config()

    # Database
    if "database" in data:
        db_data = _section(data, "database")
        config.database = DatabaseConfig(
            path=db_data.get("path", "db.sqlite"),
            synchronous=db_data.get("synchronous", "NORMAL"),
            pool_recycle=db_data.get("pool_recycle", 3600),
            echo=db_data.get("echo", False),
        )

    # Policy file
    if "policy" in data:
        policy_data = _section(data, "policy")
        config.policy = PolicyFileConfig(
            path=policy_data.get("path", "policy.json"),
            indent=policy_data.get("indent", 2),
        )

    # Logging
    if "logging" in data:
        logging_data = _section(data, "logging")
        config.logging = LoggingConfig(
            level=logging_data.get("level", "WARNING"),
        )

    return config
