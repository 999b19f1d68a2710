"""
Configuration for training, the oracle client and the recommendation server
"""

import json
import os
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional


class ConfigError(ValueError):
    """Invalid or unknown configuration value"""


@dataclass
class TrainingConfig:
    enabled: bool = False
    generations: int = 1000
    games_per_generation: int = 500
    learning_rate: float = 0.05
    model_file: str = "model/model.txt"
    game_variant: str = "amsterdams"
    threads: int = field(default_factory=lambda: max(1, os.cpu_count() or 1))
    hidden_size: int = 128
    seed: int = 42
    log_interval: int = 10
    checkpoint_interval: int = 50
    lr_decay: float = 0.999
    # JSONL event log; None disables it
    event_log: Optional[str] = None

    def validate(self) -> None:
        for name in ("generations", "games_per_generation", "threads", "hidden_size",
                     "log_interval", "checkpoint_interval"):
            if getattr(self, name) < 1:
                raise ConfigError(f"training.{name} must be >= 1, got {getattr(self, name)}")
        if self.learning_rate <= 0:
            raise ConfigError(f"training.learning_rate must be > 0, got {self.learning_rate}")
        if not 0 < self.lr_decay <= 1:
            raise ConfigError(f"training.lr_decay must be in (0, 1], got {self.lr_decay}")
        if not self.model_file:
            raise ConfigError("training.model_file must not be empty")


@dataclass
class OracleConfig:
    base_url: str = "https://api.klaversjassen.nl"
    calc_ai_card_path: str = "/api/v1/calcAiCard"
    timeout_ms: int = 5000

    def validate(self) -> None:
        if not self.base_url:
            raise ConfigError("oracle.base_url must not be empty")
        if self.timeout_ms <= 0:
            raise ConfigError(f"oracle.timeout_ms must be > 0, got {self.timeout_ms}")


@dataclass
class ServerConfig:
    host: str = "0.0.0.0"
    port: int = 8080
    model_file: str = "model/model.txt"
    default_top_k: int = 3

    def validate(self) -> None:
        if not 1 <= self.port <= 65535:
            raise ConfigError(f"server.port must be in 1..65535, got {self.port}")
        if self.default_top_k < 1:
            raise ConfigError(f"server.default_top_k must be >= 1, got {self.default_top_k}")


@dataclass
class AppConfig:
    training: TrainingConfig = field(default_factory=TrainingConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    def validate(self) -> None:
        self.training.validate()
        self.oracle.validate()
        self.server.validate()

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _build_section(cls, data: Dict[str, Any], section: str):
    if not isinstance(data, dict):
        raise ConfigError(f"Section '{section}' must be an object")
    known = {f.name: f for f in fields(cls)}
    unknown = set(data) - set(known)
    if unknown:
        raise ConfigError(f"Unknown keys in '{section}': {', '.join(sorted(unknown))}")
    kwargs = {}
    for key, value in data.items():
        default = getattr(cls(), key)
        # bool is an int subclass; only bool fields take true/false
        if value is not None and default is not None and isinstance(value, bool) != isinstance(default, bool):
            raise ConfigError(f"{section}.{key} must be of type {type(default).__name__}")
        if value is not None and default is not None and not isinstance(value, type(default)):
            # ints are acceptable where floats are expected
            if not (isinstance(default, float) and isinstance(value, int) and not isinstance(value, bool)):
                raise ConfigError(f"{section}.{key} must be of type {type(default).__name__}")
            value = float(value)
        kwargs[key] = value
    return cls(**kwargs)


def config_from_dict(data: Dict[str, Any]) -> AppConfig:
    sections = {"training": TrainingConfig, "oracle": OracleConfig, "server": ServerConfig}
    unknown = set(data) - set(sections)
    if unknown:
        raise ConfigError(f"Unknown config sections: {', '.join(sorted(unknown))}")
    config = AppConfig(**{
        name: _build_section(cls, data.get(name, {}), name) for name, cls in sections.items()
    })
    config.validate()
    return config


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load configuration from a JSON file; defaults when ``path`` is None"""
    if path is None:
        config = AppConfig()
        config.validate()
        return config
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {path}") from None
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid JSON: {e}") from None
    if not isinstance(data, dict):
        raise ConfigError("Config root must be an object")
    return config_from_dict(data)
