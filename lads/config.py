"""
Configuration management for LADS

Provides environment-based configuration with sensible defaults, optionally
loaded from a YAML file (~/.lads/config.yaml).
"""

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

DEFAULT_CONFIG_PATH = Path.home() / '.lads' / 'config.yaml'


def _optional_float(value: Optional[str], default: Optional[float]) -> Optional[float]:
    if value is None:
        return default
    if value.strip().lower() in ('', 'none', 'off'):
        return None
    return float(value)


@dataclass
class LadsConfig:
    """Configuration for the node pool and its front ends"""

    # Engine timing (seconds)
    tick_interval: float = 1.0
    dispatch_interval: Optional[float] = None
    drain_timeout: Optional[float] = None

    # Node identity
    node_id_length: int = 4

    # Logging
    log_level: str = "WARNING"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Natural-language translator
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    ai_timeout: float = 30.0

    # Shell commands run at start-up
    seed_commands: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Load configuration from environment variables"""

        # Timing
        self.tick_interval = float(os.getenv('LADS_TICK_INTERVAL', str(self.tick_interval)))
        self.dispatch_interval = _optional_float(os.getenv('LADS_DISPATCH_INTERVAL'), self.dispatch_interval)
        self.drain_timeout = _optional_float(os.getenv('LADS_DRAIN_TIMEOUT'), self.drain_timeout)

        # Logging
        self.log_level = os.getenv('LADS_LOG_LEVEL', self.log_level)

        # Gemini
        if not self.gemini_api_key:
            self.gemini_api_key = os.getenv('GEMINI_API_KEY')
        self.gemini_model = os.getenv('LADS_GEMINI_MODEL', self.gemini_model)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return {
            'tick_interval': self.tick_interval,
            'dispatch_interval': self.dispatch_interval,
            'drain_timeout': self.drain_timeout,
            'node_id_length': self.node_id_length,
            'log_level': self.log_level,
            'gemini_model': self.gemini_model,
            'gemini_base_url': self.gemini_base_url,
            'ai_timeout': self.ai_timeout,
            'seed_commands': list(self.seed_commands),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LadsConfig':
        """Create configuration from dictionary, ignoring unknown keys"""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logging.getLogger(__name__).warning(f"Ignoring unknown config keys: {', '.join(sorted(unknown))}")
        return cls(**{k: v for k, v in data.items() if k in known})

    def validate(self) -> bool:
        """Validate configuration"""
        if self.tick_interval <= 0:
            raise ValueError("tick_interval must be positive")

        if self.dispatch_interval is not None and self.dispatch_interval <= 0:
            raise ValueError("dispatch_interval must be positive")

        if self.drain_timeout is not None and self.drain_timeout <= 0:
            raise ValueError("drain_timeout must be positive")

        if self.node_id_length <= 0:
            raise ValueError("node_id_length must be positive")

        if self.ai_timeout <= 0:
            raise ValueError("ai_timeout must be positive")

        if not hasattr(logging, self.log_level.upper()):
            raise ValueError(f"Unknown log_level: {self.log_level}")

        return True


def load_config(path: Optional[Union[str, Path]] = None) -> LadsConfig:
    """
    Load configuration from a YAML file.

    Without an explicit path, ~/.lads/config.yaml is used when it exists and
    defaults otherwise. Environment variables override file values.
    """
    config_file = Path(path) if path else DEFAULT_CONFIG_PATH
    data: Dict[str, Any] = {}
    if config_file.exists():
        with open(config_file, 'r') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {config_file} must contain a mapping")
    elif path:
        raise FileNotFoundError(f"Config file not found: {config_file}")

    config = LadsConfig.from_dict(data)
    config.validate()
    return config


def setup_logging(config: LadsConfig):
    """Setup logging based on configuration"""
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper()),
        format=config.log_format
    )

    # Quiet chatty HTTP client logs
    logging.getLogger('aiohttp').setLevel(logging.WARNING)

    if config.log_level.upper() == 'DEBUG':
        logging.getLogger('lads').setLevel(logging.DEBUG)
