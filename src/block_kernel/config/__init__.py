from .loader import load_engine_config, load_yaml_config
from .models import EngineConfig, LoggingConfig, SerializationConfig
from .validator import ConfigError, validate_engine_config

__all__ = [
    "ConfigError",
    "EngineConfig",
    "LoggingConfig",
    "SerializationConfig",
    "load_engine_config",
    "load_yaml_config",
    "validate_engine_config",
]
