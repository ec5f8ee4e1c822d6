from src.core.config.loader import load_app_config
from src.core.config.models import AppConfig, ModelsConfig, PipelineConfig, RetrievalConfig, SessionStoreConfig, ThresholdsConfig
from src.core.exceptions import (
    ConfigError,
    PersistenceError,
    RetrievalError,
    RunCancelled,
    SchemaValidationError,
    UnmappedStepError,
)

__all__ = [
    "load_app_config",
    "AppConfig",
    "ModelsConfig",
    "PipelineConfig",
    "RetrievalConfig",
    "SessionStoreConfig",
    "ThresholdsConfig",
    "ConfigError",
    "PersistenceError",
    "RetrievalError",
    "RunCancelled",
    "SchemaValidationError",
    "UnmappedStepError",
]
