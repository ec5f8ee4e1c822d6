from src.core.config.loader import load_app_config
from src.core.config.models import AppConfig, ModelsConfig, PipelineConfig, RetrievalConfig, SessionStoreConfig, ThresholdsConfig
from src.core.config.env import get_env_vars, resolve_api_key

__all__ = [
    "load_app_config",
    "AppConfig",
    "ModelsConfig",
    "PipelineConfig",
    "RetrievalConfig",
    "SessionStoreConfig",
    "ThresholdsConfig",
    "get_env_vars",
    "resolve_api_key",
]
