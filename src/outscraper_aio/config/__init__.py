from .config import (
    DEFAULT_API_URL,
    ApiConfig,
    Config,
    MonitoringConfig,
    PollingConfig,
    attempt_budget,
    find_config_file,
    load_config,
)

__all__ = [
    "DEFAULT_API_URL",
    "ApiConfig",
    "Config",
    "MonitoringConfig",
    "PollingConfig",
    "attempt_budget",
    "find_config_file",
    "load_config",
]
