"""
Configuration loading for the EcoCash SDK.
"""

from ecocash.config.loader import Config, load_config
from ecocash.config.resolver import resolve_config
from ecocash.config.settings import CircuitBreakerSettings, ClientSettings, OfflineQueueSettings

__all__ = [
    "CircuitBreakerSettings",
    "ClientSettings",
    "Config",
    "OfflineQueueSettings",
    "load_config",
    "resolve_config",
]
