"""
Typed client settings built from a loaded Config.

Example ecocash.yaml::

    api_key: ${ECOCASH_API_KEY}
    bearer_token: ${ECOCASH_BEARER_TOKEN}
    environment: sandbox
    request_timeout: 30
    features:
      offline_queue: true
      analytics: true
    retry:
      policy: aggressive        # default | aggressive | conservative | none
      max_attempts: 4           # overrides the preset
    circuit_breaker:
      failure_threshold: 5
      open_duration: 60
      half_open_timeout: 30
    offline_queue:
      max_attempts: 3
      interval: 5
    logging:
      level: INFO
      file: logs/ecocash-{env}.log
"""

from dataclasses import dataclass, field, replace
from typing import Any

from ecocash.config.loader import Config
from ecocash.config.resolver import has_unresolved_variable
from ecocash.core.retry.policy import (
    AGGRESSIVE_RETRY_POLICY,
    CONSERVATIVE_RETRY_POLICY,
    DEFAULT_RETRY_POLICY,
    NO_RETRY_POLICY,
    RetryPolicy,
)
from ecocash.environment import DEFAULT_BASE_URL, Environment
from ecocash.exceptions import ConfigurationError
from ecocash.transport import DEFAULT_REQUEST_TIMEOUT

RETRY_PRESETS = {
    "default": DEFAULT_RETRY_POLICY,
    "aggressive": AGGRESSIVE_RETRY_POLICY,
    "conservative": CONSERVATIVE_RETRY_POLICY,
    "none": NO_RETRY_POLICY,
}

_RETRY_OVERRIDES = ("max_attempts", "initial_delay", "max_delay", "backoff_multiplier", "exponential", "jitter")


@dataclass(frozen=True)
class CircuitBreakerSettings:
    failure_threshold: int = 5
    open_duration: float = 60.0
    half_open_timeout: float = 30.0


@dataclass(frozen=True)
class OfflineQueueSettings:
    max_attempts: int = 3
    interval: float = 5.0
    backoff_base: float = 1.0


@dataclass(frozen=True)
class ClientSettings:
    """Everything EcocashClient needs besides its collaborators."""

    api_key: str
    bearer_token: str | None = None
    environment: Environment = Environment.SANDBOX
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    client_name: str = "Ecocash SDK"
    enable_validation: bool = True
    enable_retries: bool = True
    enable_offline_queue: bool = True
    enable_logging: bool = True
    enable_analytics: bool = True
    retry_policy: RetryPolicy = DEFAULT_RETRY_POLICY
    circuit_breaker: CircuitBreakerSettings = field(default_factory=CircuitBreakerSettings)
    offline_queue: OfflineQueueSettings = field(default_factory=OfflineQueueSettings)

    @classmethod
    def from_config(cls, config: Config) -> "ClientSettings":
        """
        Build settings from a loaded configuration.

        Raises:
            ConfigurationError: Missing credentials, unresolved ``${VAR}``
                references, or invalid values
        """
        api_key = config.get("api_key")
        if not api_key or has_unresolved_variable(api_key):
            raise ConfigurationError(
                "api_key is not set; define it in ecocash.yaml or via the referenced environment variable",
                details={"value": api_key},
            )

        bearer_token = config.get("bearer_token")
        if has_unresolved_variable(bearer_token):
            bearer_token = None

        try:
            environment = Environment(config.get("environment", Environment.SANDBOX.value))
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown environment '{config.get('environment')}'; expected one of: "
                f"{', '.join(member.value for member in Environment)}"
            ) from e

        features = config.section("features")
        try:
            return cls(
                api_key=str(api_key),
                bearer_token=str(bearer_token) if bearer_token else None,
                environment=environment,
                base_url=config.get("base_url", DEFAULT_BASE_URL),
                request_timeout=float(config.get("request_timeout", DEFAULT_REQUEST_TIMEOUT)),
                client_name=config.get("client_name", "Ecocash SDK"),
                enable_validation=bool(features.get("validation", True)),
                enable_retries=bool(features.get("retries", True)),
                enable_offline_queue=bool(features.get("offline_queue", True)),
                enable_logging=bool(features.get("logging", True)),
                enable_analytics=bool(features.get("analytics", True)),
                retry_policy=_build_retry_policy(config.section("retry")),
                circuit_breaker=CircuitBreakerSettings(**config.section("circuit_breaker")),
                offline_queue=OfflineQueueSettings(**config.section("offline_queue")),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid client configuration: {e}") from e


def _build_retry_policy(section: dict[str, Any]) -> RetryPolicy:
    preset_name = section.get("policy", "default")
    if preset_name not in RETRY_PRESETS:
        raise ValueError(f"unknown retry policy '{preset_name}', expected one of: {', '.join(RETRY_PRESETS)}")

    overrides = {key: section[key] for key in _RETRY_OVERRIDES if key in section}
    if "retryable_status_codes" in section:
        overrides["retryable_status_codes"] = frozenset(int(code) for code in section["retryable_status_codes"])

    policy = RETRY_PRESETS[preset_name]
    return replace(policy, **overrides) if overrides else policy
