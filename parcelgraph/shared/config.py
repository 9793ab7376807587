# Configuration loader with environment variable support
# YAML supplies gateway, event gate and store settings; the environment
# supplies deployment-specific values (primary gateway, credentials, Redis).

import logging
import os
from enum import Enum
from pathlib import Path
from typing import List, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError
from .models import ParcelBaseModel

logger = logging.getLogger(__name__)

DEFAULT_WALLET_ENV_PREFIX = "PARCELGRAPH_WALLET_ADDRESS"


class AppConfig(BaseModel):
    name: str = "parcelgraph"
    version: str = "0.1.0"


class GatewayEndpointConfig(BaseModel):
    """One retrieval gateway. `url` is the base that a CID is appended to."""

    url: str
    token: Optional[str] = None
    token_param: str = "token"

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"gateway url must be http(s), got {v!r}")
        return v

    @field_validator("token_param")
    @classmethod
    def validate_token_param(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("token_param cannot be empty")
        return v.strip()


class GatewayConfig(BaseModel):
    request_timeout_seconds: float = Field(default=30.0, gt=0)
    inter_pass_delay_seconds: float = Field(default=10.0, ge=0)
    metadata_max_passes: int = Field(default=3, gt=0)
    # Relationship/leaf objects are retried until they resolve; this bound only
    # exists so a permanently missing CID cannot pin a worker forever.
    content_max_passes: int = Field(default=100_000, gt=0)
    cache_max_size: int = Field(default=10_000, gt=0)
    endpoints: List[GatewayEndpointConfig] = Field(default_factory=list)


class EventGateConfig(BaseModel):
    case_sensitive: bool = False
    wallet_env_prefix: str = DEFAULT_WALLET_ENV_PREFIX
    allowed_submitters: List[str] = Field(default_factory=list)

    @field_validator("allowed_submitters")
    @classmethod
    def strip_submitters(cls, v: List[str]) -> List[str]:
        return [s.strip() for s in v if s and s.strip()]


class StoreBackend(str, Enum):
    MEMORY = "memory"
    REDIS = "redis"


class StoreConfig(BaseModel):
    backend: StoreBackend = StoreBackend.MEMORY
    key_prefix: str = "parcelgraph"


class Config(ParcelBaseModel):
    """Main configuration model"""

    app: AppConfig = Field(default_factory=AppConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    event_gate: EventGateConfig = Field(default_factory=EventGateConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)


class Settings(BaseSettings):
    """Environment-based settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    env: str = Field(default="development", alias="ENV")
    config_path: Optional[str] = Field(default=None, alias="CONFIG_PATH")

    # Primary gateway, tried before the configured fallbacks
    ipfs_gateway_url: Optional[str] = Field(default=None, alias="IPFS_GATEWAY_URL")
    ipfs_gateway_token: Optional[str] = Field(default=None, alias="IPFS_GATEWAY_TOKEN")
    ipfs_gateway_token_param: str = Field(
        default="token", alias="IPFS_GATEWAY_TOKEN_PARAM"
    )

    # Redis (store backend "redis")
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")


def collect_allowed_submitters(
    config: Config, environ: Optional[Mapping[str, str]] = None
) -> List[str]:
    """
    Gather the submitter allow-list from YAML and the environment.

    Every environment variable whose name starts with the configured wallet
    prefix contributes one address (e.g. PARCELGRAPH_WALLET_ADDRESS,
    PARCELGRAPH_WALLET_ADDRESS_2). Order is YAML first, then env vars sorted
    by name; duplicates are dropped.
    """
    environ = os.environ if environ is None else environ
    prefix = config.event_gate.wallet_env_prefix
    submitters: List[str] = list(config.event_gate.allowed_submitters)
    for name in sorted(environ):
        if name.startswith(prefix):
            value = environ[name].strip()
            if value:
                submitters.append(value)

    seen = set()
    unique: List[str] = []
    for address in submitters:
        key = address if config.event_gate.case_sensitive else address.lower()
        if key in seen:
            continue
        seen.add(key)
        unique.append(address)
    return unique


def load_config() -> tuple[Config, Settings]:
    """
    Load configuration from YAML file and environment variables.

    Returns:
        tuple: (Config, Settings) - YAML config and environment settings

    Raises:
        FileNotFoundError: If config file not found
        ConfigurationError: If startup validation fails
    """
    settings = Settings()

    if settings.config_path:
        config_path = Path(settings.config_path)
    else:
        config_path = (
            Path(__file__).parent.parent.parent / "config" / f"{settings.env}.yaml"
        )

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from: {config_path}")

    with open(config_path, "r") as f:
        config_dict = yaml.safe_load(f) or {}

    config = Config(**config_dict)
    validate_config_at_startup(config, settings)

    return config, settings


def validate_config_at_startup(
    config: Config,
    settings: Settings,
    environ: Optional[Mapping[str, str]] = None,
) -> None:
    """
    Fail fast on configuration the pipeline cannot run with.

    Raises:
        ConfigurationError: no submitters are allow-listed, or no gateway
            endpoint is available from either YAML or the environment.
    """
    submitters = collect_allowed_submitters(config, environ)
    if not submitters:
        raise ConfigurationError(
            "No allowed submitters configured. Set event_gate.allowed_submitters "
            f"or at least one {config.event_gate.wallet_env_prefix}* variable."
        )

    if not config.gateway.endpoints and not settings.ipfs_gateway_url:
        raise ConfigurationError(
            "No gateway endpoints configured. Set gateway.endpoints or IPFS_GATEWAY_URL."
        )

    logger.info(
        "Configuration validated: %d submitter(s), %d fallback gateway(s), "
        "primary gateway %s",
        len(submitters),
        len(config.gateway.endpoints),
        "set" if settings.ipfs_gateway_url else "unset",
    )
