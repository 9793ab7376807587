# Shared utilities package
from .config import Config, Settings, load_config, validate_config_at_startup
from .errors import (
    ConfigurationError,
    GatewayExhaustedError,
    MalformedHashError,
    MalformedInputError,
    ParcelGraphError,
    ShapeMismatchError,
    TransientFetchError,
)

__all__ = [
    "Config",
    "Settings",
    "load_config",
    "validate_config_at_startup",
    "ConfigurationError",
    "GatewayExhaustedError",
    "MalformedHashError",
    "MalformedInputError",
    "ParcelGraphError",
    "ShapeMismatchError",
    "TransientFetchError",
]
