# Observability package
from .logging import (
    add_correlation_id,
    get_logger,
    new_correlation_id,
    setup_logging,
)

__all__ = [
    "add_correlation_id",
    "get_logger",
    "new_correlation_id",
    "setup_logging",
]
