"""Security helpers for relmap."""

from .dsns import DSNConfig, parse_dsn
from .redaction import redact_fields, redact_params

__all__ = ["DSNConfig", "parse_dsn", "redact_fields", "redact_params"]
