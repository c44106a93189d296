"""
Configuration models for the jj VCS core.
"""

from dataclasses import dataclass
from typing import Optional

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@dataclass
class Configuration:
    """Settings shared by the process runner and the repository facade."""

    binary: str = "jj"
    timeout_ms: int = 30000
    log_limit: int = 20
    log_level: str = "INFO"
    log_dir: Optional[str] = None
    serialize_operations: bool = False

    def validate(self) -> bool:
        """Validate configuration values."""
        if not isinstance(self.binary, str) or not self.binary.strip():
            raise ValueError("binary cannot be empty")

        if isinstance(self.timeout_ms, bool) or not isinstance(self.timeout_ms, int):
            raise ValueError("timeout_ms must be an integer")

        if self.timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")

        if isinstance(self.log_limit, bool) or not isinstance(self.log_limit, int):
            raise ValueError("log_limit must be an integer")

        if self.log_limit <= 0:
            raise ValueError("log_limit must be positive")

        if not isinstance(self.log_level, str) or self.log_level.upper() not in VALID_LOG_LEVELS:
            raise ValueError(f"log_level must be one of: {VALID_LOG_LEVELS}")

        if self.log_dir is not None and not isinstance(self.log_dir, str):
            raise ValueError("log_dir must be a string or None")

        if not isinstance(self.serialize_operations, bool):
            raise ValueError("serialize_operations must be a boolean")

        return True
