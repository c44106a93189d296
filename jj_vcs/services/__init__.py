"""
Service layer for the jj VCS core.
"""

from .config_manager import ConfigurationManager

__all__ = [
    "ConfigurationManager",
]
