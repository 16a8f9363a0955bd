"""
Argot Core Package.

This package contains the ambient pieces shared by the Argot packages:
logging setup and environment-driven settings.
"""

__version__ = "0.1.0"

from .logging_config import init_logging, get_logger

__all__ = ["init_logging", "get_logger"]
