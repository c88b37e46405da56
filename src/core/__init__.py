"""
Core - settings and logging shared by every layer.
"""

from core.config import Settings, get_settings  # noqa: F401
from core.logging_setup import setup_logging  # noqa: F401
