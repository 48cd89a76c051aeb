"""Configuration module — exports Settings and load_config.

No module-level Settings instance is created here; callers construct one
and pass it into the components they build (see src/main.py).
"""

from src.config.loader import load_config
from src.config.settings import Settings

__all__ = ["Settings", "load_config"]
