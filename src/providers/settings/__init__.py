"""Settings source implementations.

StaticSettingsSource serves an in-memory EngineConfig built from
Settings; the host application (or the CLI) pushes changes with update().
"""

from src.providers.settings.static_settings_source import StaticSettingsSource

__all__ = ["StaticSettingsSource"]
