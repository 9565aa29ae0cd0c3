from .settings import Settings, create_settings
from .validated_settings import SettingsModel, load_validated_settings

__all__ = ["Settings", "SettingsModel", "create_settings", "load_validated_settings"]
