"""Domain layer - settings model and settings file."""
from domain.models import ViewerSettings
from domain.settings_store import load_settings, save_settings

__all__ = [
    'ViewerSettings',
    'load_settings',
    'save_settings',
]
