"""Session-scoped workspace state for HazeLS."""
from .documents import DocumentStore
from .settings import HazeSettings, SettingsCache

__all__ = ['DocumentStore', 'HazeSettings', 'SettingsCache']
