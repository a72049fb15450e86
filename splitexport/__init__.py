"""Split one version-control history into several git fast-import streams by path."""
from .events import PathEvent, Revision, Timestamp
from .layout import LayoutConfig
from .registry import Registry

__version__ = "0.1.0"

__all__ = ["LayoutConfig", "PathEvent", "Registry", "Revision", "Timestamp", "__version__"]
