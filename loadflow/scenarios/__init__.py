"""Load tags, scenario registry and discovery for LoadFlow."""

from .tags import LoadTag
from .registry import (
    LoadTagRegistry,
    default_registry,
    active_registry,
    use_registry,
    function_key,
)
from .decorators import load
from .loader import ScenarioLoader

__all__ = [
    "LoadTag",
    "LoadTagRegistry",
    "default_registry",
    "active_registry",
    "use_registry",
    "function_key",
    "load",
    "ScenarioLoader",
]
