"""Load tag registry - central record of which functions carry a load tag."""

import inspect
from contextlib import contextmanager
from contextvars import ContextVar
import threading
from typing import Any, Callable, Iterable, Iterator, Optional, TypeVar
import logging

from ..errors import DuplicateLoadTagError, LoadConfigurationError
from .tags import LoadTag

logger = logging.getLogger(__name__)

T = TypeVar("T")


def function_key(func: Callable[..., Any]) -> str:
    """Readable identity of a function: ``module:qualname``."""
    func = getattr(func, "__func__", func)
    return f"{func.__module__}:{func.__qualname__}"


def _short_name(key: str) -> str:
    """Bare function name of a key (``pkg.mod:Cls.method#2`` -> ``method``)."""
    return key.rsplit(":", 1)[1].split("#", 1)[0].split(".")[-1]


class LoadTagRegistry:
    """
    Maps functions to their load tag.

    Tags belong to function objects. A function can carry at most one tag;
    tagging the same function again is a configuration error and leaves it
    untagged, so a bad declaration never half-applies. Distinct functions
    sharing a qualname (closures built by a factory, for instance) are
    tagged independently and get keys ``module:qualname``,
    ``module:qualname#2`` and so on.

    Registration normally happens once, at import time, through the
    ``load`` decorator. Reads never lock.
    """

    def __init__(self):
        self._tags: dict[str, LoadTag] = {}
        self._functions: dict[str, Callable[..., Any]] = {}
        self._keys: dict[Callable[..., Any], str] = {}
        self._lock = threading.Lock()

    def register(self, func: Callable[..., Any], tag: LoadTag) -> str:
        """
        Attach a tag to a function.

        Args:
            func: The function (or method, at class-body time) being tagged
            tag: The tag to attach

        Returns:
            The key the function is registered under

        Raises:
            LoadConfigurationError: If ``func`` is not a function
            DuplicateLoadTagError: If ``func`` already carries a tag
        """
        target = getattr(func, "__func__", func)
        if not inspect.isfunction(target):
            raise LoadConfigurationError(
                f"Load tags can only be attached to functions, not {type(func).__name__}"
            )

        with self._lock:
            existing = self._keys.pop(target, None)
            if existing is not None:
                self._tags.pop(existing, None)
                self._functions.pop(existing, None)
                raise DuplicateLoadTagError(f"'{existing}' already has a load tag")

            key = base = function_key(target)
            suffix = 2
            while key in self._tags:
                key = f"{base}#{suffix}"
                suffix += 1

            self._tags[key] = tag
            self._functions[key] = target
            self._keys[target] = key

        logger.debug(f"Registered load tag on {key} (order={tag.order})")
        return key

    def key_of(self, func: Callable[..., Any] | str) -> Optional[str]:
        """Registry key of a tagged function (or the key itself), None if untagged."""
        if isinstance(func, str):
            return func if func in self._tags else None
        return self._keys.get(getattr(func, "__func__", func))

    def unregister(self, func: Callable[..., Any] | str) -> Optional[LoadTag]:
        """Remove a function's tag, returning it (or None if untagged)."""
        with self._lock:
            key = self.key_of(func)
            if key is None:
                return None
            self._keys.pop(self._functions.pop(key), None)
            return self._tags.pop(key)

    def unregister_module(self, module_name: str) -> list[str]:
        """Remove every tag on functions defined in ``module_name``."""
        prefix = f"{module_name}:"
        with self._lock:
            keys = [k for k in self._tags if k.startswith(prefix)]
            for key in keys:
                self._tags.pop(key)
                self._keys.pop(self._functions.pop(key), None)
        return keys

    def get(self, func: Callable[..., Any] | str) -> Optional[LoadTag]:
        key = self.key_of(func)
        return self._tags.get(key) if key is not None else None

    def get_function(self, key: str) -> Optional[Callable[..., Any]]:
        return self._functions.get(key)

    def has(self, func: Callable[..., Any] | str) -> bool:
        return self.get(func) is not None

    def order_of(self, func: Optional[Callable[..., Any] | str]) -> int:
        """Order hint of a function; untagged functions count as 0."""
        if func is None:
            return 0
        tag = self.get(func)
        return tag.order if tag else 0

    def keys(self, module_name: Optional[str] = None) -> list[str]:
        """Keys of tagged functions, in execution order."""
        keys = list(self._tags)
        if module_name is not None:
            keys = [k for k in keys if k.startswith(f"{module_name}:")]
        return self.order(keys)

    def scenarios(self) -> list[str]:
        """Keys of tagged functions that carry load settings, in execution order."""
        return [k for k in self.keys() if self._tags[k].is_scenario]

    def find(self, name: str) -> Optional[str]:
        """
        Resolve a key or a bare function name to a key.

        Raises:
            LoadConfigurationError: If a bare name matches more than one
                tagged function
        """
        if name in self._tags:
            return name
        matches = [key for key in self.keys() if _short_name(key) == name]
        if len(matches) > 1:
            raise LoadConfigurationError(
                f"'{name}' is ambiguous, it matches {matches}; use the full key"
            )
        return matches[0] if matches else None

    def order(
        self,
        items: Iterable[T],
        key: Optional[Callable[[T], Callable[..., Any] | str]] = None,
    ) -> list[T]:
        """
        Sort items by the order of their tag.

        The sort is stable, so items with equal order keep their input
        order.

        Args:
            items: Functions, keys, or arbitrary objects
            key: Maps an item to its function or key (identity by default)
        """
        if key is None:
            return sorted(items, key=self.order_of)
        return sorted(items, key=lambda item: self.order_of(key(item)))

    def clear(self) -> None:
        """Remove all tags."""
        with self._lock:
            self._tags.clear()
            self._functions.clear()
            self._keys.clear()

    def __len__(self) -> int:
        return len(self._tags)

    def __contains__(self, func: Callable[..., Any] | str) -> bool:
        return self.has(func)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())


default_registry = LoadTagRegistry()
"""Registry used by ``load`` when no registry is passed."""

_active_registry: ContextVar[Optional[LoadTagRegistry]] = ContextVar(
    "loadflow_active_registry", default=None
)


def active_registry() -> LoadTagRegistry:
    """Registry that ``load`` records into when none is passed explicitly."""
    registry = _active_registry.get()
    return registry if registry is not None else default_registry


@contextmanager
def use_registry(registry: LoadTagRegistry) -> Iterator[LoadTagRegistry]:
    """Route ``load`` registrations to ``registry`` for the duration of the block."""
    token = _active_registry.set(registry)
    try:
        yield registry
    finally:
        _active_registry.reset(token)
