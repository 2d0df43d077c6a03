"""pytest plugin - runs collected tests in the order of their load tags."""

from typing import Optional

import pytest
from pydantic import ValidationError

from .errors import LoadConfigurationError
from .scenarios import LoadTag, LoadTagRegistry, active_registry


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "load(order=0): run this test relative to other tagged tests (lower order first)",
    )


def item_tag(item, registry: Optional[LoadTagRegistry] = None) -> Optional[LoadTag]:
    """
    Load tag of a collected test item.

    The tag comes from either the ``load`` decorator or a ``load`` marker
    placed directly on the test function.

    Raises:
        LoadConfigurationError: If the test is tagged more than once
    """
    registry = registry if registry is not None else active_registry()
    func = getattr(item, "function", None)

    markers = [m for m in getattr(item, "own_markers", []) if m.name == "load"]
    decorated = registry.get(func) if func is not None else None

    if len(markers) + (decorated is not None) > 1:
        raise LoadConfigurationError(f"{item.nodeid} has more than one load tag")

    if decorated is not None:
        return decorated
    if markers:
        marker = markers[0]
        order = marker.kwargs.get("order", marker.args[0] if marker.args else 0)
        try:
            return LoadTag(order=order)
        except ValidationError as e:
            raise LoadConfigurationError(f"{item.nodeid} has an invalid load marker: {e}") from e
    return None


def order_items(items: list, registry: Optional[LoadTagRegistry] = None) -> list:
    """
    Stable-sort test items by load order among their siblings.

    Items are split into runs of consecutive items sharing a parent node
    (module or class) and only reordered within a run, so module- and
    class-scoped fixtures are set up once. Untagged tests count as 0.
    """
    orders = {}
    for item in items:
        tag = item_tag(item, registry)
        orders[id(item)] = tag.order if tag else 0

    def by_order(item):
        return orders[id(item)]

    ordered = []
    siblings = []
    for item in items:
        if siblings and getattr(siblings[-1], "parent", None) is not getattr(item, "parent", None):
            ordered.extend(sorted(siblings, key=by_order))
            siblings = []
        siblings.append(item)
    ordered.extend(sorted(siblings, key=by_order))
    return ordered


def pytest_collection_modifyitems(session, config, items):
    try:
        items[:] = order_items(items)
    except LoadConfigurationError as e:
        raise pytest.UsageError(str(e)) from e
