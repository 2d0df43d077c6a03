"""Ready-made step actions for LoadFlow."""

from .http import HttpAction

__all__ = ["HttpAction"]
