"""Scenario loader - discovers and imports load scenario modules."""

from pathlib import Path
from typing import Any, Optional
import importlib.util
import sys
import logging

from ..errors import LoadConfigurationError
from .registry import LoadTagRegistry, default_registry, use_registry

logger = logging.getLogger(__name__)

MODULE_PREFIX = "loadflow_scenario_"


class ScenarioLoader:
    """
    Discovers and loads load scenarios from a directory.

    Scenario structure:
        scenarios/
        ├── http_probe.py         # Single-file scenario module
        └── checkout/
            └── scenario.py       # Package-style scenario module

    A scenario module declares its scenarios with the ``load`` decorator:

        @load(order=1, concurrency=10, duration=30, interval=1)
        async def browse_catalog() -> bool:
            ...

    Importing the module registers the tags in the registry. A file and a
    package directory with the same name (``foo.py`` and ``foo/scenario.py``)
    share a module name; the first one loaded wins and the other is skipped
    with a warning.
    """

    def __init__(
        self,
        scenarios_dir: Path | str,
        registry: Optional[LoadTagRegistry] = None,
    ):
        self.scenarios_dir = Path(scenarios_dir)
        self.registry = registry if registry is not None else default_registry
        self._loaded_modules: dict[str, Any] = {}
        self._module_paths: dict[str, Path] = {}

    def load_all(self) -> list[str]:
        """
        Load all scenario modules from the scenarios directory.

        Returns:
            Keys of the loaded scenarios, in execution order
        """
        if not self.scenarios_dir.exists():
            logger.warning(f"Scenarios directory does not exist: {self.scenarios_dir}")
            return []

        for path in sorted(self.scenarios_dir.iterdir()):
            if path.name.startswith("_") or path.name.startswith("."):
                continue

            if path.is_dir():
                module_path = path / "scenario.py"
                if not module_path.exists():
                    logger.warning(f"No scenario.py found in {path}")
                    continue
            elif path.suffix == ".py":
                module_path = path
            else:
                continue

            self.load_module(module_path)

        loaded = [k for k in self.registry.scenarios() if self._owns(k)]
        logger.info(f"Loaded {len(loaded)} scenarios: {loaded}")
        return loaded

    def load_module(self, module_path: Path) -> list[str]:
        """
        Import a single scenario module.

        Args:
            module_path: Path to the Python file

        Returns:
            Keys of the scenarios the module declared (empty if it failed
            to import)

        Raises:
            LoadConfigurationError: If the module declares a tag incorrectly,
                e.g. twice on the same function
        """
        module_path = Path(module_path).resolve()
        module_name = self._module_name(module_path)
        loaded_from = self._module_paths.get(module_name)
        if loaded_from is not None and loaded_from != module_path:
            logger.warning(
                f"Skipping {module_path}: module name {module_name} is already "
                f"taken by {loaded_from}"
            )
            return []
        if module_name in self._loaded_modules:
            self._forget(module_name)

        try:
            spec = importlib.util.spec_from_file_location(module_name, module_path)
            if spec is None or spec.loader is None:
                logger.error(f"Could not load spec for {module_path}")
                return []

            module = importlib.util.module_from_spec(spec)
            sys.modules[module_name] = module
            with use_registry(self.registry):
                spec.loader.exec_module(module)
        except LoadConfigurationError:
            self._forget(module_name)
            raise
        except Exception as e:
            logger.error(f"Error loading scenario module from {module_path}: {e}")
            self._forget(module_name)
            return []

        self._loaded_modules[module_name] = module
        self._module_paths[module_name] = module_path

        keys = [k for k in self.registry.keys(module_name) if self.registry.get(k).is_scenario]
        logger.info(f"Loaded scenario module {module_path.name}: {keys}")
        return keys

    def unload_module(self, name: str) -> bool:
        """
        Unload a scenario module and drop its tags.

        Args:
            name: Module file stem or package directory name

        Returns:
            True if the module was loaded
        """
        module_name = f"{MODULE_PREFIX}{name}"
        if module_name not in self._loaded_modules:
            return False

        self._forget(module_name)
        logger.info(f"Unloaded scenario module: {name}")
        return True

    def reload_module(self, name: str) -> list[str]:
        """Unload a scenario module and import it again."""
        module_path = self._module_paths.get(f"{MODULE_PREFIX}{name}")
        if module_path is None:
            module_path = self.scenarios_dir / f"{name}.py"
        if not module_path.exists():
            module_path = self.scenarios_dir / name / "scenario.py"
        if not module_path.exists():
            logger.error(f"Scenario module not found: {name}")
            return []

        self.unload_module(name)
        return self.load_module(module_path)

    def _module_name(self, module_path: Path) -> str:
        stem = module_path.parent.name if module_path.name == "scenario.py" else module_path.stem
        return f"{MODULE_PREFIX}{stem}"

    def _owns(self, key: str) -> bool:
        return key.split(":", 1)[0] in self._loaded_modules

    def _forget(self, module_name: str) -> None:
        self.registry.unregister_module(module_name)
        sys.modules.pop(module_name, None)
        self._loaded_modules.pop(module_name, None)
        self._module_paths.pop(module_name, None)
