"""Worker configuration and loading it from YAML files."""

import logging
from pathlib import Path
from typing import Any, Optional
import yaml
from pydantic import BaseModel, Field, ValidationError

from .errors import LoadConfigurationError
from .models import LoadSettings, WorkerMode

logger = logging.getLogger(__name__)


class LoadWorkerConfiguration(BaseModel):
    """Tuning knobs for the worker that drives a load run."""

    mode: WorkerMode = WorkerMode.HYBRID
    """Which worker implementation to use."""

    max_workers: Optional[int] = Field(default=None, ge=1)
    """Size of the hybrid worker pool (computed from concurrency when unset)."""

    channel_capacity: Optional[int] = Field(default=None, ge=1)
    """Bound of the hybrid work channel (unbounded when unset)."""

    enable_detailed_metrics: bool = False
    """Log per-step results at debug level."""

    worker_utilization_warning_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    """Utilization above which the runner logs a warning."""

    queue_time_warning_ms: float = Field(default=1000.0, ge=0.0)
    """Queue time above which a step is logged as slow."""


class LoadFlowConfig(BaseModel):
    """Everything read from a LoadFlow YAML file."""

    worker: LoadWorkerConfiguration = Field(default_factory=LoadWorkerConfiguration)

    scenarios: dict[str, LoadSettings] = Field(default_factory=dict)
    """Per-scenario settings overriding the ones declared with ``@load``."""


def load_configuration(config_path: Path | str) -> LoadFlowConfig:
    """
    Load LoadFlow configuration from a YAML file.

    Expected format:

    ```yaml
    worker:
      mode: hybrid
      max_workers: 32
      queue_time_warning_ms: 500

    scenarios:
      checkout:
        concurrency: 20
        duration: 30
        interval: 1
        termination_mode: complete_current_interval
    ```

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        The parsed configuration (defaults if the file does not exist)

    Raises:
        LoadConfigurationError: If the file is not valid YAML or does not
            match the expected schema
    """
    config_path = Path(config_path)
    if not config_path.exists():
        logger.warning(f"Config file not found: {config_path}, using defaults")
        return LoadFlowConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise LoadConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if not data:
        return LoadFlowConfig()

    if not isinstance(data, dict):
        raise LoadConfigurationError(
            f"Config file {config_path} must contain a mapping, got {type(data).__name__}"
        )

    try:
        config = LoadFlowConfig.model_validate(data)
    except ValidationError as e:
        raise LoadConfigurationError(f"Invalid configuration in {config_path}: {e}") from e

    logger.info(
        f"Loaded configuration from {config_path}: mode={config.worker.mode.value}, "
        f"{len(config.scenarios)} scenario overrides"
    )
    return config


def save_configuration(config: LoadFlowConfig, config_path: Path | str) -> None:
    """Write configuration back to a YAML file."""
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data: dict[str, Any] = config.model_dump(mode="json", exclude_none=True)

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    logger.info(f"Saved configuration to {config_path}")
