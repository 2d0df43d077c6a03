"""Tests for YAML configuration."""

import textwrap
from pathlib import Path

import pytest

from loadflow.config import (
    LoadFlowConfig,
    LoadWorkerConfiguration,
    load_configuration,
    save_configuration,
)
from loadflow.errors import LoadConfigurationError
from loadflow.models import LoadSettings, TerminationMode, WorkerMode


class TestLoadConfiguration:
    """Tests for load_configuration."""

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_configuration(tmp_path / "missing.yaml")

        assert config.worker.mode == WorkerMode.HYBRID
        assert config.worker.max_workers is None
        assert config.scenarios == {}

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_configuration(path) == LoadFlowConfig()

    def test_full_file(self, tmp_path):
        path = tmp_path / "loadflow.yaml"
        path.write_text(textwrap.dedent("""
            worker:
              mode: task_based
              max_workers: 32
              queue_time_warning_ms: 500

            scenarios:
              checkout:
                concurrency: 20
                duration: 30
                interval: 1
                termination_mode: complete_current_interval
        """))

        config = load_configuration(path)

        assert config.worker.mode == WorkerMode.TASK_BASED
        assert config.worker.max_workers == 32
        assert config.worker.queue_time_warning_ms == 500
        checkout = config.scenarios["checkout"]
        assert checkout.concurrency == 20
        assert checkout.termination_mode == TerminationMode.COMPLETE_CURRENT_INTERVAL

    @pytest.mark.parametrize("content", [
        "worker: [unclosed",
        "- just\n- a list\n",
        "worker:\n  mode: threads\n",
        "scenarios:\n  checkout:\n    concurrency: 0\n    duration: 1\n    interval: 1\n",
        "worker:\n  worker_utilization_warning_threshold: 1.5\n",
    ])
    def test_invalid_file(self, tmp_path, content):
        path = tmp_path / "bad.yaml"
        path.write_text(content)

        with pytest.raises(LoadConfigurationError):
            load_configuration(path)

    def test_save_and_load(self, tmp_path):
        config = LoadFlowConfig(
            worker=LoadWorkerConfiguration(mode=WorkerMode.TASK_BASED, channel_capacity=100),
            scenarios={"search": LoadSettings(concurrency=5, duration=10, interval=0.5)},
        )
        path = tmp_path / "nested" / "loadflow.yaml"

        save_configuration(config, path)

        assert load_configuration(path) == config

    def test_bundled_config(self):
        config = load_configuration(Path(__file__).parent.parent / "config" / "loadflow.yaml")

        assert config.worker.mode == WorkerMode.HYBRID
        assert config.scenarios["flaky_call"].concurrency == 20
