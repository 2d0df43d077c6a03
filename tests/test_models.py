"""Tests for data models."""

import pytest
from pydantic import ValidationError

from loadflow.models import (
    LoadExecutionPlan,
    LoadResult,
    LoadSettings,
    StartLoadMessage,
    StepResultMessage,
    TerminationMode,
)


class TestStepResultMessage:
    """Tests for the StepResultMessage model."""

    def test_create_success(self):
        """Test creating a successful step result."""
        message = StepResultMessage.create(True)

        assert message.is_success is True
        assert message.latency_ms == 0.0
        assert message.queue_time_ms == 0.0

    def test_create_failure(self):
        """Test creating a failed step result."""
        assert StepResultMessage.create(False).is_success is False

    def test_is_immutable(self):
        """Test that a step result cannot be changed after creation."""
        message = StepResultMessage.create(True)

        with pytest.raises(ValidationError):
            message.is_success = False

        assert message.is_success is True

    def test_value_equality(self):
        """Test that results with the same outcome are equal."""
        assert StepResultMessage.create(True) == StepResultMessage.create(True)
        assert StepResultMessage.create(True) != StepResultMessage.create(False)
        assert len({StepResultMessage.create(True), StepResultMessage.create(True)}) == 1

    def test_timings_are_part_of_the_value(self):
        """Test that latency distinguishes otherwise equal results."""
        fast = StepResultMessage(is_success=True, latency_ms=1.0)
        slow = StepResultMessage(is_success=True, latency_ms=250.0)
        assert fast != slow


class TestLoadSettings:
    """Tests for LoadSettings validation."""

    def test_defaults(self):
        settings = LoadSettings(concurrency=10, duration=30, interval=1)

        assert settings.graceful_stop_timeout is None
        assert settings.termination_mode == TerminationMode.DURATION

    @pytest.mark.parametrize("field,value", [
        ("concurrency", 0),
        ("duration", 0),
        ("interval", -1),
        ("graceful_stop_timeout", -0.5),
    ])
    def test_rejects_out_of_range_values(self, field, value):
        """Test that non-positive timings are rejected."""
        values = {"concurrency": 1, "duration": 1, "interval": 1}
        values[field] = value

        with pytest.raises(ValidationError):
            LoadSettings(**values)

    def test_termination_mode_from_string(self):
        settings = LoadSettings(
            concurrency=1, duration=1, interval=1, termination_mode="strict_duration"
        )
        assert settings.termination_mode == TerminationMode.STRICT_DURATION

    @pytest.mark.parametrize("duration,expected", [
        (10, 5.0),
        (100, 30.0),
        (1000, 60.0),
    ])
    def test_default_graceful_stop_timeout(self, duration, expected):
        """Test that the default graceful stop is 30% of the duration, within 5..60s."""
        settings = LoadSettings(concurrency=1, duration=duration, interval=1)
        assert settings.effective_graceful_stop_timeout == pytest.approx(expected)

    def test_explicit_graceful_stop_timeout(self):
        settings = LoadSettings(concurrency=1, duration=100, interval=1, graceful_stop_timeout=2)
        assert settings.effective_graceful_stop_timeout == 2


class TestLoadExecutionPlan:
    """Tests for the LoadExecutionPlan model."""

    def test_create_plan(self):
        async def action():
            return True

        settings = LoadSettings(concurrency=1, duration=1, interval=1)
        plan = LoadExecutionPlan(name="ping", settings=settings, action=action)

        assert plan.name == "ping"
        assert plan.action is action

    def test_rejects_blank_name(self):
        async def action():
            return True

        settings = LoadSettings(concurrency=1, duration=1, interval=1)
        with pytest.raises(ValidationError):
            LoadExecutionPlan(name="  ", settings=settings, action=action)


class TestLoadResult:
    """Tests for the LoadResult model."""

    def test_create_result(self):
        result = LoadResult(scenario_name="checkout")

        assert result.id is not None
        assert result.created_at is not None
        assert result.total == 0
        assert result.success_rate == 0.0
        assert result.is_success is False

    def test_success_rate(self):
        result = LoadResult(scenario_name="checkout", total=4, success=3, failure=1)

        assert result.success_rate == 0.75
        assert result.is_success is False

    def test_all_steps_succeeded(self):
        result = LoadResult(scenario_name="checkout", total=4, success=4)
        assert result.is_success is True


class TestMessages:
    """Tests for the companion messages."""

    def test_start_message_timestamp(self):
        message = StartLoadMessage()
        assert message.started_at.tzinfo is not None
