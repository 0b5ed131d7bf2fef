"""Tests for watcher configuration."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from block_watcher.watcher.config import (
    DEFAULT_MAX_REORG_DEPTH,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_RETRY_DELAY,
    TaskErrorHandling,
    WatcherConfig,
)


class TestDefaults:
    """Tests for default configuration values."""

    def test_default_config(self) -> None:
        """An empty config starts from the chain head with default timings."""
        config = WatcherConfig()

        assert config.start_block is None
        assert config.poll_interval == DEFAULT_POLL_INTERVAL
        assert config.max_reorg_depth == DEFAULT_MAX_REORG_DEPTH
        assert config.retry_delay == DEFAULT_RETRY_DELAY
        assert config.task_error_handling is TaskErrorHandling.RETRY

    def test_start_block_zero_is_kept(self) -> None:
        """Height zero is a real start block, not a missing one."""
        assert WatcherConfig(start_block=0).start_block == 0


class TestValidation:
    """Tests for rejected configurations."""

    def test_zero_depth_rejected(self) -> None:
        """The window must hold at least one block."""
        with pytest.raises(ValidationError):
            WatcherConfig(max_reorg_depth=0)

    def test_negative_poll_interval_rejected(self) -> None:
        """Intervals cannot be negative."""
        with pytest.raises(ValidationError):
            WatcherConfig(poll_interval=-1.0)

    def test_negative_start_block_rejected(self) -> None:
        """Heights cannot be negative."""
        with pytest.raises(ValidationError):
            WatcherConfig(start_block=-1)

    def test_no_string_coercion(self) -> None:
        """Strict mode does not coerce strings to numbers."""
        with pytest.raises(ValidationError):
            WatcherConfig(start_block="5")  # type: ignore[arg-type]

    def test_unknown_field_rejected(self) -> None:
        """Typos in field names are errors."""
        with pytest.raises(ValidationError):
            WatcherConfig(poll_intervall=2.0)  # type: ignore[call-arg]

    def test_immutable(self) -> None:
        """A config cannot be modified after construction."""
        config = WatcherConfig()
        with pytest.raises(ValidationError):
            config.poll_interval = 2.0  # type: ignore[misc]


class TestSerialization:
    """Tests for loading configs from JSON."""

    def test_camel_case_json(self) -> None:
        """Configs load from camel-cased JSON."""
        config = WatcherConfig.model_validate_json(
            '{"startBlock": 7, "maxReorgDepth": 3, "taskErrorHandling": "skip"}'
        )

        assert config.start_block == 7
        assert config.max_reorg_depth == 3
        assert config.task_error_handling is TaskErrorHandling.SKIP

    def test_policy_from_plain_value(self) -> None:
        """The failure policy accepts its plain string value."""
        config = WatcherConfig(task_error_handling="skip")  # type: ignore[arg-type]

        assert config.task_error_handling is TaskErrorHandling.SKIP

    def test_camel_case_dict(self) -> None:
        """Configs load from camel-cased dicts, such as parsed env or config files."""
        config = WatcherConfig.model_validate(
            {"pollInterval": 2.0, "retryDelay": 0.5, "taskErrorHandling": "retry"}
        )

        assert config.poll_interval == 2.0
        assert config.retry_delay == 0.5
        assert config.task_error_handling is TaskErrorHandling.RETRY

    def test_unknown_policy_rejected(self) -> None:
        """Only the defined policies are accepted."""
        with pytest.raises(ValidationError):
            WatcherConfig.model_validate({"taskErrorHandling": "ignore"})
