"""Tests for the configuration system."""

import os
from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

from ops_plans.config import Config, _apply_env_overrides, _apply_toml, load_config


def test_config_defaults():
	"""Config should have sensible defaults."""
	config = Config()
	assert config.config_dir.is_absolute()
	assert config.data_dir.is_absolute()
	assert config.plans_db_path == config.data_dir / "plans.db"
	assert config.log_dir == config.data_dir / "logs"
	assert config.execution_horizon_minutes == 120
	assert config.shift_sequence == ["Day", "Swing", "Night"]


def test_config_env_overrides():
	"""Environment variables should override defaults."""
	config = Config()
	with patch.dict(os.environ, {
		"OPS_PLANS_DATA_DIR": "/tmp/test-data",
		"OPS_PLANS_CONFIG_DIR": "/tmp/test-config",
		"OPS_PLANS_HORIZON_MINUTES": "90",
	}):
		config = _apply_env_overrides(config)
		assert config.data_dir == Path("/tmp/test-data")
		assert config.config_dir == Path("/tmp/test-config")
		assert config.execution_horizon_minutes == 90
		# Derived paths should be recomputed
		assert config.plans_db_path == Path("/tmp/test-data/plans.db")


def test_config_toml(tmp_path: Path):
	"""config.toml values should be applied."""
	config_dir = tmp_path / "config"
	config_dir.mkdir()
	(config_dir / "config.toml").write_text(
		'execution_horizon_minutes = 60\nshift_sequence = ["Early", "Late"]\n'
	)

	config = _apply_toml(Config(config_dir=config_dir, data_dir=tmp_path / "data"))

	assert config.execution_horizon_minutes == 60
	assert config.shift_sequence == ["Early", "Late"]


def test_lifecycle_policy():
	"""The lifecycle policy should follow the configured horizon and shifts."""
	config = Config()
	config.execution_horizon_minutes = 45
	config.shift_sequence = ["A", "B"]

	policy = config.lifecycle_policy()

	assert policy.execution_horizon == timedelta(minutes=45)
	assert policy.shift_sequence == ("A", "B")


def test_config_ensure_dirs(tmp_path: Path):
	"""ensure_dirs should create all required directories."""
	config = Config(
		config_dir=tmp_path / "config",
		data_dir=tmp_path / "data",
	)
	assert not config.config_dir.exists()
	assert not config.data_dir.exists()

	config.ensure_dirs()

	assert config.config_dir.exists()
	assert config.data_dir.exists()
	assert config.log_dir.exists()


def test_load_config_creates_dirs(tmp_path: Path):
	"""load_config should create directories."""
	with patch.dict(os.environ, {
		"OPS_PLANS_DATA_DIR": str(tmp_path / "data"),
		"OPS_PLANS_CONFIG_DIR": str(tmp_path / "config"),
	}):
		config = load_config()
		assert config.data_dir.exists()
		assert config.config_dir.exists()
