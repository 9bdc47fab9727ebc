"""Configuration system using platformdirs for cross-platform paths."""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

import platformdirs

from .plans.commands import LifecyclePolicy

APP_NAME = "ops-plans"
APP_AUTHOR = "ops-plans"


@dataclass
class Config:
	"""Central configuration with XDG/platform conventions."""

	config_dir: Path = field(default_factory=lambda: Path(platformdirs.user_config_dir(APP_NAME)))
	data_dir: Path = field(default_factory=lambda: Path(platformdirs.user_data_dir(APP_NAME)))

	# Derived paths
	plans_db_path: Path = field(init=False)
	log_dir: Path = field(init=False)

	# Lifecycle rules
	execution_horizon_minutes: int = 120
	shift_sequence: list[str] = field(default_factory=lambda: ["Day", "Swing", "Night"])

	def __post_init__(self) -> None:
		self.plans_db_path = self.data_dir / "plans.db"
		self.log_dir = self.data_dir / "logs"

	def ensure_dirs(self) -> None:
		"""Create all required directories."""
		self.config_dir.mkdir(parents=True, exist_ok=True)
		self.data_dir.mkdir(parents=True, exist_ok=True)
		self.log_dir.mkdir(parents=True, exist_ok=True)

	def lifecycle_policy(self) -> LifecyclePolicy:
		return LifecyclePolicy(
			execution_horizon=timedelta(minutes=self.execution_horizon_minutes),
			shift_sequence=tuple(self.shift_sequence),
		)


def _apply_env_overrides(config: Config) -> Config:
	"""Apply OPS_PLANS_* environment variable overrides."""
	env_map = {
		"OPS_PLANS_CONFIG_DIR": "config_dir",
		"OPS_PLANS_DATA_DIR": "data_dir",
	}
	for env_key, attr in env_map.items():
		val = os.getenv(env_key)
		if val:
			setattr(config, attr, Path(val))

	horizon = os.getenv("OPS_PLANS_HORIZON_MINUTES")
	if horizon:
		config.execution_horizon_minutes = int(horizon)

	# Recompute derived paths after overrides
	config.__post_init__()
	return config


def _apply_toml(config: Config) -> Config:
	"""Apply config.toml overrides if file exists."""
	toml_path = config.config_dir / "config.toml"
	if not toml_path.exists():
		return config

	with open(toml_path, "rb") as f:
		data = tomllib.load(f)

	path_fields = {"config_dir", "data_dir"}
	for key, val in data.items():
		if hasattr(config, key):
			if key in path_fields:
				setattr(config, key, Path(os.path.expanduser(val)))
			else:
				setattr(config, key, val)

	# Recompute derived paths after toml overrides
	config.__post_init__()
	return config


def load_config() -> Config:
	"""Load config with precedence: env vars > config.toml > defaults."""
	config = Config()
	config = _apply_toml(config)
	config = _apply_env_overrides(config)
	config.ensure_dirs()
	return config


# Singleton
_config: Config | None = None


def get_config() -> Config:
	"""Get or create the global config instance."""
	global _config
	if _config is None:
		_config = load_config()
	return _config
