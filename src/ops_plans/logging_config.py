"""Logging setup for ops-plans: stderr console output plus a rotating file under the data dir."""

import os
import sys
import logging
from pathlib import Path
from typing import Optional
from logging.handlers import RotatingFileHandler

from .config import get_config

# Libraries whose debug output drowns out plan activity
QUIET_LOGGERS = ("aiosqlite", "mcp")


def setup_logging(
	name: str = "ops_plans",
	level: Optional[str] = None,
	log_dir: Optional[str] = None,
) -> logging.Logger:
	"""
	Install console and file handlers on the named logger.

	Args:
		name: Logger name, also the log file's stem
		level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to LOG_LEVEL or INFO.
		log_dir: Directory for log files. Defaults to the configured log_dir.

	Returns:
		Configured logger
	"""
	level = level or os.getenv("LOG_LEVEL", "INFO")
	log_level = getattr(logging, level.upper(), logging.INFO)

	logger = logging.getLogger(name)
	logger.setLevel(log_level)

	if logger.handlers:
		return logger

	for noisy in QUIET_LOGGERS:
		logging.getLogger(noisy).setLevel(logging.WARNING)

	# stdout is reserved for the MCP stdio transport
	console_handler = logging.StreamHandler(sys.stderr)
	console_handler.setLevel(log_level)
	console_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S"))
	logger.addHandler(console_handler)

	log_path = Path(log_dir) if log_dir else get_config().log_dir
	log_path.mkdir(parents=True, exist_ok=True)

	file_handler = RotatingFileHandler(
		log_path / f"{name}.log",
		maxBytes=10 * 1024 * 1024,
		backupCount=5,
	)
	# Plan ids and command names land in every record, so the file keeps DEBUG
	file_handler.setLevel(logging.DEBUG)
	file_handler.setFormatter(logging.Formatter(
		"%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s",
		datefmt="%Y-%m-%d %H:%M:%S",
	))
	logger.addHandler(file_handler)

	return logger
