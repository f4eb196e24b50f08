from __future__ import annotations
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from .settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_FILE_NAME = "requirements-analyzer.log"


def configure_logging(level: Optional[str] = None, log_dir: Optional[str] = None) -> None:
	root = logging.getLogger()
	root.setLevel((level or settings.log_level).upper())
	if getattr(root, "_requirements_api_configured", False):
		return
	formatter = logging.Formatter(LOG_FORMAT)

	console = logging.StreamHandler()
	console.setFormatter(formatter)
	root.addHandler(console)

	directory = log_dir if log_dir is not None else settings.log_dir
	if directory:
		path = Path(directory)
		path.mkdir(parents=True, exist_ok=True)
		# One file per day, a week of history
		file_handler = TimedRotatingFileHandler(path / LOG_FILE_NAME, when="midnight", backupCount=7, encoding="utf-8")
		file_handler.setFormatter(formatter)
		root.addHandler(file_handler)

	root._requirements_api_configured = True  # type: ignore[attr-defined]
	# Request lines come from our own middleware
	logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
