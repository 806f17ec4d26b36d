# Structured logging for skylogs
#
# Key/value pairs ride on the record as `features`, normalized the same way
# for every call site, and are rendered after the message as [k=v ...].

import logging
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

LOGGER_NAME = "skylogs"

_FEATURE_VALUE_TYPES = (str, int, float, bool, type(None))


def _coerce_feature_value(value: Any) -> Any:
	if isinstance(value, _FEATURE_VALUE_TYPES):
		return value
	return str(value)


def _normalize_features(value: Any) -> Optional[Dict[str, Any]]:
	if value is None:
		return None
	features: Dict[str, Any] = {}
	items: Sequence[Tuple[Any, Any]]
	if isinstance(value, Mapping):
		items = list(value.items())
	elif isinstance(value, (list, tuple)):
		items = [item for item in value if isinstance(item, (list, tuple)) and len(item) == 2]
	else:
		return None
	for key, val in items:
		if key is None:
			continue
		key_text = str(key).strip()
		if not key_text:
			continue
		features[key_text] = _coerce_feature_value(val)
	return features or None


def format_features(features) -> str:
	if not features:
		return ""
	parts = []
	for key, value in sorted(features.items(), key=lambda item: str(item[0])):
		value_text = "null" if value is None else str(value)
		parts.append(f"{key}={value_text}")
	return f"[{' '.join(parts)}]" if parts else ""


class FeaturesFormatter(logging.Formatter):
	"""Formatter that appends the record's features to the message."""

	def format(self, record):
		text = super().format(record)
		features = format_features(_normalize_features(getattr(record, "features", None)))
		if features:
			return f"{text} {features}"
		return text


class ServiceLogger:
	"""Narrow structured logger handed to services.

	Usage:
		log = ServiceLogger()
		log.info("loaded log groups", count=12, region="eu-west-1")
	"""

	def __init__(self, logger: Optional[logging.Logger] = None):
		self.logger = logger or logging.getLogger(LOGGER_NAME)

	def _log(self, level, message, fields):
		if self.logger.isEnabledFor(level):
			self.logger.log(level, message, extra={"features": _normalize_features(fields)})

	def debug(self, message: str, **fields):
		self._log(logging.DEBUG, message, fields)

	def info(self, message: str, **fields):
		self._log(logging.INFO, message, fields)

	def error(self, message: str, **fields):
		self._log(logging.ERROR, message, fields)

	def child(self, name: str) -> "ServiceLogger":
		return ServiceLogger(self.logger.getChild(name))


def configure_logging(log_file, verbose: bool = False) -> logging.Logger:
	"""Route skylogs records to a file; the terminal belongs to the UI."""
	logger = logging.getLogger(LOGGER_NAME)
	for existing in list(logger.handlers):
		logger.removeHandler(existing)
		existing.close()
	path = Path(log_file)
	path.parent.mkdir(parents=True, exist_ok=True)
	handler = logging.FileHandler(path, encoding="utf-8")
	handler.setFormatter(FeaturesFormatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
	logger.addHandler(handler)
	logger.setLevel(logging.DEBUG if verbose else logging.INFO)
	logger.propagate = False
	return logger
