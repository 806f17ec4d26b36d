# Configuration loading for skylogs

import json
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Optional

import typer

from .models import RuntimeSelection

APP_NAME = "skylogs"
DEFAULT_SERVICE = "cloudwatch-logs"

# Lazy load dotenv - only when config is first accessed
_dotenv_loaded = False
_custom_dotenv_path = None

def _getenv(name, default):
	value = os.getenv(name)
	return value if value else default

def app_dir() -> Path:
	return Path(typer.get_app_dir(APP_NAME))

class SkylogsConfig:
	"""Loads configuration from environment variables and provides defaults."""
	def __init__(self):
		self.poll_interval = float(_getenv("SKYLOGS_POLL_INTERVAL", "5"))
		self.lookback_minutes = int(_getenv("SKYLOGS_LOOKBACK_MINUTES", "15"))
		self.tail_capacity = int(_getenv("SKYLOGS_TAIL_CAPACITY", "1000"))
		self.events_per_group = int(_getenv("SKYLOGS_EVENTS_PER_GROUP", "100"))
		# Upper bound for any single AWS call, and for the task wrapping it
		self.request_timeout = float(_getenv("SKYLOGS_REQUEST_TIMEOUT", "30"))
		self.list_timeout = float(_getenv("SKYLOGS_LIST_TIMEOUT", "120"))
		self.config_path = Path(_getenv("SKYLOGS_CONFIG_PATH", str(app_dir() / "config.json")))
		self.log_file = Path(_getenv("SKYLOGS_LOG_FILE", str(app_dir() / "skylogs.log")))

	@property
	def lookback_ms(self) -> int:
		return self.lookback_minutes * 60 * 1000

def set_dotenv_path(path: str):
	"""Set a custom .env file path to load. Must be called before load_config()."""
	global _custom_dotenv_path, _dotenv_loaded
	_custom_dotenv_path = path
	_dotenv_loaded = False  # Reset to force reload with new path

def load_config() -> SkylogsConfig:
	"""Return a config object with all settings loaded."""
	global _dotenv_loaded, _custom_dotenv_path
	if not _dotenv_loaded:
		from dotenv import load_dotenv, find_dotenv
		# Check for DOTENV_PATH environment variable first
		dotenv_path = os.getenv("DOTENV_PATH") or _custom_dotenv_path
		if dotenv_path:
			# Explicit env files win over the inherited environment
			load_dotenv(dotenv_path, override=True)
		else:
			dotenv_path = find_dotenv(usecwd=True)
			if dotenv_path:
				load_dotenv(dotenv_path)
		_dotenv_loaded = True
	return SkylogsConfig()


# Persisted user configuration

@dataclass
class UserConfig:
	"""What is remembered between sessions, stored as JSON."""
	defaultProfile: str = ""
	defaultRegion: str = ""
	lastRegion: str = ""
	lastService: str = ""


class ConfigFileError(Exception):
	"""Raised when the persisted config cannot be read or written."""
	pass


def load_user_config(path) -> UserConfig:
	"""Read the config file if present; a missing file is not an error."""
	path = Path(path)
	try:
		raw = path.read_text(encoding="utf-8")
	except FileNotFoundError:
		return UserConfig()
	except OSError as e:
		raise ConfigFileError(f"read config: {e}")
	try:
		data = json.loads(raw) if raw.strip() else {}
	except json.JSONDecodeError as e:
		raise ConfigFileError(f"parse config {path}: {e}")
	if not isinstance(data, dict):
		raise ConfigFileError(f"parse config {path}: expected an object")
	known = {f.name for f in fields(UserConfig)}
	return UserConfig(**{k: str(v) for k, v in data.items() if k in known and v is not None})


def save_user_config(path, cfg: UserConfig):
	"""Persist the config, creating parent directories as needed."""
	path = Path(path)
	data = {k: v for k, v in asdict(cfg).items() if v}
	try:
		path.parent.mkdir(parents=True, exist_ok=True)
		path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
	except OSError as e:
		raise ConfigFileError(f"write config: {e}")


# Selection resolution

@dataclass
class Flags:
	profile: str = ""
	region: str = ""
	service: str = ""


@dataclass
class Env:
	profile: str = ""
	region: str = ""


def env_from_os() -> Env:
	"""Read the AWS environment variables that influence the selection."""
	return Env(
		profile=os.getenv("AWS_PROFILE", ""),
		region=os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION", ""),
	)


def resolve_selection(flags: Flags, env: Env, cfg: Optional[UserConfig]) -> RuntimeSelection:
	"""Merge sources with the precedence flags > environment > config file > defaults."""
	cfg = cfg or UserConfig()
	profile = flags.profile or env.profile or cfg.defaultProfile
	region = flags.region or env.region or cfg.lastRegion or cfg.defaultRegion
	service = flags.service or cfg.lastService or DEFAULT_SERVICE
	return RuntimeSelection(region=region, service=service, profile=profile or None)


def remember_selection(cfg: UserConfig, selection: RuntimeSelection) -> UserConfig:
	cfg.lastRegion = selection.region
	cfg.lastService = selection.service
	return cfg
