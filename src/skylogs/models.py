# Data models shared by the AWS layer and the UI

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


@dataclass(frozen=True)
class LogGroup:
	"""A CloudWatch Logs log group. `name` is the unique key."""
	name: str
	retention_days: int = 0
	stored_bytes: int = 0


@dataclass(frozen=True)
class TailEvent:
	"""A single event returned by a tail poll.

	`timestamp` is epoch milliseconds, the resolution CloudWatch uses for
	range filters.
	"""
	timestamp: int
	log_group: str
	log_stream: str
	message: str

	def isoformat(self) -> str:
		dt = datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc)
		return dt.isoformat(timespec="seconds").replace("+00:00", "Z")


@dataclass
class RuntimeSelection:
	"""Profile, region and service the session is running against."""
	region: str = ""
	service: str = ""
	profile: Optional[str] = None
