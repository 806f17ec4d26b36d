# AWS session loading and the CloudWatch Logs client

from typing import Callable, List, Optional, Tuple

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError, ProfileNotFound

from ..models import LogGroup, TailEvent

GROUPS_PAGE_SIZE = 50
# FilterLogEvents can return empty pages with a token while it scans streams
MAX_EVENT_PAGES = 5


class CloudError(Exception):
	"""Base exception for AWS errors with user-friendly messages."""
	pass


class SessionError(CloudError):
	"""Raised when a session for a profile/region cannot be acquired."""
	pass


class ListingError(CloudError):
	"""Raised when a page of log groups cannot be listed."""
	pass


class FetchError(CloudError):
	"""Raised when events cannot be fetched for a log group."""
	pass


def _describe(error) -> str:
	if isinstance(error, ClientError):
		err = error.response.get("Error", {})
		code = err.get("Code") or "ClientError"
		message = err.get("Message") or str(error)
		return f"{code}: {message}"
	return str(error)


class SessionLoader:
	"""Builds boto3 sessions; the factory is injectable for tests."""

	def __init__(self, session_factory: Callable[..., boto3.Session] = boto3.Session):
		self.session_factory = session_factory

	def acquire(self, profile: Optional[str], region: Optional[str]) -> boto3.Session:
		"""Return a session for the profile/region, which may both be empty."""
		kwargs = {}
		if profile:
			kwargs["profile_name"] = profile
		if region:
			kwargs["region_name"] = region
		try:
			session = self.session_factory(**kwargs)
			credentials = session.get_credentials()
		except ProfileNotFound as e:
			raise SessionError(f"load AWS config: {e}")
		except BotoCoreError as e:
			raise SessionError(f"load AWS config: {_describe(e)}")
		if credentials is None:
			label = profile or "default"
			raise SessionError(f"load AWS config: no credentials found for profile {label!r}")
		return session


class LogsClient:
	"""Thin wrapper over the CloudWatch Logs API calls skylogs uses."""

	def __init__(self, api, events_per_group: int = 100):
		self.api = api
		self.events_per_group = events_per_group

	@classmethod
	def from_session(cls, session, request_timeout: float = 30, events_per_group: int = 100):
		boto_config = BotoConfig(
			connect_timeout=request_timeout,
			read_timeout=request_timeout,
			retries={"max_attempts": 3, "mode": "standard"},
		)
		return cls(session.client("logs", config=boto_config), events_per_group=events_per_group)

	def list_log_groups(self, next_token: Optional[str] = None) -> Tuple[List[LogGroup], Optional[str]]:
		"""Return one page of log groups and the token for the next page, if any."""
		kwargs = {"limit": GROUPS_PAGE_SIZE}
		if next_token:
			kwargs["nextToken"] = next_token
		try:
			out = self.api.describe_log_groups(**kwargs)
		except (ClientError, BotoCoreError) as e:
			raise ListingError(f"describe log groups: {_describe(e)}")
		groups = [
			LogGroup(
				name=g.get("logGroupName", ""),
				retention_days=int(g.get("retentionInDays") or 0),
				stored_bytes=int(g.get("storedBytes") or 0),
			)
			for g in out.get("logGroups", [])
		]
		return groups, out.get("nextToken") or None

	def fetch_events(self, group: str, start_ms: int) -> List[TailEvent]:
		"""Return events of one group from `start_ms` (inclusive), oldest first."""
		events: List[TailEvent] = []
		token = None
		for _ in range(MAX_EVENT_PAGES):
			kwargs = {
				"logGroupName": group,
				"startTime": start_ms,
				"limit": self.events_per_group - len(events),
			}
			if token:
				kwargs["nextToken"] = token
			try:
				out = self.api.filter_log_events(**kwargs)
			except (ClientError, BotoCoreError) as e:
				raise FetchError(f"filter log events for {group}: {_describe(e)}")
			for e in out.get("events", []):
				events.append(TailEvent(
					timestamp=int(e.get("timestamp") or 0),
					log_group=group,
					log_stream=e.get("logStreamName", ""),
					message=e.get("message", ""),
				))
			token = out.get("nextToken")
			if not token or len(events) >= self.events_per_group:
				break
		return events
