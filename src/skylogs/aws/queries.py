# Listing and polling operations built on LogsClient

from typing import Iterable, List

from ..models import LogGroup, TailEvent


def sort_events(events: Iterable[TailEvent]) -> List[TailEvent]:
	"""Order events by timestamp; ties keep their input order."""
	return sorted(events, key=lambda e: e.timestamp)


def list_all_log_groups(client) -> List[LogGroup]:
	"""Exhaust pagination and return every log group.

	A failure on any page propagates and no partial list is returned.
	"""
	groups: List[LogGroup] = []
	token = None
	while True:
		page, token = client.list_log_groups(token)
		groups.extend(page)
		if not token:
			break
	return groups


def fetch_tail_events(client, group_names: Iterable[str], start_ms: int) -> List[TailEvent]:
	"""Fetch every selected group from `start_ms` and merge them by timestamp.

	The client is called once per group; the first failing group aborts the
	whole poll.
	"""
	events: List[TailEvent] = []
	for name in group_names:
		events.extend(client.fetch_events(name, start_ms))
	return sort_events(events)
