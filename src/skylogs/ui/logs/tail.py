# Bounded, time-ordered event window and the watermark rules for tailing

from collections import deque
from typing import Iterable, List, Tuple

from ...aws.queries import sort_events
from ...models import TailEvent

DEFAULT_CAPACITY = 1000
# Range filters are inclusive, so resume one millisecond past the last event
WATERMARK_NUDGE_MS = 1


class TailWindow:
	"""FIFO of the most recent events; the oldest fall off past `capacity`."""

	def __init__(self, capacity: int = DEFAULT_CAPACITY):
		if capacity < 1:
			raise ValueError("capacity must be positive")
		self.capacity = capacity
		self._events = deque(maxlen=capacity)

	def __len__(self) -> int:
		return len(self._events)

	def __iter__(self):
		return iter(self._events)

	@property
	def events(self) -> List[TailEvent]:
		return list(self._events)

	def clear(self):
		self._events.clear()

	def extend(self, events: Iterable[TailEvent]):
		self._events.extend(events)


def merge_poll(window: TailWindow, events: Iterable[TailEvent], range_start: int, watermark: int) -> Tuple[int, int]:
	"""Append one poll's events to the window and advance the watermark.

	Events older than the poll's range start are dropped, the rest are sorted
	before being appended. The returned watermark never moves backward.
	Returns (new_watermark, appended_count).
	"""
	fresh = sort_events(e for e in events if e.timestamp >= range_start)
	if not fresh:
		return watermark, 0
	window.extend(fresh)
	return max(watermark, fresh[-1].timestamp + WATERMARK_NUDGE_MS), len(fresh)
