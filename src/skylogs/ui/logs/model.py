# Log group browser and tailing state machine

import itertools
import time
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

from ...aws.queries import fetch_tail_events, list_all_log_groups
from ...handler import ServiceLogger
from ...models import LogGroup, TailEvent
from ..runtime import Delay, KeyMsg, ResizeMsg, Task
from ..services import ServiceModel
from ..textinput import TextInput
from .tail import DEFAULT_CAPACITY, TailWindow, merge_poll
from .views import render

# Shared by every browser so ids never repeat after a region or service change
_instance_ids = itertools.count(1)
_tail_sessions = itertools.count(1)


@dataclass(frozen=True)
class LogGroupsLoaded:
	groups: Tuple[LogGroup, ...] = ()
	error: Optional[str] = None
	# instance_id of the browser that asked for the listing
	owner: int = 0


@dataclass(frozen=True)
class TailPollDue:
	session: int


@dataclass(frozen=True)
class TailPolled:
	session: int
	range_start: int
	events: Tuple[TailEvent, ...] = ()
	error: Optional[str] = None


class LogBrowser(ServiceModel):
	"""Lists log groups, lets the user pick some, and tails them.

	Every tail session gets a new number, unique across browsers; poll results
	and timers carry it so that anything belonging to a stopped or replaced
	session is dropped. Listings are tagged with `instance_id` for the same
	reason: a browser built for another region must not receive them.
	"""

	def __init__(self, client, config=None, logger: Optional[ServiceLogger] = None, clock=time.time):
		self.client = client
		self.log = logger or ServiceLogger()
		self.clock = clock
		self.instance_id = next(_instance_ids)
		self.poll_interval = float(getattr(config, "poll_interval", 5))
		self.lookback_ms = int(getattr(config, "lookback_ms", 15 * 60 * 1000))
		self.request_timeout = float(getattr(config, "request_timeout", 30))
		self.list_timeout = float(getattr(config, "list_timeout", 120))

		self.width = 0
		self.height = 0

		self.groups: List[LogGroup] = []
		self.cursor = 0
		self.selected: Set[str] = set()
		self.loading = True
		self.searching = False
		self.search = TextInput(placeholder="filter log groups", prompt="/ ")
		self.status = ""

		self._tailing = False
		self.tail_session = 0
		self.watermark = 0
		self.window = TailWindow(int(getattr(config, "tail_capacity", DEFAULT_CAPACITY)))
		# Lines scrolled back from the newest event
		self.scroll = 0

	@property
	def tailing(self) -> bool:
		return self._tailing

	@property
	def captures_input(self) -> bool:
		return self.searching

	def init(self):
		return self._load_groups_cmd()

	def view(self, width: int, height: int) -> str:
		return render(self, width, height)

	def update(self, msg):
		if isinstance(msg, KeyMsg):
			return self._handle_key(msg.key)
		if isinstance(msg, ResizeMsg):
			self.width = msg.width
			self.height = msg.height
		elif isinstance(msg, LogGroupsLoaded):
			if msg.owner == self.instance_id:
				self._on_groups_loaded(msg)
			else:
				self.log.debug("dropping listing from another browser", owner=msg.owner)
		elif isinstance(msg, TailPollDue):
			if self._is_current(msg.session):
				return self._poll_cmd()
		elif isinstance(msg, TailPolled):
			return self._on_poll(msg)
		return None

	# Group list

	def filtered_groups(self) -> List[LogGroup]:
		q = self.search.value.lower()
		if not q:
			return list(self.groups)
		return [g for g in self.groups if q in g.name.lower()]

	def selected_groups(self) -> List[str]:
		return sorted(self.selected)

	def _clamp_cursor(self):
		last = len(self.filtered_groups()) - 1
		self.cursor = min(max(self.cursor, 0), max(last, 0))

	def toggle_selection(self):
		groups = self.filtered_groups()
		if not groups or self.cursor >= len(groups):
			return
		name = groups[self.cursor].name
		if name in self.selected:
			self.selected.discard(name)
		else:
			self.selected.add(name)

	def toggle_all(self):
		if len(self.selected) == len(self.groups):
			self.selected = set()
		else:
			self.selected = {g.name for g in self.groups}

	def reload(self):
		if self.loading:
			return None
		self.loading = True
		self.status = "loading log groups..."
		return self._load_groups_cmd()

	def _load_groups_cmd(self):
		client = self.client
		owner = self.instance_id
		return Task(
			lambda: LogGroupsLoaded(groups=tuple(list_all_log_groups(client)), owner=owner),
			timeout=self.list_timeout,
			on_timeout=lambda: LogGroupsLoaded(error=f"listing log groups timed out after {self.list_timeout:g}s", owner=owner),
			on_error=lambda e: LogGroupsLoaded(error=str(e), owner=owner),
			name="list-log-groups",
		)

	def _on_groups_loaded(self, msg: LogGroupsLoaded):
		self.loading = False
		if msg.error:
			self.status = msg.error
			self.log.error("listing log groups failed", error=msg.error)
			return
		self.groups = list(msg.groups)
		names = {g.name for g in self.groups}
		self.selected &= names
		self._clamp_cursor()
		self.status = f"loaded {len(self.groups)} log groups"
		self.log.info("log groups loaded", count=len(self.groups))

	# Keys

	def _handle_key(self, key: str):
		if self.searching:
			if key in ("enter", "esc"):
				self.searching = False
				self.search.blur()
			elif self.search.handle_key(key):
				self._clamp_cursor()
			return None

		if key in ("up", "k"):
			if self.cursor > 0:
				self.cursor -= 1
		elif key in ("down", "j"):
			if self.cursor < len(self.filtered_groups()) - 1:
				self.cursor += 1
		elif key == "/":
			self.searching = True
			self.search.focus()
		elif key == " ":
			self.toggle_selection()
		elif key == "a":
			self.toggle_all()
		elif key == "t":
			return self.start_tail()
		elif key in ("q", "esc"):
			if self._tailing:
				self.stop_tail()
		elif key == "pgup":
			self.scroll = min(self.scroll + self._page_size(), max(0, len(self.window) - 1))
		elif key == "pgdown":
			self.scroll = max(0, self.scroll - self._page_size())
		elif key == "R":
			return self.reload()
		return None

	def _page_size(self) -> int:
		return max(1, self.height - 6)

	# Tailing

	def start_tail(self):
		if not self.selected:
			self.status = "select at least one log group to tail"
			return None
		self.tail_session = next(_tail_sessions)
		self._tailing = True
		self.window.clear()
		self.scroll = 0
		self.watermark = int(self.clock() * 1000) - self.lookback_ms
		self.status = f"tailing {len(self.selected)} log group(s)"
		self.log.info("tail started", groups=len(self.selected), since=self.watermark, session=self.tail_session)
		return self._poll_cmd()

	def stop_tail(self):
		self._tailing = False
		self.status = f"tail stopped, {len(self.window)} events kept"
		self.log.info("tail stopped", session=self.tail_session)

	def _is_current(self, session: int) -> bool:
		return self._tailing and session == self.tail_session

	def _poll_cmd(self):
		client = self.client
		groups = self.selected_groups()
		start = self.watermark
		session = self.tail_session
		return Task(
			lambda: TailPolled(session, start, events=tuple(fetch_tail_events(client, groups, start))),
			timeout=self.request_timeout,
			on_timeout=lambda: TailPolled(session, start, error=f"poll timed out after {self.request_timeout:g}s"),
			on_error=lambda e: TailPolled(session, start, error=str(e)),
			name="tail-poll",
		)

	def _on_poll(self, msg: TailPolled):
		if not self._is_current(msg.session):
			self.log.debug("dropping poll result", session=msg.session, current=self.tail_session)
			return None
		if msg.error:
			self.status = f"tail error: {msg.error}"
			self.log.error("tail poll failed", error=msg.error, watermark=self.watermark)
		else:
			self.watermark, added = merge_poll(self.window, msg.events, msg.range_start, self.watermark)
			if added:
				if self.scroll:
					self.scroll = min(self.scroll + added, max(0, len(self.window) - 1))
				self.log.debug("tail poll merged", added=added, watermark=self.watermark)
			self.status = f"tailing {len(self.selected)} log group(s), {len(self.window)} events"
		return Delay(self.poll_interval, TailPollDue(self.tail_session))
