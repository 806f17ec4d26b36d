# Message-driven runtime for the terminal UI
#
# The model is only ever touched from the loop: `update(msg)` mutates state
# and returns a command describing work to do. Tasks run on worker threads
# and come back as exactly one message; timers come back as the message
# they were scheduled with.

import curses
import heapq
import itertools
import os
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple

from ..handler import ServiceLogger

FRAME_MS = 50


@dataclass(frozen=True)
class KeyMsg:
	"""A decoded key press: printable characters are themselves, others are named."""
	key: str


@dataclass(frozen=True)
class ResizeMsg:
	width: int
	height: int


@dataclass(frozen=True)
class Task:
	"""Run `fn` off the loop and deliver the message it returns.

	When `timeout` elapses first, the result is abandoned and `on_timeout()`
	is delivered instead. An exception raised by `fn` is turned into a
	message by `on_error(exc)`, or logged when there is none.
	"""
	fn: Callable[[], Any]
	timeout: Optional[float] = None
	on_timeout: Optional[Callable[[], Any]] = None
	on_error: Optional[Callable[[Exception], Any]] = None
	name: str = "task"


@dataclass(frozen=True)
class Delay:
	"""Deliver `msg` after `seconds`."""
	seconds: float
	msg: Any


@dataclass(frozen=True)
class Batch:
	commands: Tuple[Any, ...]


class Quit:
	def __repr__(self):
		return "QUIT"


QUIT = Quit()


def batch(*commands):
	"""Combine commands, dropping empty ones."""
	flat = tuple(c for c in commands if c is not None)
	if not flat:
		return None
	if len(flat) == 1:
		return flat[0]
	return Batch(flat)


def iter_commands(command):
	"""Yield the leaf commands of a possibly nested batch."""
	if command is None:
		return
	if isinstance(command, Batch):
		for child in command.commands:
			yield from iter_commands(child)
	else:
		yield command


_NAMED_KEYS = {
	curses.KEY_UP: "up",
	curses.KEY_DOWN: "down",
	curses.KEY_LEFT: "left",
	curses.KEY_RIGHT: "right",
	curses.KEY_PPAGE: "pgup",
	curses.KEY_NPAGE: "pgdown",
	curses.KEY_HOME: "home",
	curses.KEY_END: "end",
	curses.KEY_BACKSPACE: "backspace",
	curses.KEY_DC: "delete",
	curses.KEY_ENTER: "enter",
}

_CONTROL_CHARS = {
	"\n": "enter",
	"\r": "enter",
	"\x1b": "esc",
	"\x7f": "backspace",
	"\x08": "backspace",
	"\t": "tab",
}


def decode_key(ch) -> Optional[str]:
	"""Translate a curses `get_wch()` value into a key name."""
	if isinstance(ch, int):
		return _NAMED_KEYS.get(ch)
	if ch in _CONTROL_CHARS:
		return _CONTROL_CHARS[ch]
	code = ord(ch)
	if code < 32:
		return f"ctrl+{chr(code + 96)}"
	return ch


@dataclass
class _Pending:
	future: Any
	deadline: Optional[float]
	task: Task


class Program:
	"""Runs a model: dispatches its commands and feeds messages back into it."""

	def __init__(self, model, executor=None, clock: Callable[[], float] = time.monotonic, logger: Optional[ServiceLogger] = None):
		self.model = model
		self.executor = executor or ThreadPoolExecutor(max_workers=4, thread_name_prefix="skylogs")
		self.clock = clock
		self.log = logger or ServiceLogger()
		self.done = False
		self._pending: List[_Pending] = []
		self._timers: List[Tuple[float, int, Any]] = []
		self._seq = itertools.count()

	def start(self, width: int, height: int):
		self.deliver(ResizeMsg(width, height))
		self.dispatch(self.model.init())

	def deliver(self, msg):
		if self.done or msg is None:
			return
		self.dispatch(self.model.update(msg))

	def dispatch(self, command):
		now = self.clock()
		for cmd in iter_commands(command):
			if cmd is QUIT:
				self.done = True
			elif isinstance(cmd, Task):
				deadline = now + cmd.timeout if cmd.timeout is not None else None
				self._pending.append(_Pending(self.executor.submit(cmd.fn), deadline, cmd))
			elif isinstance(cmd, Delay):
				heapq.heappush(self._timers, (now + cmd.seconds, next(self._seq), cmd.msg))
			else:
				raise TypeError(f"unknown command: {cmd!r}")

	@property
	def pending_tasks(self) -> int:
		return len(self._pending)

	def pump(self) -> int:
		"""Deliver finished tasks, expired timeouts and due timers. Returns the count."""
		now = self.clock()
		ready = []
		for pending in list(self._pending):
			task = pending.task
			if pending.future.done():
				self._pending.remove(pending)
				try:
					ready.append(pending.future.result())
				except Exception as e:
					self.log.error("task failed", task=task.name, error=f"{type(e).__name__}: {e}")
					if task.on_error is not None:
						ready.append(task.on_error(e))
			elif pending.deadline is not None and now >= pending.deadline:
				# The worker keeps running; its result is never read.
				self._pending.remove(pending)
				pending.future.cancel()
				self.log.error("task timed out", task=task.name, timeout=task.timeout)
				if task.on_timeout is not None:
					ready.append(task.on_timeout())
		while self._timers and self._timers[0][0] <= now:
			ready.append(heapq.heappop(self._timers)[2])
		delivered = 0
		for msg in ready:
			if msg is not None and not self.done:
				self.deliver(msg)
				delivered += 1
		return delivered

	def run(self):
		"""Take over the terminal until the model quits. Returns the final model."""
		os.environ.setdefault("ESCDELAY", "25")
		try:
			curses.wrapper(self._run_curses)
		finally:
			self.executor.shutdown(wait=False, cancel_futures=True)
		return self.model

	def _run_curses(self, stdscr):
		curses.raw()
		try:
			curses.curs_set(0)
		except curses.error:
			self.log.debug("terminal cannot hide the cursor")
		stdscr.keypad(True)
		stdscr.timeout(FRAME_MS)
		height, width = stdscr.getmaxyx()
		self.start(width, height)
		while not self.done:
			self._paint(stdscr)
			try:
				ch = stdscr.get_wch()
			except curses.error:
				ch = None  # no key within the frame
			if ch == curses.KEY_RESIZE:
				height, width = stdscr.getmaxyx()
				self.deliver(ResizeMsg(width, height))
			elif ch is not None:
				key = decode_key(ch)
				if key:
					self.deliver(KeyMsg(key))
			self.pump()

	def _paint(self, stdscr):
		height, width = stdscr.getmaxyx()
		stdscr.erase()
		for y, line in enumerate(self.model.view(width, height).splitlines()[:height]):
			# Leave the last column alone so the bottom-right cell never scrolls
			stdscr.addnstr(y, 0, line, max(0, width - 1))
		stdscr.refresh()
