# Top-level shell: header, pickers, help overlay and the active service

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..aws.regions import AWS_REGIONS
from ..handler import ServiceLogger
from ..models import RuntimeSelection
from .runtime import QUIT, KeyMsg, ResizeMsg, Task, batch
from .selector import OptionSelector
from .services import ServiceInitError, ServiceModel, ServiceOptions, ServiceRegistry

KEY_HINTS = (
	"Keys: arrows/jk move, / search, space select, a select all, t tail, "
	"r region, s service, ? help, q stop tail/quit, ctrl+c quit"
)

HELP_LINES = (
	"Help",
	"",
	"Navigation     up/down or j/k",
	"Search         /  (Enter or Esc to leave, filter stays)",
	"Select         space toggles one group, a toggles all",
	"Tail           t starts tailing the selected groups",
	"Stop tail      q or Esc",
	"Scroll tail    pgup / pgdown",
	"Reload groups  R",
	"Region         r",
	"Service        s",
	"Quit           q when not tailing, ctrl+c at any time",
	"",
	"Press ? or Esc to close",
)


@dataclass(frozen=True)
class SessionAcquired:
	region: str
	session: object = None
	error: Optional[str] = None


def min_width(actual: int, limit: int) -> int:
	if actual <= 0:
		return limit
	if actual < limit:
		return actual - 2 if actual - 2 > 10 else actual
	return limit


def place_center(content: str, width: int, height: int) -> List[str]:
	"""Center a block of text inside a width x height area."""
	lines = content.splitlines()[:height]
	block_width = max((len(line) for line in lines), default=0)
	left = max(0, (width - block_width) // 2)
	top = max(0, (height - len(lines)) // 2)
	out = [""] * top + [(" " * left + line)[:width] for line in lines]
	return out + [""] * (height - len(out))


def _fit_rows(text: str, height: int) -> List[str]:
	rows = text.splitlines()[:height]
	return rows + [""] * (height - len(rows))


class AppShell:
	"""Routes input between the overlays and the active service.

	The shell owns the session. Changing region or service builds a brand new
	service instance; until that succeeds the previous one stays active.
	"""

	def __init__(
		self,
		loader,
		registry: ServiceRegistry,
		selection: RuntimeSelection,
		session,
		config,
		logger: Optional[ServiceLogger] = None,
		regions: Sequence[str] = AWS_REGIONS,
	):
		self.loader = loader
		self.registry = registry
		self.selection = selection
		self.session = session
		self.config = config
		self.log = logger or ServiceLogger()
		self.regions = regions

		self.width = 0
		self.height = 0
		self.show_help = False
		self.status = ""
		self.pending_region: Optional[str] = None

		self.region_picker = OptionSelector("Select region")
		self.service_picker = OptionSelector("Select service")

		self.service: ServiceModel = self._build_service(selection.service, session)

	def _build_service(self, key: str, session) -> ServiceModel:
		options = ServiceOptions(config=self.config, logger=self.log)
		return self.registry.create(key, session, options)

	def init(self):
		return self.service.init()

	def update(self, msg):
		if isinstance(msg, KeyMsg):
			return self._handle_key(msg.key)
		if isinstance(msg, ResizeMsg):
			self.width = msg.width
			self.height = msg.height
			return self.service.update(msg)
		if isinstance(msg, SessionAcquired):
			return self._on_session(msg)
		return self.service.update(msg)

	def _handle_key(self, key: str):
		if key == "ctrl+c":
			return QUIT

		if self.region_picker.active:
			choice = self.region_picker.handle_key(key)
			if choice:
				return self.change_region(choice)
			return None

		if self.service_picker.active:
			choice = self.service_picker.handle_key(key)
			if choice:
				return self.change_service(choice)
			return None

		if self.show_help:
			if key == "q" and not self.service.tailing:
				return QUIT
			if key in ("?", "esc", "q"):
				self.show_help = False
			return None

		if self.service.captures_input:
			return self.service.update(KeyMsg(key))

		if key == "q" and not self.service.tailing:
			return QUIT
		if key == "r":
			self.region_picker.open(self.regions, self.selection.region)
			return None
		if key == "s":
			self.service_picker.open(self.registry.keys(), self.selection.service)
			return None
		if key == "?":
			self.show_help = True
			return None
		return self.service.update(KeyMsg(key))

	def change_region(self, region: str):
		"""Acquire a session for `region` off the loop; the swap happens on arrival."""
		if self.pending_region:
			self.status = f"already switching to {self.pending_region}"
			return None
		self.pending_region = region
		self.status = f"switching to {region}..."
		loader = self.loader
		profile = self.selection.profile
		timeout = float(getattr(self.config, "request_timeout", 30))
		self.log.info("region change requested", region=region, profile=profile)
		return Task(
			lambda: SessionAcquired(region, session=loader.acquire(profile, region)),
			timeout=timeout,
			on_timeout=lambda: SessionAcquired(region, error=f"acquiring a session for {region} timed out"),
			on_error=lambda e: SessionAcquired(region, error=str(e)),
			name="acquire-session",
		)

	def _on_session(self, msg: SessionAcquired):
		if msg.region != self.pending_region:
			return None
		self.pending_region = None
		if msg.error:
			self.status = f"region change failed: {msg.error}"
			self.log.error("region change failed", region=msg.region, error=msg.error)
			return None
		try:
			service = self._build_service(self.selection.service, msg.session)
		except ServiceInitError as e:
			self.status = f"region change failed: {e}"
			self.log.error("region change failed", region=msg.region, error=e)
			return None
		self.session = msg.session
		self.selection.region = msg.region
		self.log.info("region changed", region=msg.region)
		return self._activate(service)

	def change_service(self, key: str):
		if key == self.selection.service:
			return None
		try:
			service = self._build_service(key, self.session)
		except ServiceInitError as e:
			self.status = f"service change failed: {e}"
			self.log.error("service change failed", service=key, error=e)
			return None
		self.selection.service = key
		self.log.info("service changed", service=key)
		return self._activate(service)

	def _activate(self, service: ServiceModel):
		self.service = service
		self.status = ""
		resize = None
		if self.width > 0 and self.height > 0:
			resize = service.update(ResizeMsg(self.width, self.height))
		return batch(resize, service.init())

	def view(self, width: int, height: int) -> str:
		profile = self.selection.profile or "default"
		region = self.selection.region or "sdk-default"
		header = f"profile: {profile} | region: {region} | service: {self.selection.service}"
		footer = self.status or KEY_HINTS
		body_height = max(1, height - 2)

		if self.show_help:
			rows = place_center("\n".join(HELP_LINES), width, body_height)
		elif self.region_picker.active:
			rows = place_center(self.region_picker.view(min_width(width, 60), body_height), width, body_height)
		elif self.service_picker.active:
			rows = place_center(self.service_picker.view(min_width(width, 60), body_height), width, body_height)
		else:
			rows = _fit_rows(self.service.view(width, body_height), body_height)
		return "\n".join([header[:width]] + rows + [footer[:width]])
