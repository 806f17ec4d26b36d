# Service plugin contract and registry
#
# A service is a self-contained sub-application activated by key. The shell
# only talks to it through ServiceModel; there is no type probing.

import abc
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, List, Optional

from ..handler import ServiceLogger


class ServiceInitError(Exception):
	"""Raised when a service cannot be constructed for the given session."""
	pass


class UnknownServiceError(ServiceInitError):
	"""Raised when a service key is not registered."""
	pass


@dataclass
class ServiceOptions:
	"""Dependencies shared with services."""
	config: object
	logger: ServiceLogger = field(default_factory=ServiceLogger)


class ServiceModel(abc.ABC):
	"""The capability set every service state machine provides."""

	@abc.abstractmethod
	def init(self):
		"""Return the command to run when the service becomes active."""

	@abc.abstractmethod
	def update(self, msg):
		"""Apply a message and return the next command, if any."""

	@abc.abstractmethod
	def view(self, width: int, height: int) -> str:
		"""Render the service body."""

	@property
	def tailing(self) -> bool:
		"""True while the service runs a live loop that `q` should stop first."""
		return False

	@property
	def captures_input(self) -> bool:
		"""True while a text field is focused and wants every printable key."""
		return False


class Service(abc.ABC):
	"""Factory for a service's state machine."""

	@abc.abstractmethod
	def name(self) -> str:
		"""Stable registry key."""

	@abc.abstractmethod
	def title(self) -> str:
		"""Human-readable title."""

	@abc.abstractmethod
	def initialize(self, session, options: ServiceOptions) -> ServiceModel:
		"""Build a fresh state machine, or raise ServiceInitError."""


class ServiceRegistry:
	"""Read-only mapping from service key to Service, fixed at startup."""

	def __init__(self, services: Iterable[Service]):
		mapping = {}
		for service in services:
			key = service.name()
			if key in mapping:
				raise ValueError(f"duplicate service {key!r}")
			mapping[key] = service
		self._services = MappingProxyType(mapping)

	def __contains__(self, key) -> bool:
		return key in self._services

	def __len__(self) -> int:
		return len(self._services)

	def keys(self) -> List[str]:
		return sorted(self._services)

	def get(self, key: str) -> Service:
		try:
			return self._services[key]
		except KeyError:
			raise UnknownServiceError(f"unknown service {key!r}")

	def title(self, key: str) -> Optional[str]:
		service = self._services.get(key)
		return service.title() if service else None

	def create(self, key: str, session, options: ServiceOptions) -> ServiceModel:
		return self.get(key).initialize(session, options)
