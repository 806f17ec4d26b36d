# CloudWatch Logs service plugin

from botocore.exceptions import BotoCoreError

from ...aws.client import LogsClient
from ..services import Service, ServiceInitError, ServiceOptions
from .model import LogBrowser

SERVICE_KEY = "cloudwatch-logs"


class CloudWatchLogsService(Service):
	"""Wires the log browser to the service registry."""

	def __init__(self, client_factory=None):
		self.client_factory = client_factory or LogsClient.from_session

	def name(self) -> str:
		return SERVICE_KEY

	def title(self) -> str:
		return "CloudWatch Logs"

	def initialize(self, session, options: ServiceOptions) -> LogBrowser:
		if not getattr(session, "region_name", None):
			raise ServiceInitError("region must be set before loading CloudWatch Logs")
		cfg = options.config
		try:
			client = self.client_factory(
				session,
				request_timeout=getattr(cfg, "request_timeout", 30),
				events_per_group=getattr(cfg, "events_per_group", 100),
			)
		except BotoCoreError as e:
			raise ServiceInitError(f"create CloudWatch Logs client: {e}")
		return LogBrowser(client, config=cfg, logger=options.logger.child("logs"))
