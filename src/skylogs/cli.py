# CLI entrypoint for skylogs

import sys

import typer

from . import config
from .aws.client import CloudError, LogsClient, SessionLoader
from .aws.queries import list_all_log_groups
from .aws.regions import AWS_REGIONS
from .handler import ServiceLogger, configure_logging
from .ui.app import AppShell
from .ui.logs.service import CloudWatchLogsService
from .ui.logs.views import format_bytes
from .ui.runtime import Program
from .ui.services import ServiceInitError, ServiceRegistry

app = typer.Typer(help="Keyboard-first browser for CloudWatch Logs.")


def build_registry() -> ServiceRegistry:
	return ServiceRegistry([CloudWatchLogsService()])


def _fail(message: str):
	typer.echo(typer.style(f"Error: {message}", fg=typer.colors.RED), err=True)
	raise typer.Exit(1)


def _resolve(state, cfg):
	try:
		user_cfg = config.load_user_config(cfg.config_path)
	except config.ConfigFileError as e:
		_fail(str(e))
	flags = config.Flags(
		profile=state.get("profile") or "",
		region=state.get("region") or "",
		service=state.get("service") or "",
	)
	return user_cfg, config.resolve_selection(flags, config.env_from_os(), user_cfg)


def _acquire(loader, selection):
	try:
		session = loader.acquire(selection.profile, selection.region)
	except CloudError as e:
		_fail(str(e))
	if not selection.region:
		selection.region = session.region_name or ""
	return session


@app.callback(invoke_without_command=True)
def main_callback(
	ctx: typer.Context,
	profile: str = typer.Option(None, "--profile", help="AWS profile"),
	region: str = typer.Option(None, "--region", help="AWS region"),
	service: str = typer.Option(None, "--service", help="Service to open (cloudwatch-logs)"),
	verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
	env: str = typer.Option(None, "--env", help="Path to a .env file with SKYLOGS_* settings"),
):
	"""Browse and tail CloudWatch Logs log groups."""
	if env:
		config.set_dotenv_path(env)
	ctx.obj = {"profile": profile, "region": region, "service": service, "verbose": verbose}
	if ctx.invoked_subcommand is None:
		browse(ctx.obj)


def browse(state):
	"""Run the interactive browser and persist the final selection."""
	cfg = config.load_config()
	logger = configure_logging(cfg.log_file, verbose=state.get("verbose", False))
	log = ServiceLogger(logger)
	user_cfg, selection = _resolve(state, cfg)
	loader = SessionLoader()
	session = _acquire(loader, selection)
	log.info("starting", profile=selection.profile, region=selection.region, service=selection.service)

	try:
		shell = AppShell(loader, build_registry(), selection, session, cfg, logger=log, regions=AWS_REGIONS)
	except ServiceInitError as e:
		_fail(str(e))

	final = Program(shell, logger=log).run()
	config.remember_selection(user_cfg, final.selection)
	try:
		config.save_user_config(cfg.config_path, user_cfg)
	except config.ConfigFileError as e:
		_fail(str(e))
	log.info("stopped", region=final.selection.region, service=final.selection.service)


@app.command()
def groups(ctx: typer.Context):
	"""List every log group in the selected region."""
	cfg = config.load_config()
	_, selection = _resolve(ctx.obj or {}, cfg)
	session = _acquire(SessionLoader(), selection)
	if not session.region_name:
		_fail("region must be set to list log groups")
	client = LogsClient.from_session(session, request_timeout=cfg.request_timeout, events_per_group=cfg.events_per_group)
	try:
		found = list_all_log_groups(client)
	except CloudError as e:
		_fail(str(e))
	if not found:
		typer.echo(typer.style("No log groups found.", dim=True), err=True)
	for group in found:
		retention = f"{group.retention_days}d" if group.retention_days else "never"
		typer.echo(f"{group.name}\t{retention}\t{format_bytes(group.stored_bytes)}")


@app.command()
def regions():
	"""Print the regions offered by the region picker."""
	for name in AWS_REGIONS:
		typer.echo(name)


def main():
	try:
		app()
	except typer.Exit:
		raise
	except Exception as e:
		typer.echo(typer.style(
			f"Fatal error: {type(e).__name__}: {e}",
			fg=typer.colors.RED
		), err=True)
		sys.exit(1)

if __name__ == "__main__":
	main()
