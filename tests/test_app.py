from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from conftest import run_task
from skylogs.aws.client import SessionError
from skylogs.models import LogGroup, RuntimeSelection, TailEvent
from skylogs.ui.app import KEY_HINTS, AppShell, SessionAcquired, place_center
from skylogs.ui.logs.model import LogGroupsLoaded, TailPolled
from skylogs.ui.logs.service import SERVICE_KEY, CloudWatchLogsService
from skylogs.ui.runtime import QUIT, KeyMsg, ResizeMsg, Task, iter_commands
from skylogs.ui.services import Service, ServiceInitError, ServiceModel, ServiceRegistry


class FakeModel(ServiceModel):
    def __init__(self, session):
        self.session = session
        self.received = []
        self.is_tailing = False
        self.is_capturing = False

    @property
    def tailing(self):
        return self.is_tailing

    @property
    def captures_input(self):
        return self.is_capturing

    def init(self):
        return Task(lambda: "init", name=f"init-{id(self)}")

    def update(self, msg):
        self.received.append(msg)
        return None

    def view(self, width, height):
        return "\n".join(f"row {i}" for i in range(height + 3))


class FakeService(Service):
    def __init__(self, key, fail_for=None):
        self.key = key
        self.fail_for = fail_for
        self.built = []

    def name(self):
        return self.key

    def title(self):
        return self.key.title()

    def initialize(self, session, options):
        if self.fail_for is not None and getattr(session, "region_name", None) == self.fail_for:
            raise ServiceInitError(f"{self.key} unavailable in {self.fail_for}")
        model = FakeModel(session)
        self.built.append(model)
        return model


def make_session(region):
    return SimpleNamespace(region_name=region)


@pytest.fixture
def loader():
    loader = Mock()
    loader.acquire.side_effect = lambda profile, region: make_session(region)
    return loader


@pytest.fixture
def logs_service():
    return FakeService("logs", fail_for="ap-south-2")


@pytest.fixture
def shell(loader, logs_service, settings):
    registry = ServiceRegistry([logs_service, FakeService("metrics")])
    selection = RuntimeSelection(region="us-east-1", service="logs", profile="dev")
    app = AppShell(
        loader,
        registry,
        selection,
        make_session("us-east-1"),
        settings,
        regions=("us-east-1", "us-west-2", "eu-west-1", "ap-south-2"),
    )
    app.update(ResizeMsg(100, 30))
    return app


def press(app, *keys):
    cmd = None
    for key in keys:
        cmd = app.update(KeyMsg(key))
    return cmd


class TestRouting:
    def test_ctrl_c_always_quits(self, shell):
        shell.service.is_tailing = True
        shell.service.is_capturing = True
        press(shell, "?")
        assert press(shell, "ctrl+c") is QUIT

    def test_q_quits_when_idle(self, shell):
        assert press(shell, "q") is QUIT

    def test_q_goes_to_service_while_tailing(self, shell):
        shell.service.is_tailing = True
        assert press(shell, "q") is None
        assert shell.service.received[-1] == KeyMsg("q")

    def test_captured_input_bypasses_shell_keys(self, shell):
        shell.service.is_capturing = True
        press(shell, "r", "s", "?", "q")
        assert not shell.region_picker.active
        assert not shell.service_picker.active
        assert not shell.show_help
        assert [m.key for m in shell.service.received if isinstance(m, KeyMsg)] == ["r", "s", "?", "q"]

    def test_other_keys_forwarded(self, shell):
        press(shell, "j", "t")
        assert [m.key for m in shell.service.received if isinstance(m, KeyMsg)] == ["j", "t"]

    def test_resize_is_forwarded(self, shell):
        shell.update(ResizeMsg(90, 20))
        assert (shell.width, shell.height) == (90, 20)
        assert shell.service.received[-1] == ResizeMsg(90, 20)

    def test_unknown_messages_forwarded(self, shell):
        shell.update("poll result")
        assert shell.service.received[-1] == "poll result"

    def test_startup_failure_raises(self, loader, logs_service, settings):
        registry = ServiceRegistry([logs_service])
        selection = RuntimeSelection(region="ap-south-2", service="logs")
        with pytest.raises(ServiceInitError):
            AppShell(loader, registry, selection, make_session("ap-south-2"), settings)


class TestHelp:
    def test_help_swallows_keys_until_closed(self, shell):
        press(shell, "?")
        assert shell.show_help
        assert press(shell, "j") is None
        assert press(shell, "esc") is None
        assert not shell.show_help
        assert shell.service.received[-1] == ResizeMsg(100, 30)

    def test_q_in_help_quits_when_idle(self, shell):
        press(shell, "?")
        assert press(shell, "q") is QUIT

    def test_q_in_help_only_closes_while_tailing(self, shell):
        shell.service.is_tailing = True
        press(shell, "?")
        assert press(shell, "q") is None
        assert not shell.show_help
        assert KeyMsg("q") not in shell.service.received

    def test_help_view(self, shell):
        press(shell, "?")
        assert "Press ? or Esc to close" in shell.view(100, 30)


class TestRegionChange:
    def test_picker_highlights_current_region(self, shell):
        press(shell, "r")
        assert shell.region_picker.active
        assert shell.region_picker.current() == "us-east-1"

    def test_escape_cancels(self, shell, loader):
        assert press(shell, "r", "down", "esc") is None
        assert not shell.region_picker.active
        loader.acquire.assert_not_called()

    def test_successful_change_swaps_service(self, shell, loader, logs_service):
        old = shell.service
        cmd = press(shell, "r", "down", "enter")
        assert isinstance(cmd, Task)
        assert shell.status == "switching to us-west-2..."
        assert shell.service is old

        result = run_task(cmd)
        loader.acquire.assert_called_once_with("dev", "us-west-2")
        follow_up = shell.update(result)

        assert shell.selection.region == "us-west-2"
        assert shell.service is not old
        assert shell.service.session.region_name == "us-west-2"
        assert shell.session is shell.service.session
        assert shell.status == ""
        assert shell.service.received == [ResizeMsg(100, 30)]
        assert [c.name for c in iter_commands(follow_up)] == [f"init-{id(shell.service)}"]

    def test_session_failure_keeps_everything(self, shell, loader):
        old_service, old_session = shell.service, shell.session
        loader.acquire.side_effect = SessionError("no credentials found for profile dev")
        cmd = press(shell, "r", "e", "u", "enter")
        assert shell.update(run_task(cmd)) is None

        assert shell.service is old_service
        assert shell.session is old_session
        assert shell.selection.region == "us-east-1"
        assert shell.status == "region change failed: no credentials found for profile dev"
        assert shell.pending_region is None

    def test_service_init_failure_keeps_previous(self, shell):
        old_service = shell.service
        cmd = press(shell, "r", "a", "p", "enter")
        shell.update(run_task(cmd))
        assert shell.service is old_service
        assert shell.selection.region == "us-east-1"
        assert "logs unavailable in ap-south-2" in shell.status

    def test_timeout_reports_failure(self, shell):
        cmd = press(shell, "r", "down", "enter")
        shell.update(cmd.on_timeout())
        assert shell.selection.region == "us-east-1"
        assert "timed out" in shell.status

    def test_second_change_while_pending_is_refused(self, shell):
        press(shell, "r", "down", "enter")
        assert press(shell, "r", "down", "down", "enter") is None
        assert shell.status == "already switching to us-west-2"

    def test_stale_session_ignored(self, shell):
        old_service = shell.service
        assert shell.update(SessionAcquired("eu-west-1", session=make_session("eu-west-1"))) is None
        assert shell.service is old_service

    def test_empty_filter_result_does_nothing(self, shell, loader):
        assert press(shell, "r", "z", "z", "z", "enter") is None
        assert shell.pending_region is None


@pytest.fixture
def clients():
    return {}


@pytest.fixture
def logs_shell(loader, settings, clients):
    def factory(session, **kwargs):
        return clients.setdefault(session.region_name, Mock())

    registry = ServiceRegistry([CloudWatchLogsService(client_factory=factory)])
    selection = RuntimeSelection(region="us-east-1", service=SERVICE_KEY, profile="dev")
    app = AppShell(
        loader,
        registry,
        selection,
        make_session("us-east-1"),
        settings,
        regions=("us-east-1", "us-west-2"),
    )
    app.update(ResizeMsg(100, 30))
    return app


def switch_to_west(app):
    cmd = press(app, "r", "down", "enter")
    return app.update(run_task(cmd))


class TestRegionChangeWithLogBrowser:
    def test_listing_from_previous_region_is_ignored(self, logs_shell, clients):
        old_listing = logs_shell.init()
        clients["us-east-1"].list_log_groups.return_value = ([LogGroup("/old/a"), LogGroup("/old/b")], None)

        new_listing = switch_to_west(logs_shell)
        clients["us-west-2"].list_log_groups.return_value = ([LogGroup("/new/x")], None)
        assert isinstance(new_listing, Task)

        logs_shell.update(run_task(new_listing))
        logs_shell.update(run_task(old_listing))

        assert logs_shell.selection.region == "us-west-2"
        assert [g.name for g in logs_shell.service.groups] == ["/new/x"]

    def test_poll_from_previous_region_is_ignored(self, logs_shell, clients):
        east = logs_shell.service
        logs_shell.update(LogGroupsLoaded(groups=(LogGroup("svc-a"),), owner=east.instance_id))
        clients["us-east-1"].fetch_events.return_value = []
        stale_due = logs_shell.update(run_task(press(logs_shell, " ", "t")))

        switch_to_west(logs_shell)
        west = logs_shell.service
        assert west is not east
        logs_shell.update(LogGroupsLoaded(groups=(LogGroup("svc-a"),), owner=west.instance_id))
        clients["us-west-2"].fetch_events.return_value = []
        assert isinstance(press(logs_shell, " ", "t"), Task)

        assert logs_shell.update(stale_due.msg) is None
        late = TailPolled(
            east.tail_session,
            west.watermark,
            events=(TailEvent(west.watermark + 1, "svc-a", "s", "from us-east-1"),),
        )
        assert logs_shell.update(late) is None
        assert len(west.window) == 0

    def test_failed_change_keeps_selection_and_window(self, logs_shell, loader):
        browser = logs_shell.service
        logs_shell.update(LogGroupsLoaded(groups=(LogGroup("svc-a"), LogGroup("svc-b")), owner=browser.instance_id))
        press(logs_shell, "a", "t")
        start = browser.watermark
        logs_shell.update(TailPolled(browser.tail_session, start, events=(TailEvent(start + 1, "svc-a", "s", "kept"),)))

        loader.acquire.side_effect = SessionError("load AWS config: no credentials found for profile 'dev'")
        assert switch_to_west(logs_shell) is None

        assert logs_shell.service is browser
        assert logs_shell.selection.region == "us-east-1"
        assert browser.selected == {"svc-a", "svc-b"}
        assert [e.message for e in browser.window] == ["kept"]
        assert browser.tailing
        assert "no credentials" in logs_shell.status


class TestServiceChange:
    def test_change_builds_new_service(self, shell):
        press(shell, "s")
        assert shell.service_picker.filtered == ["logs", "metrics"]
        assert shell.service_picker.current() == "logs"
        cmd = press(shell, "down", "enter")
        assert shell.selection.service == "metrics"
        assert shell.service.received == [ResizeMsg(100, 30)]
        assert isinstance(cmd, Task)

    def test_choosing_current_service_is_noop(self, shell):
        old = shell.service
        assert press(shell, "s", "enter") is None
        assert shell.service is old

    def test_failure_keeps_previous(self, shell, logs_service):
        old = shell.service
        shell.selection.service = "metrics"
        shell.session = make_session("ap-south-2")
        assert shell.change_service("logs") is None
        assert shell.service is old
        assert shell.selection.service == "metrics"
        assert shell.status.startswith("service change failed:")

    def test_unknown_service(self, shell):
        assert shell.change_service("nope") is None
        assert shell.status == "service change failed: unknown service 'nope'"


class TestView:
    def test_header_body_footer(self, shell):
        lines = shell.view(100, 10).split("\n")
        assert len(lines) == 10
        assert lines[0] == "profile: dev | region: us-east-1 | service: logs"
        assert lines[1:9] == [f"row {i}" for i in range(8)]
        assert lines[-1] == KEY_HINTS[:100]

    def test_defaults_in_header(self, shell):
        shell.selection.profile = None
        shell.selection.region = ""
        assert shell.view(100, 5).split("\n")[0] == "profile: default | region: sdk-default | service: logs"

    def test_status_replaces_hints(self, shell):
        shell.status = "switching to eu-west-1..."
        assert shell.view(100, 5).split("\n")[-1] == "switching to eu-west-1..."

    def test_picker_view(self, shell):
        press(shell, "r")
        assert "Select region" in shell.view(100, 30)


def test_place_center():
    rows = place_center("ab\ncd", 6, 4)
    assert rows == ["", "  ab", "  cd", ""]
