"""
Tests for gui/services/session_controller.py.

Time is virtual (ManualDispatcher) and the proxy is a Mock, so every
scenario runs instantly and without a network.
"""

import os
import sys
from unittest.mock import Mock

import pytest
import requests

ROOT = os.path.dirname(os.path.dirname(__file__))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from furnace.models.schemas import ColorScheme, RecordingOptions, Target
from furnace.proxy_client import ProxyClient
from furnace.status import StatusKind
from gui.services.session_controller import SessionController
from gui.state import Phase
from gui.utils.async_tasks import ManualDispatcher

NOW = 1_700_000_000.0
TARGET = Target(namespace="default", name="a")


def _controller(defer_async=False, clock=None, **kwargs):
    client = Mock(spec=ProxyClient)
    client.status.return_value = "idle"
    dispatcher = ManualDispatcher(defer_async=defer_async)
    controller = SessionController(
        client, dispatcher, time_source=clock or (lambda: NOW), **kwargs
    )
    return controller, client, dispatcher


def _selected(**kwargs):
    controller, client, dispatcher = _controller(**kwargs)
    controller.select_namespace("default")
    controller.select_target("a")
    return controller, client, dispatcher


def _recording(**kwargs):
    controller, client, dispatcher = _selected(**kwargs)
    controller.start()
    assert controller.state.phase is Phase.RECORDING
    return controller, client, dispatcher


def _ready(**kwargs):
    controller, client, dispatcher = _recording(**kwargs)
    client.status.side_effect = None
    client.status.return_value = "idle"
    controller.stop(1000)
    dispatcher.advance(2_000)
    assert controller.state.phase is Phase.ARTIFACT_READY
    return controller, client, dispatcher


# ===========================================================================
# Selection
# ===========================================================================


class TestSelection:
    def test_select_namespace_then_target(self):
        controller, _, _ = _selected()

        assert controller.state.namespace == "default"
        assert controller.state.selected_target == TARGET
        assert controller.state.phase is Phase.IDLE

    def test_target_requires_namespace(self):
        controller, _, _ = _controller()

        assert controller.select_target("a") is False
        assert controller.state.selected_target is None

    def test_namespace_change_clears_target_and_artifact(self):
        controller, _, _ = _ready()

        assert controller.select_namespace("prod") is True

        assert controller.state.selected_target is None
        assert controller.state.artifact_epoch is None
        assert controller.state.phase is Phase.IDLE

    def test_target_change_clears_only_artifact(self):
        controller, _, _ = _ready()

        assert controller.select_target("b") is True

        assert controller.state.namespace == "default"
        assert controller.state.selected_target == Target(namespace="default", name="b")
        assert controller.state.artifact_epoch is None
        assert controller.state.phase is Phase.IDLE

    def test_selection_locked_while_recording(self):
        controller, _, _ = _recording()

        assert controller.select_namespace("prod") is False
        assert controller.select_target("b") is False
        assert controller.state.selected_target == TARGET

    def test_selection_locked_while_polling(self):
        controller, client, _ = _recording()
        client.status.return_value = "perf script"
        controller.stop(1000)

        assert controller.select_target("b") is False
        assert controller.state.phase is Phase.STOPPING_AND_POLLING

    def test_selection_locked_while_busy(self):
        controller, _, dispatcher = _selected(defer_async=True)
        controller.start()

        assert controller.select_namespace("prod") is False
        dispatcher.flush_async()
        assert controller.state.namespace == "default"


# ===========================================================================
# Options
# ===========================================================================


class TestOptions:
    def test_options_are_read_at_stop_time(self):
        controller, client, _ = _recording()

        controller.set_option("color_scheme", "java")
        controller.set_option("inverted", False)
        controller.set_option("use_symfs", True)
        controller.stop(1000)

        _, options, _ = client.stop.call_args[0]
        assert options == RecordingOptions(
            color_scheme=ColorScheme.JAVA, inverted=False, use_symfs=True
        )

    def test_invalid_option_leaves_options_unchanged(self):
        controller, _, _ = _controller()

        with pytest.raises(ValueError):
            controller.set_option("color_scheme", "magenta")

        assert controller.state.options == RecordingOptions()

    def test_set_options_always_allowed(self):
        controller, _, _ = _recording()

        controller.set_options(RecordingOptions(color_scheme="red"))

        assert controller.state.options.color_scheme is ColorScheme.RED


# ===========================================================================
# Start
# ===========================================================================


class TestStart:
    def test_start_accepted_enters_recording(self):
        controller, client, _ = _selected()

        assert controller.start() is True

        client.start.assert_called_once_with(TARGET)
        state = controller.state
        assert state.phase is Phase.RECORDING
        assert state.busy is False
        assert state.status_label == "perf record"
        assert state.last_status.ordinal == 0

    def test_status_is_optimistic_while_start_in_flight(self):
        controller, _, dispatcher = _selected(defer_async=True)

        controller.start()

        state = controller.state
        assert state.busy is True
        assert state.phase is Phase.IDLE
        assert state.status_label == "perf record"

        dispatcher.flush_async()
        assert state.busy is False
        assert state.phase is Phase.RECORDING

    def test_start_failure_rolls_back(self):
        controller, client, _ = _selected()
        client.start.side_effect = requests.ConnectionError("network down")

        assert controller.start() is True

        state = controller.state
        assert state.busy is False
        assert state.phase is Phase.IDLE
        assert state.status_label is None
        assert not controller.polling

    def test_start_requires_target(self):
        controller, client, _ = _controller()
        controller.select_namespace("default")

        assert controller.start() is False
        client.start.assert_not_called()

    def test_second_start_rejected_while_busy(self):
        controller, client, dispatcher = _selected(defer_async=True)

        assert controller.start() is True
        assert controller.start() is False
        assert controller.stop(1000) is False

        assert dispatcher.pending_tasks == 1
        dispatcher.flush_async()
        client.start.assert_called_once_with(TARGET)

    def test_start_rejected_while_recording(self):
        controller, client, _ = _recording()

        assert controller.start() is False
        assert client.start.call_count == 1

    def test_restart_from_ready_hides_artifact(self):
        controller, _, dispatcher = _ready(defer_async=False)
        controller.dispatcher.defer_async = True

        controller.start()

        assert controller.state.artifact_epoch is None
        dispatcher.flush_async()
        assert controller.state.phase is Phase.RECORDING
        assert controller.state.artifact_epoch is None

    def test_failed_restart_restores_artifact(self):
        controller, client, _ = _ready()
        epoch = controller.state.artifact_epoch
        client.start.side_effect = requests.HTTPError("409 Conflict")

        controller.start()

        assert controller.state.phase is Phase.ARTIFACT_READY
        assert controller.state.artifact_epoch == epoch
        assert controller.state.status_label is None

    def test_artifact_kept_until_confirmed_when_not_hiding(self):
        controller, _, dispatcher = _ready()
        controller.hide_artifact_on_start = False
        dispatcher.defer_async = True

        controller.start()
        assert controller.state.artifact_epoch is not None

        dispatcher.flush_async()
        assert controller.state.artifact_epoch is None


# ===========================================================================
# Stop and polling
# ===========================================================================


class TestStopAndPoll:
    def test_full_cycle_to_artifact(self):
        controller, client, dispatcher = _recording()
        controller.set_options(RecordingOptions(color_scheme="hot", inverted=True))
        client.status.side_effect = ["perf record", "stackcollapse", "idle"]

        assert controller.stop(1000) is True

        client.stop.assert_called_once_with(
            TARGET, RecordingOptions(color_scheme="hot", inverted=True), 980
        )
        state = controller.state
        assert state.phase is Phase.STOPPING_AND_POLLING
        assert controller.polling

        dispatcher.advance(2_000)
        assert state.last_status.kind is StatusKind.PERF_RECORD
        dispatcher.advance(2_000)
        assert state.last_status.kind is StatusKind.STACK_COLLAPSE
        assert state.phase is Phase.STOPPING_AND_POLLING
        dispatcher.advance(2_000)

        assert state.phase is Phase.ARTIFACT_READY
        assert state.artifact_epoch == int(NOW * 1000)
        assert not controller.polling
        assert state.status_label is None

        dispatcher.advance(60_000)
        assert client.status.call_count == 3
        assert dispatcher.pending_timers == 0

    def test_polls_on_fixed_cadence(self):
        controller, client, dispatcher = _recording()
        client.status.return_value = "perf script"
        controller.stop(1000)

        dispatcher.advance(1_999)
        assert client.status.call_count == 0
        dispatcher.advance(1)
        assert client.status.call_count == 1
        dispatcher.advance(2_000)
        assert client.status.call_count == 2
        dispatcher.advance(6_000)
        assert client.status.call_count == 5

    def test_stop_clamps_width(self):
        controller, client, _ = _recording()

        controller.stop(10)

        assert client.stop.call_args[0][2] == 0

    def test_stop_failure_returns_to_recording(self):
        controller, client, dispatcher = _recording()
        client.stop.side_effect = requests.ConnectionError("gone")

        assert controller.stop(1000) is True

        assert controller.state.phase is Phase.RECORDING
        assert controller.state.busy is False
        assert dispatcher.pending_timers == 0
        assert controller.state.can_stop

    def test_stop_rejected_when_idle(self):
        controller, client, _ = _selected()

        assert controller.stop(1000) is False
        client.stop.assert_not_called()

    def test_busy_during_stop(self):
        controller, _, dispatcher = _recording()
        dispatcher.defer_async = True

        controller.stop(1000)
        assert controller.state.busy is True
        assert controller.state.phase is Phase.RECORDING
        assert controller.stop(1000) is False

        dispatcher.flush_async()
        assert controller.state.busy is False
        assert controller.state.phase is Phase.STOPPING_AND_POLLING

    def test_poll_failures_are_retried(self):
        controller, client, dispatcher = _recording()
        client.status.side_effect = [
            requests.Timeout("slow"),
            requests.ConnectionError("reset"),
            "idle",
        ]
        controller.stop(1000)

        dispatcher.advance(4_000)
        assert controller.state.phase is Phase.STOPPING_AND_POLLING
        dispatcher.advance(2_000)

        assert controller.state.phase is Phase.ARTIFACT_READY

    def test_unknown_status_keeps_polling(self):
        controller, client, dispatcher = _recording()
        client.status.side_effect = ["rendering?", "idle"]
        controller.stop(1000)

        dispatcher.advance(2_000)
        state = controller.state
        assert state.phase is Phase.STOPPING_AND_POLLING
        assert state.last_status.ordinal == -1
        assert state.status_label == "rendering?"
        assert state.artifact_epoch is None

        dispatcher.advance(2_000)
        assert state.phase is Phase.ARTIFACT_READY

    def test_epochs_increase_across_runs(self):
        controller, client, dispatcher = _ready()
        first = controller.state.artifact_epoch

        controller.start()
        controller.stop(1000)
        dispatcher.advance(2_000)

        assert controller.state.phase is Phase.ARTIFACT_READY
        assert controller.state.artifact_epoch > first

    def test_new_run_clears_artifact_until_idle(self):
        controller, client, dispatcher = _ready()
        client.status.return_value = "flamegraph"

        controller.start()
        controller.stop(1000)
        dispatcher.advance(2_000)

        assert controller.state.artifact_epoch is None


# ===========================================================================
# Teardown and stale responses
# ===========================================================================


class TestTeardown:
    def test_close_cancels_poll_timer(self):
        controller, client, dispatcher = _recording()
        client.status.return_value = "perf script"
        controller.stop(1000)

        controller.close()
        dispatcher.advance(10_000)

        assert client.status.call_count == 0
        assert dispatcher.pending_timers == 0

    def test_late_status_after_close_is_dropped(self):
        controller, client, dispatcher = _recording()
        controller.stop(1000)
        dispatcher.defer_async = True
        client.status.return_value = "idle"

        dispatcher.advance(2_000)
        assert dispatcher.pending_tasks == 1
        controller.close()
        dispatcher.flush_async()

        assert controller.state.phase is Phase.STOPPING_AND_POLLING
        assert controller.state.artifact_epoch is None
        assert dispatcher.pending_timers == 0

    def test_commands_rejected_after_close(self):
        controller, client, _ = _selected()
        controller.close()

        assert controller.start() is False
        client.start.assert_not_called()


# ===========================================================================
# Observers
# ===========================================================================


class TestListeners:
    def test_listener_sees_busy_then_settled(self):
        controller, _, _ = _selected()
        seen = []
        controller.subscribe(lambda state: seen.append((state.busy, state.phase)))

        controller.start()

        assert seen == [(True, Phase.IDLE), (False, Phase.RECORDING)]
