"""Unit tests for the per-host session model."""

import pytest

from core.models.config import PatchConfig
from core.models.session import (
    HostPatchSession,
    PostAction,
    RebootOutcome,
    SessionState,
)


class TestHostPatchSession:

    def setup_method(self):
        self.session = HostPatchSession(hostname="web01", instance_id="i-0abc", config=PatchConfig())

    def test_initial_state(self):
        assert self.session.state == SessionState.START
        assert self.session.reboot_decision is None
        assert not self.session.has_rebooted
        assert self.session.start_time is not None

    def test_reboot_decision_recorded_once(self):
        self.session.record_reboot_decision(False)

        with pytest.raises(RuntimeError):
            self.session.record_reboot_decision(True)
        assert self.session.reboot_decision is False

    def test_reboot_recorded_once(self):
        self.session.record_reboot(RebootOutcome(reason="new kernel installed", reachable_after=True))

        with pytest.raises(RuntimeError):
            self.session.record_reboot(RebootOutcome(reason="advisory"))

    def test_reboot_not_queued_twice(self):
        assert self.session.queue_action(PostAction.REBOOT, "new kernel installed") is True
        assert self.session.queue_action(PostAction.REBOOT, "advisory") is False

        assert self.session.pending_actions == [PostAction.REBOOT]
        assert self.session.reboot_reason == "new kernel installed"

    def test_reboot_not_queued_after_reboot(self):
        self.session.record_reboot(RebootOutcome(reason="configured", reachable_after=True))

        assert self.session.queue_action(PostAction.REBOOT, "advisory") is False
        assert self.session.pending_actions == []

    def test_actions_drain_in_order(self):
        self.session.queue_action(PostAction.REBOOT, "configured")
        self.session.queue_action(PostAction.ADVISORY_REBOOT_CHECK)

        assert self.session.pop_action() == PostAction.REBOOT
        assert self.session.pop_action() == PostAction.ADVISORY_REBOOT_CHECK
        assert self.session.pop_action() is None

    def test_fail_is_terminal(self):
        self.session.transition(SessionState.UPDATE)
        self.session.queue_action(PostAction.ADVISORY_REBOOT_CHECK)

        self.session.fail(SessionState.UPDATE_FAILED, "patch", "rc=1")

        assert self.session.is_failed
        assert self.session.pending_actions == []
        assert self.session.messages[-1] == "[patch] FAILED: rc=1"
        with pytest.raises(RuntimeError):
            self.session.transition(SessionState.POSTCHECK)

    def test_fail_requires_failure_state(self):
        with pytest.raises(ValueError):
            self.session.fail(SessionState.DONE, "patch", "nope")

    def test_complete(self):
        self.session.complete()

        assert self.session.is_successful
        assert self.session.duration is not None

    def test_to_dict(self):
        self.session.pre_kernel = "4.18.0-1"
        self.session.post_kernel = "4.18.0-2"
        self.session.record_reboot_decision(True)
        self.session.record_reboot(
            RebootOutcome(reason="new kernel installed", reachable_after=True, elapsed_seconds=61.27)
        )
        self.session.complete()

        data = self.session.to_dict()

        assert data["state"] == "done"
        assert data["successful"] is True
        assert data["reboot_decision"] is True
        assert data["reboot"] == {
            "reason": "new kernel installed",
            "reachable_after": True,
            "elapsed_seconds": 61.3,
        }
        assert data["update"] is None
