"""Per-host patch session model."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

from core.models.config import PatchConfig


class SessionState(Enum):
    """States of the per-host patch state machine."""
    START = "start"
    PRECHECK = "precheck"
    UPDATE = "update"
    DECIDE_REBOOT = "decide_reboot"
    REBOOT = "reboot"
    WAIT_REACHABLE = "wait_reachable"
    ADVISORY_REBOOT_CHECK = "advisory_reboot_check"
    POSTCHECK = "postcheck"
    DONE = "done"

    # Terminal failures
    PRECHECK_FAILED = "precheck_failed"
    UPDATE_FAILED = "update_failed"
    REBOOT_TIMEOUT = "reboot_timeout"


FAILURE_STATES = (
    SessionState.PRECHECK_FAILED,
    SessionState.UPDATE_FAILED,
    SessionState.REBOOT_TIMEOUT,
)


class PostAction(Enum):
    """Actions queued during the patch phase and drained in order."""
    REBOOT = "reboot"
    ADVISORY_REBOOT_CHECK = "advisory_reboot_check"


@dataclass
class UpdateResult:
    """Outcome of the package update step."""
    changed: bool = False
    message: str = ""
    skipped: bool = False


@dataclass
class RebootOutcome:
    """Outcome of a reboot and the wait for the host to come back."""
    reason: str
    reachable_after: bool = False
    elapsed_seconds: float = 0.0


@dataclass
class HostPatchSession:
    """State of one host for one patching run.

    Created at session start, mutated through each phase and discarded
    once the run report is written.
    """

    hostname: str
    instance_id: str
    config: PatchConfig = field(default_factory=PatchConfig)

    state: SessionState = SessionState.START

    # Kernel tracking
    pre_kernel: Optional[str] = None
    post_kernel: Optional[str] = None

    # Phase outcomes
    update_result: Optional[UpdateResult] = None
    reboot_outcome: Optional[RebootOutcome] = None
    pending_actions: List[PostAction] = field(default_factory=list)
    reboot_reason: Optional[str] = None
    health_results: Dict[str, bool] = field(default_factory=dict)

    # Observations
    facts: Dict[str, Any] = field(default_factory=dict)
    messages: List[str] = field(default_factory=list)

    # Failure tracking
    failed_phase: Optional[str] = None
    error: Optional[str] = None

    # Timing
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    _reboot_decision: Optional[bool] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        if self.start_time is None:
            self.start_time = datetime.utcnow()

    @property
    def reboot_decision(self) -> Optional[bool]:
        return self._reboot_decision

    @property
    def has_rebooted(self) -> bool:
        return self.reboot_outcome is not None

    @property
    def is_failed(self) -> bool:
        return self.state in FAILURE_STATES

    @property
    def is_terminal(self) -> bool:
        return self.is_failed or self.state == SessionState.DONE

    @property
    def is_successful(self) -> bool:
        return self.state == SessionState.DONE

    @property
    def duration(self) -> Optional[timedelta]:
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return None

    def transition(self, state: SessionState) -> None:
        """Move to the next state. Terminal sessions do not move."""
        if self.is_terminal:
            raise RuntimeError(
                f"Session for {self.hostname} is already terminal ({self.state.value})"
            )
        self.state = state

    def report(self, phase: str, message: str) -> str:
        """Record a human-readable status line for a phase."""
        line = f"[{phase}] {message}"
        self.messages.append(line)
        return line

    def record_reboot_decision(self, decision: bool) -> None:
        """Store the reboot decision. It may be computed only once."""
        if self._reboot_decision is not None:
            raise RuntimeError(f"Reboot decision for {self.hostname} already recorded")
        self._reboot_decision = decision

    def queue_action(self, action: PostAction, reason: Optional[str] = None) -> bool:
        """Queue a post-action. Reboots are never queued twice or after a reboot."""
        if action == PostAction.REBOOT and (
            self.has_rebooted or PostAction.REBOOT in self.pending_actions
        ):
            return False
        if action in self.pending_actions:
            return False
        if action == PostAction.REBOOT:
            self.reboot_reason = reason
        self.pending_actions.append(action)
        return True

    def pop_action(self) -> Optional[PostAction]:
        if not self.pending_actions:
            return None
        return self.pending_actions.pop(0)

    def record_reboot(self, outcome: RebootOutcome) -> None:
        """Store the reboot outcome. A host reboots at most once per session."""
        if self.has_rebooted:
            raise RuntimeError(f"Host {self.hostname} was already rebooted in this session")
        self.reboot_outcome = outcome

    def fail(self, state: SessionState, phase: str, error: str) -> None:
        """Terminate the session in a failure state."""
        if state not in FAILURE_STATES:
            raise ValueError(f"{state.value} is not a failure state")
        self.state = state
        self.failed_phase = phase
        self.error = error
        self.pending_actions.clear()
        self.end_time = datetime.utcnow()
        self.report(phase, f"FAILED: {error}")

    def complete(self) -> None:
        self.transition(SessionState.DONE)
        self.end_time = datetime.utcnow()

    def to_dict(self) -> Dict[str, Any]:
        """Convert session to dictionary."""
        return {
            'hostname': self.hostname,
            'instance_id': self.instance_id,
            'state': self.state.value,
            'successful': self.is_successful,
            'failed_phase': self.failed_phase,
            'error': self.error,
            'pre_kernel': self.pre_kernel,
            'post_kernel': self.post_kernel,
            'update': {
                'changed': self.update_result.changed,
                'skipped': self.update_result.skipped,
                'message': self.update_result.message,
            } if self.update_result else None,
            'reboot_decision': self._reboot_decision,
            'reboot': {
                'reason': self.reboot_outcome.reason,
                'reachable_after': self.reboot_outcome.reachable_after,
                'elapsed_seconds': round(self.reboot_outcome.elapsed_seconds, 1),
            } if self.reboot_outcome else None,
            'health_checks': self.health_results,
            'facts': self.facts,
            'messages': self.messages,
            'start_time': self.start_time.isoformat() if self.start_time else None,
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'duration_seconds': self.duration.total_seconds() if self.duration else None,
        }
