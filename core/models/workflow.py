from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Any, Iterable
from uuid import uuid4

from core.models.session import HostPatchSession


class PhaseGroup(Enum):
    """Selectable phase groups (run tags)."""
    PRE_PATCH = "pre_patch"
    PATCH = "patch"
    POST_PATCH = "post_patch"

    @classmethod
    def parse_tags(cls, tags: Optional[Iterable[str]]) -> List["PhaseGroup"]:
        """Turn tag names into phase groups. No tags selects every group."""
        if not tags:
            return list(cls)

        groups = []
        for tag in tags:
            try:
                group = cls(tag.strip().lower())
            except ValueError:
                valid = ", ".join(g.value for g in cls)
                raise ValueError(f"Unknown tag '{tag}'. Valid tags: {valid}")
            if group not in groups:
                groups.append(group)

        # Execution order is fixed regardless of the order tags were given in
        return [g for g in cls if g in groups]


class WorkflowStatus(Enum):
    """Overall workflow status."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    PARTIAL_SUCCESS = "partial_success"


@dataclass
class WorkflowResult:
    """Complete patching run result."""

    # Basic identification
    workflow_id: str = field(default_factory=lambda: str(uuid4()))
    workflow_name: str = "RHEL Patching"
    phase_groups: List[PhaseGroup] = field(default_factory=lambda: list(PhaseGroup))

    # Status and timing
    status: WorkflowStatus = WorkflowStatus.PENDING
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    # Host sessions keyed by hostname
    sessions: Dict[str, HostPatchSession] = field(default_factory=dict)

    # Error tracking
    errors: List[str] = field(default_factory=list)

    # Output files
    output_files: List[str] = field(default_factory=list)

    def __post_init__(self):
        """Initialize workflow result."""
        if self.start_time is None:
            self.start_time = datetime.utcnow()

    @property
    def duration(self) -> Optional[timedelta]:
        """Calculate total workflow duration."""
        if self.start_time and self.end_time:
            return self.end_time - self.start_time
        return None

    @property
    def total_hosts(self) -> int:
        return len(self.sessions)

    @property
    def successful_hosts(self) -> int:
        return len([s for s in self.sessions.values() if s.is_successful])

    @property
    def failed_hosts(self) -> int:
        return len([s for s in self.sessions.values() if s.is_failed])

    @property
    def rebooted_hosts(self) -> int:
        return len([s for s in self.sessions.values() if s.has_rebooted])

    @property
    def is_successful(self) -> bool:
        """Check if workflow completed successfully."""
        return self.status == WorkflowStatus.COMPLETED

    @property
    def success_rate(self) -> float:
        """Calculate overall success rate."""
        if self.total_hosts == 0:
            return 0.0
        return (self.successful_hosts / self.total_hosts) * 100

    def add_session(self, session: HostPatchSession) -> None:
        self.sessions[session.hostname] = session

    def add_error(self, error: str) -> None:
        """Add an error to the workflow result."""
        self.errors.append(error)

    def mark_started(self) -> None:
        """Mark workflow as started."""
        self.status = WorkflowStatus.RUNNING
        if self.start_time is None:
            self.start_time = datetime.utcnow()

    def mark_finished(self) -> None:
        """Derive the final status from the host sessions."""
        self.end_time = datetime.utcnow()
        if self.total_hosts and self.successful_hosts == self.total_hosts:
            self.status = WorkflowStatus.COMPLETED
        elif self.successful_hosts:
            self.status = WorkflowStatus.PARTIAL_SUCCESS
        else:
            self.status = WorkflowStatus.FAILED

    def get_summary(self) -> Dict[str, Any]:
        """Get workflow execution summary."""
        return {
            'workflow_id': self.workflow_id,
            'workflow_name': self.workflow_name,
            'status': self.status.value,
            'tags': [g.value for g in self.phase_groups],
            'duration': str(self.duration) if self.duration else None,
            'total_hosts': self.total_hosts,
            'successful_hosts': self.successful_hosts,
            'failed_hosts': self.failed_hosts,
            'rebooted_hosts': self.rebooted_hosts,
            'success_rate': round(self.success_rate, 2),
            'host_states': {name: s.state.value for name, s in self.sessions.items()},
            'total_errors': len(self.errors),
            'output_files': len(self.output_files)
        }
