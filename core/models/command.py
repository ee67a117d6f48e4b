"""Remote command result model."""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass
class CommandResult:
    """Exit status and output of a command run on a managed host."""
    rc: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.rc == 0

    def to_dict(self) -> Dict[str, Any]:
        return {'rc': self.rc, 'stdout': self.stdout, 'stderr': self.stderr}
