"""Run report generation."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from core.models.workflow import WorkflowResult
from infrastructure.storage.json_handler import JSONHandler


class ReportService:
    """Writes patch run reports as JSON."""

    def __init__(self, json_handler: Optional[JSONHandler] = None):
        self.json_handler = json_handler or JSONHandler()
        self.logger = logging.getLogger(__name__)

    def build_report(self, workflow_result: WorkflowResult) -> Dict[str, Any]:
        """Assemble the report document for a finished run."""
        return {
            "generated_at": datetime.utcnow().isoformat(),
            "summary": workflow_result.get_summary(),
            "errors": workflow_result.errors,
            "hosts": [session.to_dict() for session in workflow_result.sessions.values()],
        }

    def save_workflow_report(self, workflow_result: WorkflowResult, output_dir: str = "reports") -> str:
        """Write the report and return its path."""
        timestamp = datetime.utcnow().strftime("%Y%m%d_%H%M%S")
        file_path = str(Path(output_dir) / f"patch_report_{timestamp}_{workflow_result.workflow_id[:8]}.json")

        path = self.json_handler.write_json(file_path, self.build_report(workflow_result))
        self.logger.info(f"Report saved: {path}")
        return path
