"""Core business services for the patching system."""

from .config_service import ConfigService
from .patch_service import PatchService
from .report_service import ReportService
from .health_check_service import (
    HealthCheck,
    HealthCheckResult,
    CommandHealthCheck,
    ServiceHealthCheck,
)

__all__ = [
    'ConfigService',
    'PatchService',
    'ReportService',
    'HealthCheck',
    'HealthCheckResult',
    'CommandHealthCheck',
    'ServiceHealthCheck'
]
