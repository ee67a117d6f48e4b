"""Configuration service interface."""

from abc import ABC, abstractmethod
from typing import Any, List, Optional
from core.models.config import WorkflowConfig, AWSConfig, PatchConfig


class IConfigService(ABC):
    """Interface for configuration management."""

    @abstractmethod
    async def load_workflow_config(self, config_path: str) -> WorkflowConfig:
        """Load workflow configuration from file.

        Args:
            config_path: Path to the configuration file

        Returns:
            WorkflowConfig object

        Raises:
            ConfigurationError: If config is invalid or not found
        """
        pass

    @abstractmethod
    def validate_config(self) -> List[str]:
        """Validate the loaded configuration.

        Returns:
            List of validation errors, empty when valid
        """
        pass

    @abstractmethod
    def get_workflow_config(self) -> Optional[WorkflowConfig]:
        """Get the loaded workflow configuration."""
        pass

    @abstractmethod
    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get a configuration setting by key.

        Args:
            key: Setting key (supports dot notation)
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        pass

    @abstractmethod
    def get_aws_config(self) -> Optional[AWSConfig]:
        """Get AWS-specific configuration."""
        pass

    @abstractmethod
    def get_patch_config(self) -> Optional[PatchConfig]:
        """Get the run-scoped patch configuration."""
        pass

    @abstractmethod
    async def reload_config(self) -> None:
        """Reload configuration from source."""
        pass
