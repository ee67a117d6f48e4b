"""AWS EC2 client for instance reboot operations."""

from typing import List, Dict, Any, Optional
from datetime import datetime

from botocore.exceptions import ClientError
from .session_manager import AWSSessionManager
from core.utils.logger import get_infrastructure_logger


class EC2Client:
    """AWS EC2 client wrapper for the instance operations patching needs."""

    def __init__(
        self,
        region: str,
        account_id: Optional[str] = None,
        role_name: Optional[str] = None,
        run_mode: str = "local",
    ):
        self.region = region
        self.account_id = account_id
        self.role_name = role_name
        self.run_mode = run_mode
        self.logger = get_infrastructure_logger(__name__)
        self._client = None
        self._credentials_expiration = None
        self._session_manager = AWSSessionManager(region=region)

    def _ensure_client(self) -> None:
        """Create the EC2 client on first use and again when role credentials expire."""
        if self._client is None or self._session_manager.needs_new_client(
            self.account_id, self.role_name, self._credentials_expiration
        ):
            session = self._session_manager.get_session(
                self.account_id, self.role_name, self.run_mode
            )
            self._client = session.client("ec2", region_name=self.region)
            self._credentials_expiration = self._session_manager.get_expiration(
                self.account_id, self.role_name
            )

    def _handle_error(self, operation: str, error: Exception) -> None:
        """Handle AWS client errors with consistent logging."""
        if isinstance(error, ClientError):
            error_code = error.response["Error"]["Code"]
            self.logger.error(f"{operation} failed: {error_code}")
        else:
            self.logger.error(f"{operation} failed: {str(error)}")
        raise error

    async def reboot_instances(self, instance_ids: List[str]) -> Dict[str, Any]:
        """Reboot EC2 instances."""
        try:
            self._ensure_client()
            self._client.reboot_instances(InstanceIds=instance_ids)
            self.logger.info(f"Reboot requested for {', '.join(instance_ids)}")
            return {
                "rebooted_instances": instance_ids,
                "timestamp": datetime.utcnow().isoformat(),
            }
        except Exception as e:
            self._handle_error("Reboot instances", e)
