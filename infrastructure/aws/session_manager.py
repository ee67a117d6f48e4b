"""AWS session manager"""

import os
import boto3
from typing import Optional, Dict, Tuple
from datetime import datetime, timedelta, timezone
from core.utils.logger import get_infrastructure_logger


# Assumed-role sessions are replaced this long before their credentials expire
REFRESH_MARGIN = timedelta(minutes=5)


class AWSSessionManager:
    """Builds boto3 sessions for the accounts that own the patch targets.

    Patch runs can outlive a single set of STS credentials (long yum
    transactions followed by a reboot wait), so assumed-role sessions are
    cached together with their expiry and re-assumed when close to it.
    """

    _sessions: Dict[str, boto3.Session] = {}
    _expirations: Dict[str, datetime] = {}

    def __init__(self, region: str = "ap-southeast-2"):
        self.region = region
        self.logger = get_infrastructure_logger(__name__)

    def _session_key(self, account_id: str, role_name: str) -> str:
        return f"role:{account_id}:{role_name}:{self.region}"

    def get_session(
        self,
        account_id: Optional[str] = None,
        role_name: Optional[str] = None,
        run_mode: str = "local",
        session_duration: int = 3600,
    ) -> boto3.Session:
        """Return a session for the target account.

        Args:
            account_id: Account owning the instances; default credentials when empty
            role_name: Role to assume in that account
            run_mode: "local" assumes roles from the caller's credentials,
                "pipeline" uses credentials exported into the environment
            session_duration: Lifetime requested for assumed-role credentials

        Raises:
            ValueError: On an unknown run mode or malformed account id
            RuntimeError: If the role could not be assumed
        """
        if run_mode == "pipeline":
            self.logger.debug("Using pipeline mode with environment credentials")
            return self.get_session_from_env(region=self.region)

        if run_mode != "local":
            raise ValueError(f"Unsupported run_mode: {run_mode}. Use 'local' or 'pipeline'")

        if not account_id or not role_name:
            self.logger.debug("No account_id or role_name provided, using default session")
            return boto3.Session(region_name=self.region)

        key = self._session_key(account_id, role_name)
        if key in self._sessions and not self.is_expiring(account_id, role_name):
            return self._sessions[key]

        session, expiration = self._assume_role_session(account_id, role_name, session_duration)
        self._sessions[key] = session
        self._expirations[key] = expiration
        return session

    def get_expiration(self, account_id: Optional[str], role_name: Optional[str]) -> Optional[datetime]:
        """Expiry of the cached assumed-role credentials, if any."""
        if not account_id or not role_name:
            return None
        return self._expirations.get(self._session_key(account_id, role_name))

    def is_expiring(self, account_id: Optional[str], role_name: Optional[str]) -> bool:
        """Whether cached assumed-role credentials need replacing."""
        expiration = self.get_expiration(account_id, role_name)
        if expiration is None:
            return False
        return datetime.now(timezone.utc) + REFRESH_MARGIN >= expiration

    def needs_new_client(
        self,
        account_id: Optional[str],
        role_name: Optional[str],
        built_with: Optional[datetime],
    ) -> bool:
        """Whether a client built from credentials expiring at `built_with` is stale.

        Clients for the same account share one cached session, so a client
        is also stale once another client has re-assumed the role.
        """
        return (
            self.is_expiring(account_id, role_name)
            or self.get_expiration(account_id, role_name) != built_with
        )

    def _assume_role_session(
        self, account_id: str, role_name: str, session_duration: int = 3600
    ) -> Tuple[boto3.Session, datetime]:
        if not account_id.isdigit() or len(account_id) != 12:
            raise ValueError(f"Invalid AWS account ID: {account_id}")

        role_arn = f"arn:aws:iam::{account_id}:role/{role_name}"
        try:
            response = boto3.client("sts", region_name=self.region).assume_role(
                RoleArn=role_arn,
                RoleSessionName=f"rhel-patching-{datetime.utcnow().strftime('%Y%m%d-%H%M%S')}",
                DurationSeconds=session_duration,
            )
        except Exception as e:
            self.logger.error(f"Failed to assume role {role_arn}: {str(e)}")
            raise RuntimeError(f"Role assumption failed for {role_arn}: {str(e)}") from e

        credentials = response["Credentials"]
        expiration = credentials.get("Expiration") or (
            datetime.now(timezone.utc) + timedelta(seconds=session_duration)
        )
        self.logger.info(f"Assumed role {role_arn} (expires {expiration.isoformat()})")

        session = boto3.Session(
            aws_access_key_id=credentials["AccessKeyId"],
            aws_secret_access_key=credentials["SecretAccessKey"],
            aws_session_token=credentials["SessionToken"],
            region_name=self.region,
        )
        return session, expiration

    @classmethod
    def get_session_from_env(
        cls, region: str = "ap-southeast-2", session_name: str = "pipeline"
    ) -> boto3.Session:
        """Create a boto3 Session from AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY
        and AWS_SESSION_TOKEN for pipeline runs."""
        session_key = f"env:{region}:{session_name}"

        if session_key not in cls._sessions:
            access_key = os.getenv("AWS_ACCESS_KEY_ID")
            secret_key = os.getenv("AWS_SECRET_ACCESS_KEY")

            if not access_key or not secret_key:
                raise ValueError(
                    "Pipeline mode needs AWS_ACCESS_KEY_ID and AWS_SECRET_ACCESS_KEY in the environment"
                )

            cls._sessions[session_key] = boto3.Session(
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                aws_session_token=os.getenv("AWS_SESSION_TOKEN"),
                region_name=region,
            )

        return cls._sessions[session_key]
