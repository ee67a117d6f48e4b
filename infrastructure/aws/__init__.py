"""AWS infrastructure implementations."""

from .ec2_client import EC2Client
from .ssm_client import SSMClient
from .session_manager import AWSSessionManager
from .ssm_remote_host import SSMRemoteHost, SSMHostFactory

__all__ = [
    'EC2Client',
    'SSMClient',
    'AWSSessionManager',
    'SSMRemoteHost',
    'SSMHostFactory'
]
