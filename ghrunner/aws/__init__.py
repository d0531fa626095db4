"""AWS EC2 adapter for ghrunner.

Example:
    from ghrunner.aws import AWS, EC2Provider, AWSModule
"""

from ghrunner.aws.clients import AWSModule, EC2ClientFactory
from ghrunner.aws.config import AWS
from ghrunner.aws.provider import EC2Provider, build_run_args

__all__ = [
    "AWS",
    "AWSModule",
    "EC2ClientFactory",
    "EC2Provider",
    "build_run_args",
]
