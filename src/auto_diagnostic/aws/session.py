from __future__ import annotations

from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import ProfileNotFound

from ..util.errors import CredentialError, map_aws_error

# Standard retry mode backs off on throttling; fetchers never retry themselves.
_CLIENT_CONFIG = Config(retries={"max_attempts": 5, "mode": "standard"})


def create_session(profile: str) -> boto3.Session:
    """
    Create a boto3 session for a named profile. The region comes from the
    default provider chain (AWS_REGION/AWS_DEFAULT_REGION, then the profile).
    """
    try:
        return boto3.Session(profile_name=profile)
    except ProfileNotFound as e:
        raise CredentialError(f"AWS profile not found: {profile}") from e
    except Exception as e:
        mapped = map_aws_error(e, f"AWS SDK error while loading profile {profile}")
        if mapped:
            raise mapped from e
        raise


def make_client(session: boto3.Session, service: str) -> Any:
    try:
        return session.client(service, config=_CLIENT_CONFIG)
    except Exception as e:
        mapped = map_aws_error(e, f"AWS SDK error while creating {service} client")
        if mapped:
            raise mapped from e
        raise
