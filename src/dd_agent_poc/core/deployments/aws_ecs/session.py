"""boto3 sessions for assembly runs."""

import boto3
from botocore.exceptions import ClientError


def create_session(region: str | None, profile: str | None = None) -> boto3.session.Session:
    """Create the session every builder provisions through.

    Args:
        region: AWS region for all clients.
        profile: Named AWS profile. The default credential chain is used when unset.
    """
    return boto3.session.Session(profile_name=profile or None, region_name=region)


def get_identity(session: boto3.session.Session) -> dict[str, str]:
    """Return the account and ARN the session acts as."""
    try:
        identity = session.client("sts").get_caller_identity()
    except ClientError as exc:
        raise RuntimeError(f"Failed to read AWS identity: {exc}") from exc
    return {key: str(identity.get(key, "")) for key in ("Account", "Arn", "UserId")}
