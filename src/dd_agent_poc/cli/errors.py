"""Turn assembly and AWS failures into short CLI messages."""

from collections.abc import Iterator

from botocore.exceptions import (
    ClientError,
    EndpointConnectionError,
    NoCredentialsError,
    ProfileNotFound,
)

from dd_agent_poc.cli.ui import console
from dd_agent_poc.core.deployments.aws_ecs import StageFailureError, TopologyError

AUTH_ERROR_CODES = frozenset(
    {
        "AccessDenied",
        "AccessDeniedException",
        "ExpiredToken",
        "ExpiredTokenException",
        "InvalidClientTokenId",
        "InvalidSignatureException",
        # spellchecker:ignore-next-line
        "UnrecognizedClientException",
    }
)


def report_error(exc: Exception) -> None:
    """Print a failure and a hint on what to do next.

    Args:
        exc: Exception raised by a CLI command.
    """
    headline, hint = describe_error(exc)
    console.print(f"[red]{headline}[/red]")
    if hint:
        console.print(f"[dim]{hint}[/dim]")


def describe_error(exc: Exception) -> tuple[str, str | None]:
    """Return a headline and an optional hint for a failure."""
    if is_aws_auth_error(exc):
        return (
            "AWS authentication failed. Your credentials are missing, invalid, or expired.",
            "Run `aws sso login --profile <profile>` or refresh AWS_SESSION_TOKEN, "
            "then retry.",
        )
    if is_aws_endpoint_error(exc):
        return (
            "Could not reach the AWS endpoint.",
            "Check network connectivity and the configured AWS region.",
        )
    if isinstance(exc, StageFailureError):
        return (
            f"Stage '{exc.stage}' failed while provisioning: {exc.cause}",
            "Resources from earlier stages were left in place and are not recorded for "
            "destroy. Delete them in the AWS console (they carry an Environment tag), "
            "then fix the cause and re-run deploy.",
        )
    if isinstance(exc, TopologyError):
        return f"Invalid configuration for stage '{exc.stage or 'config'}': {exc.reason}", None
    return f"Command failed: {exc}", None


def is_aws_auth_error(exc: BaseException) -> bool:
    """Return True when missing or rejected credentials caused the failure."""
    for item in exception_chain(exc):
        if isinstance(item, (NoCredentialsError, ProfileNotFound)):
            return True
        if isinstance(item, ClientError):
            if item.response.get("Error", {}).get("Code") in AUTH_ERROR_CODES:
                return True
    return False


def is_aws_endpoint_error(exc: BaseException) -> bool:
    return any(isinstance(item, EndpointConnectionError) for item in exception_chain(exc))


def exception_chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield an exception followed by its causes, each once."""
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__
