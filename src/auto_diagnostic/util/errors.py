from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    OK = 0
    CONFIG_ERROR = 2
    CREDENTIAL_ERROR = 3
    AWS_ERROR = 4
    DATA_SOURCE_ERROR = 5
    INTERRUPTED = 130


class DiagnosticError(Exception):
    """Base error for the diagnostic pipeline."""


class ConfigError(DiagnosticError):
    """Raised for configuration or argument issues."""


class CredentialError(DiagnosticError):
    """Raised when an AWS profile or the OpenAI API key cannot be resolved."""


class AwsClientError(DiagnosticError):
    """Raised when AWS SDK operations fail in a non-retriable way."""


class DataSourceError(DiagnosticError):
    """Raised when a data source cannot be turned into prompt data."""


class ResourceNotFoundError(DataSourceError):
    """Raised when a configured EC2/RDS resource does not exist."""


class QueryStatusError(DataSourceError):
    """Raised when a Log Insights query ends in a non-success status."""

    def __init__(self, status: str) -> None:
        super().__init__(f"Unexpected status: {status}")
        self.status = status


class QueryTimeoutError(DataSourceError):
    """Raised when a Log Insights query outlives the configured poll bound."""


class ColumnMismatchError(DataSourceError):
    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"Expected column not matched! Expected: {expected}, Actual: {actual}")
        self.expected = expected
        self.actual = actual


class MissingFieldError(DataSourceError):
    """Raised when a required field is absent from a service response."""


def as_exit_code(exc: BaseException) -> int:
    if isinstance(exc, KeyboardInterrupt):
        return int(ExitCode.INTERRUPTED)
    if isinstance(exc, (ConfigError, ValueError)):
        return int(ExitCode.CONFIG_ERROR)
    if isinstance(exc, CredentialError):
        return int(ExitCode.CREDENTIAL_ERROR)
    if isinstance(exc, AwsClientError):
        return int(ExitCode.AWS_ERROR)
    if isinstance(exc, (DataSourceError, DiagnosticError)):
        return int(ExitCode.DATA_SOURCE_ERROR)
    return 1


def _aws_error_types() -> tuple[type[BaseException], ...]:
    try:
        from botocore.exceptions import BotoCoreError, ClientError  # type: ignore
    except Exception:
        return ()
    return (BotoCoreError, ClientError)


def is_aws_error(exc: BaseException) -> bool:
    """
    Return True if the exception looks like a boto3/botocore error.
    """
    aws_types = _aws_error_types()
    if aws_types and isinstance(exc, aws_types):
        return True
    module = exc.__class__.__module__
    return module.startswith("botocore.") or module.startswith("boto3.")


def map_aws_error(exc: BaseException, context: str) -> AwsClientError | None:
    """
    Wrap AWS SDK errors with AwsClientError for consistent exit codes.
    """
    if not is_aws_error(exc):
        return None
    return AwsClientError(f"{context}: {exc}")
