"""S3 error codes and the exceptions that carry them."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes reported in S3 error responses."""

    NONE = ""
    ACCESS_DENIED = "AccessDenied"
    BAD_DIGEST = "BadDigest"
    BUCKET_ALREADY_EXISTS = "BucketAlreadyExists"
    BUCKET_NOT_EMPTY = "BucketNotEmpty"
    ILLEGAL_VERSIONING_CONFIGURATION = "IllegalVersioningConfigurationException"
    INCOMPLETE_BODY = "IncompleteBody"
    INTERNAL = "InternalError"
    INVALID_ARGUMENT = "InvalidArgument"
    INVALID_BUCKET_NAME = "InvalidBucketName"
    INVALID_DIGEST = "InvalidDigest"
    INVALID_PART = "InvalidPart"
    INVALID_PART_ORDER = "InvalidPartOrder"
    INVALID_RANGE = "InvalidRange"
    MALFORMED_XML = "MalformedXML"
    METADATA_TOO_LARGE = "MetadataTooLarge"
    METHOD_NOT_ALLOWED = "MethodNotAllowed"
    NO_SUCH_BUCKET = "NoSuchBucket"
    NO_SUCH_KEY = "NoSuchKey"
    NO_SUCH_UPLOAD = "NoSuchUpload"
    NO_SUCH_VERSION = "NoSuchVersion"
    NOT_IMPLEMENTED = "NotImplemented"
    REQUEST_TIME_TOO_SKEWED = "RequestTimeTooSkewed"

    def __str__(self) -> str:
        return self.value


class S3Error(Exception):
    """An error that maps onto an S3 error code."""

    def __init__(self, code: ErrorCode, message: str = "") -> None:
        self.code = ErrorCode(code)
        self.message = message
        super().__init__(f"{self.code.value}: {message}" if message else self.code.value)


class ErrorResponse(S3Error):
    """An S3 error with a message and an optional request ID."""

    def __init__(self, code: ErrorCode, message: str = "", request_id: str = "") -> None:
        super().__init__(code, message)
        self.request_id = request_id


class ResourceErrorResponse(ErrorResponse):
    """An S3 error that names the resource it concerns."""

    def __init__(self, code: ErrorCode, resource: str, message: str = "") -> None:
        super().__init__(code, message)
        self.resource = resource


def error_message(code: ErrorCode, message: str) -> ErrorResponse:
    """Build an error carrying ``code`` and a human-readable message."""
    return ErrorResponse(code, message)


def resource_error(code: ErrorCode, resource: str) -> ResourceErrorResponse:
    """Build an error carrying ``code`` for the named resource."""
    return ResourceErrorResponse(code, resource)


def key_not_found(key: str) -> ResourceErrorResponse:
    """Error raised when an object key does not exist."""
    return resource_error(ErrorCode.NO_SUCH_KEY, key)


def bucket_not_found(bucket: str) -> ResourceErrorResponse:
    """Error raised when a bucket does not exist."""
    return resource_error(ErrorCode.NO_SUCH_BUCKET, bucket)


def has_error_code(err: BaseException | None, code: ErrorCode) -> bool:
    """Report whether ``err`` carries ``code``; no error counts as ``ErrorCode.NONE``."""
    if err is None:
        return code == ErrorCode.NONE
    return isinstance(err, S3Error) and err.code == code