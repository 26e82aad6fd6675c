"""Recoverable errors raised by the codec, converter and batch reprocessor."""
from enum import Enum


class ErrorKind(str, Enum):
    INVALID_JSON = "invalid_json"
    INVALID_FORMAT = "invalid_format"
    UNSUPPORTED_ALGORITHM = "unsupported_algorithm"
    EMPTY_SECRET = "empty_secret"
    INVALID_EXPIRATION = "invalid_expiration"
    DECODE_FAILED = "decode_failed"


class WorkbenchError(Exception):
    kind: ErrorKind

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "message": str(self)}


class JsonParseError(WorkbenchError):
    kind = ErrorKind.INVALID_JSON

    def __init__(self, field: str, detail: str = ""):
        self.field = field
        self.detail = detail
        message = f"Invalid JSON in {field.capitalize()}"
        super().__init__(f"{message}: {detail}" if detail else message)


class InvalidTokenFormat(WorkbenchError):
    kind = ErrorKind.INVALID_FORMAT

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid JWT format: {reason}")


class AlgorithmUnsupported(WorkbenchError):
    kind = ErrorKind.UNSUPPORTED_ALGORITHM

    def __init__(self, alg: str):
        self.alg = alg
        super().__init__(f"Algorithm {alg} is not supported")


class EmptySecret(WorkbenchError):
    kind = ErrorKind.EMPTY_SECRET

    def __init__(self):
        super().__init__("Secret key cannot be empty")


class ExpirationParseError(WorkbenchError):
    kind = ErrorKind.INVALID_EXPIRATION

    def __init__(self, mode: str, raw_value: str):
        self.mode = mode
        self.raw_value = raw_value
        super().__init__(f"Cannot read {raw_value!r} as a {mode} expiration")


class DecodeError(WorkbenchError):
    """A single batch line that could not be re-signed."""

    kind = ErrorKind.DECODE_FAILED

    def __init__(self, line_number: int, message: str):
        self.line_number = line_number
        self.message = message
        super().__init__(f"line {line_number}: {message}")
