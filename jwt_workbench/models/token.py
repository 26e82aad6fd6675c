"""Token-level dataclasses: algorithm variant, verification, parts, history."""
import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from jwt_workbench.errors import ErrorKind, WorkbenchError

# RFC 7519 registered claims, in display order.
HEADER_CLAIMS = ("alg", "typ", "cty", "kid")
PAYLOAD_CLAIMS = ("iss", "sub", "aud", "exp", "nbf", "iat", "jti")


def claim_default(key: str, now: int, exp_ttl_s: int):
    """Value a claim gets when it is switched on; unknown claims start empty."""
    if key == "alg":
        return "HS256"
    if key == "typ":
        return "JWT"
    if key == "exp":
        return now + exp_ttl_s
    if key in ("nbf", "iat"):
        return now
    return ""


class Algorithm(str, Enum):
    HS256 = "HS256"
    HS384 = "HS384"
    HS512 = "HS512"


@dataclass(frozen=True)
class UnsupportedAlgorithm:
    name: str


def parse_algorithm(value) -> Algorithm | UnsupportedAlgorithm:
    """Map a header ``alg`` value onto the closed algorithm set."""
    try:
        return Algorithm(value)
    except ValueError:
        return UnsupportedAlgorithm(name=str(value))


class Verification(str, Enum):
    VERIFIED = "verified"
    INVALID = "invalid"
    INDETERMINATE = "indeterminate"

    @classmethod
    def from_signature(cls, valid: bool) -> "Verification":
        return cls.VERIFIED if valid else cls.INVALID


@dataclass(frozen=True)
class TokenParts:
    """Raw segments of the displayed token, or the reason there are none."""

    header: str = ""
    payload: str = ""
    signature: str = ""
    error_kind: ErrorKind | None = None
    error_message: str = ""

    @property
    def error(self) -> bool:
        return self.error_kind is not None

    @classmethod
    def from_token(cls, token: str) -> "TokenParts":
        if not token or not token.strip():
            return cls()
        parts = token.split(".")
        if len(parts) == 3 and all(parts):
            return cls(header=parts[0], payload=parts[1], signature=parts[2])
        return cls(
            error_kind=ErrorKind.INVALID_FORMAT,
            error_message=(
                "Invalid JWT format. Token must have 3 parts separated by dots "
                "(header.payload.signature)"
            ),
        )

    @classmethod
    def failed(cls, error: WorkbenchError) -> "TokenParts":
        return cls(error_kind=error.kind, error_message=str(error))

    def to_dict(self) -> dict:
        return {
            "header": self.header,
            "payload": self.payload,
            "signature": self.signature,
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error_message": self.error_message,
        }


@dataclass(frozen=True)
class HistoryEntry:
    id: str
    token: str
    header: dict = field(default_factory=dict)
    payload: dict = field(default_factory=dict)
    timestamp: str = ""

    @classmethod
    def create(cls, token: str, header: dict, payload: dict) -> "HistoryEntry":
        return cls(
            id=uuid.uuid4().hex,
            token=token,
            header=copy.deepcopy(header),
            payload=copy.deepcopy(payload),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )

    @classmethod
    def from_dict(cls, data: dict) -> "HistoryEntry":
        return cls(
            id=str(data["id"]),
            token=data["token"],
            header=dict(data.get("header") or {}),
            payload=dict(data.get("payload") or {}),
            timestamp=data.get("timestamp", ""),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "token": self.token,
            "header": copy.deepcopy(self.header),
            "payload": copy.deepcopy(self.payload),
            "timestamp": self.timestamp,
        }
