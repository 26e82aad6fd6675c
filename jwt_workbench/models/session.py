"""Editing-session state and the events that drive it."""
from dataclasses import dataclass, field

from jwt_workbench.errors import WorkbenchError
from jwt_workbench.models.token import HistoryEntry, TokenParts, Verification
from jwt_workbench.services.expiration import ExpirationMode


@dataclass(frozen=True)
class EditorState:
    token: str = ""
    header: str = ""
    payload: str = ""
    secret: str = ""
    verified: Verification = Verification.INDETERMINATE
    algorithm_supported: bool = True
    parts: TokenParts = field(default_factory=TokenParts)
    exp_mode: ExpirationMode = ExpirationMode.EPOCH
    exp_display: str = ""
    # Last error recovered while handling an event; None after a clean edit
    error: WorkbenchError | None = None
    # Bumped on every field edit; encode outcomes for older versions are dropped
    version: int = 0
    # Bumped whenever token or secret changes; guards verify outcomes
    signature_version: int = 0

    def to_dict(self) -> dict:
        return {
            "token": self.token,
            "header": self.header,
            "payload": self.payload,
            "secret": self.secret,
            "verified": self.verified.value,
            "algorithm_supported": self.algorithm_supported,
            "parts": self.parts.to_dict(),
            "exp_mode": self.exp_mode.value,
            "exp_display": self.exp_display,
            "error": self.error.to_dict() if self.error else None,
            "version": self.version,
        }


@dataclass(frozen=True)
class EditHeader:
    text: str


@dataclass(frozen=True)
class EditPayload:
    text: str


@dataclass(frozen=True)
class EditSecret:
    text: str


@dataclass(frozen=True)
class EditToken:
    text: str


@dataclass(frozen=True)
class EditExpiration:
    text: str


@dataclass(frozen=True)
class ChangeExpirationMode:
    mode: ExpirationMode


@dataclass(frozen=True)
class LoadHistoryEntry:
    entry: HistoryEntry


@dataclass(frozen=True)
class ToggleClaim:
    """Add a claim with its default value, or remove it if present."""

    field: str
    key: str
    # Epoch seconds used for time-valued defaults; None means the current time
    now: int | None = None

    def __post_init__(self):
        if self.field not in ("header", "payload"):
            raise ValueError(f"field must be 'header' or 'payload', not {self.field!r}")
        if not isinstance(self.key, str) or not self.key:
            raise ValueError("claim key must be a non-empty string")


Event = (
    EditHeader
    | EditPayload
    | ToggleClaim
    | EditSecret
    | EditToken
    | EditExpiration
    | ChangeExpirationMode
    | LoadHistoryEntry
)
