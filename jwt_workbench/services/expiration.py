"""Expiration timestamp conversion between epoch, GMT and local text."""
import math
import re
from datetime import datetime, timezone
from enum import Enum

from jwt_workbench.errors import ExpirationParseError

_DISPLAY_FORMAT = "%Y-%m-%dT%H:%M"
_EPOCH = re.compile(r"[+-]?[0-9]+")


class ExpirationMode(str, Enum):
    EPOCH = "epoch"
    GMT = "gmt"
    LOCAL = "local"


def to_display(epoch_seconds: int, mode: ExpirationMode) -> str:
    """Render epoch seconds for the given mode; wall-clock modes drop seconds."""
    mode = ExpirationMode(mode)
    if mode is ExpirationMode.EPOCH:
        return str(int(epoch_seconds))
    try:
        if mode is ExpirationMode.GMT:
            moment = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
        else:
            moment = datetime.fromtimestamp(epoch_seconds)
    except (OverflowError, OSError, ValueError) as exc:
        raise ExpirationParseError(mode.value, str(epoch_seconds)) from exc
    return moment.strftime(_DISPLAY_FORMAT)


def from_display(text: str, mode: ExpirationMode) -> int:
    """
    Parse display text back into epoch seconds.
    GMT text without an offset is read as UTC; LOCAL text without an offset
    is read as already expressed in the host's local time.
    """
    mode = ExpirationMode(mode)
    raw = (text or "").strip()
    if mode is ExpirationMode.EPOCH:
        if not _EPOCH.fullmatch(raw):
            raise ExpirationParseError(mode.value, text)
        return int(raw)

    try:
        moment = datetime.fromisoformat(raw)
    except ValueError as exc:
        raise ExpirationParseError(mode.value, text) from exc

    if moment.tzinfo is None and mode is ExpirationMode.GMT:
        moment = moment.replace(tzinfo=timezone.utc)
    try:
        return math.floor(moment.timestamp())
    except (OverflowError, OSError, ValueError) as exc:
        raise ExpirationParseError(mode.value, text) from exc


def all_displays(epoch_seconds: int) -> dict[str, str]:
    return {mode.value: to_display(epoch_seconds, mode) for mode in ExpirationMode}
