"""
Keeps token, header, payload and secret consistent across edits.

reduce() and apply() are pure: reduce() turns an edit event into a new
state plus the Encode/Verify jobs it needs, apply() folds a finished job
back in. EditorSession runs the jobs as asyncio tasks and drops any
outcome whose version has been superseded by a later edit.
"""
import asyncio
import json
import logging
import time
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Sequence

from jwt_workbench.config import settings
from jwt_workbench.errors import (
    AlgorithmUnsupported,
    EmptySecret,
    ExpirationParseError,
    InvalidTokenFormat,
    JsonParseError,
    WorkbenchError,
)
from jwt_workbench.models.session import (
    ChangeExpirationMode,
    EditExpiration,
    EditHeader,
    EditorState,
    EditPayload,
    EditSecret,
    EditToken,
    Event,
    LoadHistoryEntry,
    ToggleClaim,
)
from jwt_workbench.models.token import (
    HistoryEntry,
    claim_default,
    TokenParts,
    UnsupportedAlgorithm,
    Verification,
    parse_algorithm,
)
from jwt_workbench.services import codec
from jwt_workbench.services.expiration import ExpirationMode, from_display, to_display
from jwt_workbench.services.history import HistoryStore, push_entry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EncodeJob:
    version: int
    header: dict
    payload: dict
    secret: str


@dataclass(frozen=True)
class VerifyJob:
    signature_version: int
    token: str
    secret: str


@dataclass(frozen=True)
class Encoded:
    job: EncodeJob
    token: str


@dataclass(frozen=True)
class EncodeFailed:
    job: EncodeJob
    error: WorkbenchError


@dataclass(frozen=True)
class Verified:
    job: VerifyJob
    result: Verification


Job = EncodeJob | VerifyJob
Outcome = Encoded | EncodeFailed | Verified


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_object(text: str, field: str) -> dict:
    try:
        obj = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise JsonParseError(field, str(exc)) from exc
    if not isinstance(obj, dict):
        raise JsonParseError(field, "expected a JSON object")
    return obj


def _pretty(obj: dict) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False)


def _has_secret(secret: str) -> bool:
    return bool(secret and secret.strip())


def _exp_display(payload: dict, mode: ExpirationMode, current: str) -> str:
    """Render payload["exp"] for mode, or keep current when there is none."""
    exp = payload.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, int):
        return current
    try:
        return to_display(exp, mode)
    except ExpirationParseError:
        return current


def _edit(state: EditorState, **changes) -> EditorState:
    return replace(state, version=state.version + 1, error=None, **changes)


def _verify_job(state: EditorState) -> list[Job]:
    if not state.token or not _has_secret(state.secret):
        return []
    return [VerifyJob(state.signature_version, state.token, state.secret)]


def _request_encode(
    state: EditorState, header: dict, payload: dict
) -> tuple[EditorState, list[Job]]:
    alg = parse_algorithm(header.get("alg"))
    if isinstance(alg, UnsupportedAlgorithm):
        # The displayed token is intentionally left as it was.
        logger.warning("Algorithm %s is not supported", alg.name)
        return replace(state, algorithm_supported=False, error=AlgorithmUnsupported(alg.name)), []
    if not _has_secret(state.secret):
        error = EmptySecret()
        return replace(state, algorithm_supported=True, parts=TokenParts.failed(error), error=error), []
    return replace(state, algorithm_supported=True), [
        EncodeJob(state.version, header, payload, state.secret)
    ]


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------

def reduce(state: EditorState, event: Event) -> tuple[EditorState, list[Job]]:
    if isinstance(event, EditHeader):
        return _on_header(state, event.text)
    if isinstance(event, EditPayload):
        return _on_payload(state, event.text)
    if isinstance(event, EditSecret):
        return _on_secret(state, event.text)
    if isinstance(event, EditToken):
        return _on_token(state, event.text)
    if isinstance(event, EditExpiration):
        return _on_expiration(state, event.text)
    if isinstance(event, ChangeExpirationMode):
        return _on_mode(state, ExpirationMode(event.mode))
    if isinstance(event, LoadHistoryEntry):
        return _on_history(state, event.entry)
    if isinstance(event, ToggleClaim):
        return _on_claim(state, event)
    raise TypeError(f"unknown event {event!r}")


def _on_header(state: EditorState, text: str) -> tuple[EditorState, list[Job]]:
    state = _edit(state, header=text)
    try:
        header = _parse_object(text, "header")
        payload = _parse_object(state.payload, "payload")
    except JsonParseError as exc:
        return replace(state, parts=TokenParts.failed(exc), error=exc), []
    return _request_encode(state, header, payload)


def _on_payload(state: EditorState, text: str) -> tuple[EditorState, list[Job]]:
    state = _edit(state, payload=text)
    try:
        header = _parse_object(state.header, "header")
        payload = _parse_object(text, "payload")
    except JsonParseError as exc:
        return replace(state, parts=TokenParts.failed(exc), error=exc), []
    state = replace(state, exp_display=_exp_display(payload, state.exp_mode, state.exp_display))
    return _request_encode(state, header, payload)


def _on_secret(state: EditorState, text: str) -> tuple[EditorState, list[Job]]:
    state = _edit(state, secret=text, signature_version=state.signature_version + 1)
    if not _has_secret(text):
        error = EmptySecret()
        return replace(state, parts=TokenParts.failed(error), error=error), []

    jobs: list[Job] = []
    try:
        header = _parse_object(state.header, "header")
        payload = _parse_object(state.payload, "payload")
    except JsonParseError:
        # Only the stale token can be re-checked against the new secret.
        pass
    else:
        state, jobs = _request_encode(state, header, payload)
    return state, jobs + _verify_job(state)


def _on_token(state: EditorState, text: str) -> tuple[EditorState, list[Job]]:
    state = _edit(
        state,
        token=text,
        parts=TokenParts.from_token(text),
        signature_version=state.signature_version + 1,
    )
    if not text or not text.strip():
        return replace(state, verified=Verification.INDETERMINATE), []
    try:
        header, payload = codec.decode(text)
    except InvalidTokenFormat as exc:
        return replace(
            state,
            verified=Verification.INDETERMINATE,
            parts=TokenParts.failed(exc),
            error=exc,
        ), []
    state = replace(
        state,
        header=_pretty(header),
        payload=_pretty(payload),
        exp_display=_exp_display(payload, state.exp_mode, state.exp_display),
    )
    return state, _verify_job(state)


def _on_expiration(state: EditorState, text: str) -> tuple[EditorState, list[Job]]:
    state = _edit(state, exp_display=text)
    try:
        exp = from_display(text, state.exp_mode)
        payload = _parse_object(state.payload, "payload")
        header = _parse_object(state.header, "header")
    except (ExpirationParseError, JsonParseError) as exc:
        return replace(state, error=exc), []
    payload["exp"] = exp
    state = replace(state, payload=_pretty(payload))
    return _request_encode(state, header, payload)


def _on_claim(state: EditorState, event: ToggleClaim) -> tuple[EditorState, list[Job]]:
    state = _edit(state)
    try:
        header = _parse_object(state.header, "header")
        payload = _parse_object(state.payload, "payload")
    except JsonParseError as exc:
        return replace(state, parts=TokenParts.failed(exc), error=exc), []

    target = header if event.field == "header" else payload
    if event.key in target:
        del target[event.key]
    else:
        now = int(time.time()) if event.now is None else event.now
        target[event.key] = claim_default(event.key, now, settings.default_exp_ttl_s)

    if event.field == "header":
        state = replace(state, header=_pretty(header))
    else:
        state = replace(
            state,
            payload=_pretty(payload),
            exp_display=_exp_display(payload, state.exp_mode, state.exp_display),
        )
    return _request_encode(state, header, payload)


def _on_mode(state: EditorState, mode: ExpirationMode) -> tuple[EditorState, list[Job]]:
    try:
        payload = _parse_object(state.payload, "payload")
    except JsonParseError:
        return replace(state, exp_mode=mode), []
    return replace(state, exp_mode=mode, exp_display=_exp_display(payload, mode, state.exp_display)), []


def _on_history(state: EditorState, entry: HistoryEntry) -> tuple[EditorState, list[Job]]:
    state = _edit(
        state,
        token=entry.token,
        header=_pretty(entry.header),
        payload=_pretty(entry.payload),
        parts=TokenParts.from_token(entry.token),
        exp_display=_exp_display(entry.payload, state.exp_mode, state.exp_display),
        signature_version=state.signature_version + 1,
    )
    return state, _verify_job(state)


def apply(
    state: EditorState, outcome: Outcome
) -> tuple[EditorState, list[Job], HistoryEntry | None]:
    """Fold a finished job into state; superseded outcomes leave it unchanged."""
    if isinstance(outcome, Verified):
        if outcome.job.signature_version != state.signature_version:
            logger.debug("Dropping stale verification v%d", outcome.job.signature_version)
            return state, [], None
        return replace(state, verified=outcome.result), [], None

    if outcome.job.version != state.version:
        logger.debug("Dropping stale encode v%d (current v%d)", outcome.job.version, state.version)
        return state, [], None

    if isinstance(outcome, EncodeFailed):
        return replace(state, algorithm_supported=False, error=outcome.error), [], None

    state = replace(
        state,
        token=outcome.token,
        parts=TokenParts.from_token(outcome.token),
        signature_version=state.signature_version + 1,
    )
    entry = HistoryEntry.create(outcome.token, outcome.job.header, outcome.job.payload)
    return state, _verify_job(state), entry


# ---------------------------------------------------------------------------
# Job execution
# ---------------------------------------------------------------------------

def execute(job: Job) -> Outcome:
    if isinstance(job, EncodeJob):
        try:
            return Encoded(job, codec.encode(job.header, job.payload, job.secret))
        except AlgorithmUnsupported as exc:
            return EncodeFailed(job, exc)
    try:
        return Verified(job, Verification.from_signature(codec.verify(job.token, job.secret)))
    except InvalidTokenFormat:
        return Verified(job, Verification.INDETERMINATE)


async def run_job(job: Job) -> Outcome:
    return await asyncio.to_thread(execute, job)


def initial_state(secret: str | None = None, now: int | None = None) -> EditorState:
    """Default editor contents: an HS256 header and a one-hour token."""
    now = int(time.time()) if now is None else now
    header = {"alg": "HS256", "typ": "JWT"}
    payload = {
        "sub": "1234567890",
        "name": "John Doe",
        "iat": now,
        "exp": now + settings.default_exp_ttl_s,
    }
    return EditorState(
        header=_pretty(header),
        payload=_pretty(payload),
        secret=settings.default_secret if secret is None else secret,
    )


# ---------------------------------------------------------------------------
# Session driver
# ---------------------------------------------------------------------------

class EditorSession:
    """Owns one editing state and the asynchronous work it triggers."""

    def __init__(
        self,
        store: HistoryStore,
        state: EditorState | None = None,
        history: Sequence[HistoryEntry] = (),
        runner: Callable[[Job], Awaitable[Outcome]] = run_job,
        on_change: Callable[[EditorState], Awaitable[None]] | None = None,
    ):
        self._store = store
        self._state = state or EditorState()
        self._history: list[HistoryEntry] = list(history)
        self._runner = runner
        self._on_change = on_change
        self._tasks: set[asyncio.Task] = set()
        self._save_lock = asyncio.Lock()

    @classmethod
    async def open(cls, store: HistoryStore, state: EditorState | None = None, **kwargs) -> "EditorSession":
        """Load history once, then sign the initial contents."""
        history = await store.load()
        session = cls(store, state=state or initial_state(), history=history, **kwargs)
        session.submit(EditPayload(session.state.payload))
        return session

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def history(self) -> list[HistoryEntry]:
        return list(self._history)

    def submit(self, event: Event) -> EditorState:
        self._state, jobs = reduce(self._state, event)
        self._schedule(jobs)
        return self._state

    def load_history(self, entry_id: str) -> EditorState:
        for entry in self._history:
            if entry.id == entry_id:
                return self.submit(LoadHistoryEntry(entry))
        raise KeyError(entry_id)

    async def clear_history(self) -> None:
        self._history = []
        async with self._save_lock:
            await self._store.clear()

    async def drain(self) -> None:
        """Wait until no job or history write is in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _schedule(self, jobs: list[Job]) -> None:
        for job in jobs:
            self._spawn(self._run(job))

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, job: Job) -> None:
        outcome = await self._runner(job)
        before = self._state
        self._state, jobs, entry = apply(self._state, outcome)
        if entry is not None:
            self._history = push_entry(self._history, entry)
            self._spawn(self._persist())
        self._schedule(jobs)
        if self._on_change is not None and self._state is not before:
            await self._on_change(self._state)

    async def _persist(self) -> None:
        async with self._save_lock:
            # Snapshot under the lock so a clear issued meanwhile is not undone
            try:
                await self._store.save(list(self._history))
            except Exception as exc:
                logger.warning("Failed to persist token history: %s", exc)
