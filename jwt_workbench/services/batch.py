"""Re-sign many tokens under a new expiration, one line at a time."""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Iterable

from jwt_workbench.config import settings
from jwt_workbench.errors import DecodeError, EmptySecret, WorkbenchError
from jwt_workbench.services import codec

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    line_number: int
    original_token: str
    new_token: str
    header: dict
    payload: dict
    new_exp: int


@dataclass
class BatchError:
    line_number: int
    error: str


@dataclass
class BatchReport:
    results: list[BatchResult] = field(default_factory=list)
    errors: list[BatchError] = field(default_factory=list)


def split_lines(text: str) -> list[str]:
    return text.splitlines()


def _resign(line_number: int, raw: str, new_exp: int, secret: str) -> BatchResult:
    token = raw.strip()
    try:
        header, payload = codec.decode(token)
        payload["exp"] = new_exp
        new_token = codec.encode(header, payload, secret)
    except WorkbenchError as exc:
        raise DecodeError(line_number, str(exc)) from exc
    return BatchResult(
        line_number=line_number,
        original_token=token,
        new_token=new_token,
        header=header,
        payload=payload,
        new_exp=new_exp,
    )


def _numbered(lines: Iterable[str]) -> list[tuple[int, str]]:
    # Physical line numbers survive the skipping of blank lines.
    return [(n, line) for n, line in enumerate(lines, start=1) if line.strip()]


def _collect(outcomes: list[BatchResult | DecodeError]) -> BatchReport:
    report = BatchReport()
    for outcome in sorted(outcomes, key=lambda o: o.line_number):
        if isinstance(outcome, DecodeError):
            report.errors.append(BatchError(outcome.line_number, outcome.message))
        else:
            report.results.append(outcome)
    logger.info(
        "Batch re-signed %d token(s), %d failed",
        len(report.results),
        len(report.errors),
    )
    return report


def _check_secret(secret: str) -> None:
    if not secret or not secret.strip():
        raise EmptySecret()


def process(lines: Iterable[str], new_exp: int, secret: str) -> BatchReport:
    """
    Decode each non-blank line, set exp to new_exp and re-sign it.
    A failing line is reported in errors and never stops the others.
    """
    _check_secret(secret)
    outcomes: list[BatchResult | DecodeError] = []
    for line_number, raw in _numbered(lines):
        try:
            outcomes.append(_resign(line_number, raw, new_exp, secret))
        except DecodeError as exc:
            outcomes.append(exc)
    return _collect(outcomes)


async def process_async(
    lines: Iterable[str],
    new_exp: int,
    secret: str,
    concurrency: int | None = None,
) -> BatchReport:
    """Same as process(), with lines re-signed concurrently in worker threads."""
    _check_secret(secret)
    semaphore = asyncio.Semaphore(concurrency or settings.batch_concurrency)

    async def _one(line_number: int, raw: str) -> BatchResult | DecodeError:
        async with semaphore:
            try:
                return await asyncio.to_thread(_resign, line_number, raw, new_exp, secret)
            except DecodeError as exc:
                return exc

    outcomes = await asyncio.gather(*(_one(n, raw) for n, raw in _numbered(lines)))
    return _collect(list(outcomes))
