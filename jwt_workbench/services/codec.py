"""Compact JWT encode/decode/verify for the HMAC-SHA2 family."""
import asyncio
import hashlib
import hmac
import json
import re

from jwt.utils import base64url_decode, base64url_encode

from jwt_workbench.errors import AlgorithmUnsupported, InvalidTokenFormat
from jwt_workbench.models.token import Algorithm, UnsupportedAlgorithm, parse_algorithm

_DIGESTS = {
    Algorithm.HS256: hashlib.sha256,
    Algorithm.HS384: hashlib.sha384,
    Algorithm.HS512: hashlib.sha512,
}

_SEGMENT = re.compile(r"[A-Za-z0-9_-]+")


def b64url_encode(data: bytes) -> str:
    return base64url_encode(data).decode("ascii")


def b64url_decode(segment: str) -> bytes:
    return base64url_decode(segment)


def _secret_bytes(secret: str | bytes) -> bytes:
    if isinstance(secret, bytes):
        return secret
    return secret.encode("utf-8")


def _encode_segment(obj: dict) -> str:
    raw = json.dumps(obj, separators=(",", ":"), ensure_ascii=False)
    return b64url_encode(raw.encode("utf-8"))


def _decode_segment(segment: str, name: str) -> dict:
    try:
        obj = json.loads(b64url_decode(segment).decode("utf-8"))
    except ValueError as exc:
        raise InvalidTokenFormat(f"{name} segment is not Base64URL-encoded JSON") from exc
    if not isinstance(obj, dict):
        raise InvalidTokenFormat(f"{name} segment is not a JSON object")
    return obj


def _mac(alg: Algorithm, secret: str | bytes, signing_input: bytes) -> bytes:
    return hmac.new(_secret_bytes(secret), signing_input, _DIGESTS[alg]).digest()


def split_token(token: str) -> list[str]:
    """Split a compact token into its three segments or raise InvalidTokenFormat."""
    if not isinstance(token, str):
        raise InvalidTokenFormat("token must be a string")
    parts = token.split(".")
    if len(parts) != 3:
        raise InvalidTokenFormat(f"expected 3 segments separated by dots, found {len(parts)}")
    if not all(parts):
        raise InvalidTokenFormat("token contains an empty segment")
    for part in parts:
        if not _SEGMENT.fullmatch(part):
            raise InvalidTokenFormat("segment contains characters outside the Base64URL alphabet")
    return parts


def encode(header: dict, payload: dict, secret: str | bytes) -> str:
    """Sign header and payload. Raises AlgorithmUnsupported outside HS256/384/512."""
    alg = parse_algorithm(header.get("alg"))
    if isinstance(alg, UnsupportedAlgorithm):
        raise AlgorithmUnsupported(alg.name)

    segments = [_encode_segment(header), _encode_segment(payload)]
    signing_input = ".".join(segments).encode("ascii")
    segments.append(b64url_encode(_mac(alg, secret, signing_input)))
    return ".".join(segments)


def decode(token: str) -> tuple[dict, dict]:
    """Return (header, payload) without looking at the signature."""
    header_segment, payload_segment, _ = split_token(token)
    return (
        _decode_segment(header_segment, "header"),
        _decode_segment(payload_segment, "payload"),
    )


def verify(token: str, secret: str | bytes) -> bool:
    """
    Check the signature over the literal first two segments.
    Raises InvalidTokenFormat when the token or its header cannot be decoded.
    Claims such as exp/nbf/iat are never evaluated.
    """
    header_segment, payload_segment, signature_segment = split_token(token)
    header = _decode_segment(header_segment, "header")

    alg = parse_algorithm(header.get("alg"))
    if isinstance(alg, UnsupportedAlgorithm):
        return False

    expected = _mac(alg, secret, f"{header_segment}.{payload_segment}".encode("ascii"))
    try:
        actual = b64url_decode(signature_segment)
    except ValueError:
        return False
    return hmac.compare_digest(expected, actual)


async def encode_async(header: dict, payload: dict, secret: str | bytes) -> str:
    return await asyncio.to_thread(encode, header, payload, secret)


async def verify_async(token: str, secret: str | bytes) -> bool:
    return await asyncio.to_thread(verify, token, secret)
