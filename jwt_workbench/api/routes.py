"""REST endpoints: encode, decode, verify, expiration, batch and history."""
from dataclasses import asdict

from fastapi import APIRouter, HTTPException

from jwt_workbench.api.schemas import (
    BatchRequest,
    DecodeRequest,
    EncodeRequest,
    ExpirationRequest,
    VerifyRequest,
)
from jwt_workbench.database import SqliteHistoryStore
from jwt_workbench.errors import WorkbenchError
from jwt_workbench.models.token import Algorithm, TokenParts, Verification
from jwt_workbench.services import batch, codec
from jwt_workbench.services.expiration import all_displays, from_display

router = APIRouter()


@router.get("/status")
async def status():
    return {
        "status": "ok",
        "service": "JWT Workbench",
        "algorithms": [a.value for a in Algorithm],
    }


@router.post("/encode")
async def encode_token(body: EncodeRequest):
    """Sign header and payload with an HMAC secret."""
    if not body.secret.strip():
        raise HTTPException(status_code=400, detail="Secret key cannot be empty")
    try:
        token = await codec.encode_async(body.header, body.payload, body.secret)
    except WorkbenchError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"token": token, "parts": TokenParts.from_token(token).to_dict()}


@router.post("/decode")
async def decode_token(body: DecodeRequest):
    """Decode header and payload; the signature is not checked."""
    try:
        header, payload = codec.decode(body.token)
    except WorkbenchError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "header": header,
        "payload": payload,
        "parts": TokenParts.from_token(body.token).to_dict(),
    }


@router.post("/verify")
async def verify_token(body: VerifyRequest):
    try:
        valid = await codec.verify_async(body.token, body.secret)
    except WorkbenchError as e:
        return {"verification": Verification.INDETERMINATE.value, "reason": str(e)}
    return {"verification": Verification.from_signature(valid).value}


@router.post("/expiration")
async def convert_expiration(body: ExpirationRequest):
    """Read an expiration in one mode and render it in all of them."""
    try:
        exp = from_display(body.text, body.mode)
        display = all_displays(exp)
    except WorkbenchError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"exp": exp, "display": display}


@router.post("/batch")
async def batch_resign(body: BatchRequest):
    """Re-sign every token (one per line) with a new exp claim."""
    try:
        new_exp = from_display(body.new_exp, body.mode)
        report = await batch.process_async(batch.split_lines(body.tokens), new_exp, body.secret)
    except WorkbenchError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "new_exp": new_exp,
        "results": [asdict(r) for r in report.results],
        "errors": [asdict(e) for e in report.errors],
    }


@router.get("/history")
async def get_history():
    """Return the most recent encodes, newest first."""
    entries = await SqliteHistoryStore().load()
    return {"entries": [e.to_dict() for e in entries]}


@router.delete("/history")
async def clear_history():
    await SqliteHistoryStore().clear()
    return {"entries": []}
