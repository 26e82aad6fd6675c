"""Request bodies for the REST endpoints."""
from pydantic import BaseModel, Field

from jwt_workbench.services.expiration import ExpirationMode


class EncodeRequest(BaseModel):
    header: dict = Field(default_factory=lambda: {"alg": "HS256", "typ": "JWT"})
    payload: dict
    secret: str


class DecodeRequest(BaseModel):
    token: str


class VerifyRequest(BaseModel):
    token: str
    secret: str


class ExpirationRequest(BaseModel):
    text: str
    mode: ExpirationMode = ExpirationMode.EPOCH


class BatchRequest(BaseModel):
    tokens: str = Field(..., description="One JWT per line")
    new_exp: str
    mode: ExpirationMode = ExpirationMode.EPOCH
    secret: str
