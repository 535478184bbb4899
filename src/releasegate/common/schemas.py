"""Shared Pydantic schemas for Releasegate."""

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str = "ok"
    version: str = "0.1.0"
    service: str = "releasegate"
    secret_source: str = "session_token"


class ErrorResponse(BaseModel):
    error: str
    code: str
