"""Pydantic schemas for the interview session API."""
from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from interview_session.models import Difficulty, RoundKind


class StartReq(BaseModel):
    candidate_id: str = Field(min_length=1)
    role: str = Field(min_length=1)
    difficulty: Difficulty = "medium"
    context: str = ""


class StartResp(BaseModel):
    session_id: str
    status: str
    next_round: RoundKind = "technical"


class SubmitReq(BaseModel):
    item_id: str
    answer: Optional[str] = None
    time_spent: Optional[int] = Field(default=None, ge=0)
    code: Optional[str] = None
    language: Optional[str] = None


class DraftReq(BaseModel):
    text: str = ""


class DraftResp(BaseModel):
    session_id: str
    item_id: str
    text: Optional[str] = None


class SignalReq(BaseModel):
    signal_type: str
    item_id: Optional[str] = None
    detail: str = ""


class SignalResp(BaseModel):
    signal_id: Optional[int]
    signal_type: str
    recorded: bool = True


class EvaluationResp(BaseModel):
    evaluated: bool
    status: str
    job_id: Optional[str] = None
    evaluation: Optional[Dict[str, Any]] = None
