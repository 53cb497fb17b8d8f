"""FastAPI routes for interview session control."""
from __future__ import annotations

import re
from contextlib import contextmanager
from typing import Any, Dict, Iterator

from fastapi import APIRouter, HTTPException, Request, Response

from api.schemas import (
    DraftReq,
    DraftResp,
    EvaluationResp,
    SignalReq,
    SignalResp,
    StartReq,
    StartResp,
    SubmitReq,
)
from interview_session.errors import DeadlineExceeded, InvalidTransition, SessionNotFound
from interview_session.models import CurrentView, HiringReport, RoundKind, RoundSnapshot, SubmitResult
from interview_session.orchestrator import SessionOrchestrator
from session_reports import generate_hiring_report_pdf

router = APIRouter(prefix="/api/interview-sessions")


def _orchestrator(request: Request) -> SessionOrchestrator:
    orchestrator = getattr(request.app.state, "orchestrator", None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="interview service not ready")
    return orchestrator


@contextmanager
def _mapped_errors() -> Iterator[None]:
    try:
        yield
    except SessionNotFound as exc:
        raise HTTPException(status_code=404, detail="session not found") from exc
    except DeadlineExceeded as exc:
        raise HTTPException(status_code=409, detail="deadline_exceeded") from exc
    except InvalidTransition as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc


@router.post("/start", response_model=StartResp, status_code=201)
def start(req: StartReq, request: Request) -> StartResp:
    session = _orchestrator(request).create_session(
        req.candidate_id,
        req.role,
        difficulty=req.difficulty,
        context=req.context,
    )
    return StartResp(session_id=session.session_id, status=session.status)


@router.get("/{session_id}", response_model=CurrentView)
def resume(session_id: str, request: Request) -> CurrentView:
    with _mapped_errors():
        return _orchestrator(request).resume(session_id)


@router.post("/{session_id}/rounds/{kind}/start", response_model=RoundSnapshot)
def start_round(session_id: str, kind: RoundKind, request: Request) -> RoundSnapshot:
    with _mapped_errors():
        return _orchestrator(request).start_round(session_id, kind)


@router.post("/{session_id}/rounds/{kind}/submit", response_model=SubmitResult)
def submit(session_id: str, kind: RoundKind, req: SubmitReq, request: Request) -> SubmitResult:
    with _mapped_errors():
        return _orchestrator(request).submit(
            session_id,
            kind,
            req.item_id,
            req.answer,
            req.time_spent,
            code=req.code,
            language=req.language,
        )


@router.get("/{session_id}/rounds/{kind}", response_model=RoundSnapshot)
def round_status(session_id: str, kind: RoundKind, request: Request) -> RoundSnapshot:
    with _mapped_errors():
        return _orchestrator(request).round_status(session_id, kind)


@router.get("/{session_id}/rounds/{kind}/items/{index}")
def view_item(session_id: str, kind: RoundKind, index: int, request: Request) -> Dict[str, Any]:
    with _mapped_errors():
        return _orchestrator(request).view_item(session_id, kind, index)


@router.get("/{session_id}/items/{item_id}/evaluation", response_model=EvaluationResp)
def evaluation(session_id: str, item_id: str, request: Request) -> EvaluationResp:
    with _mapped_errors():
        return EvaluationResp(**_orchestrator(request).evaluation_status(session_id, item_id))


@router.put("/{session_id}/items/{item_id}/draft", response_model=DraftResp)
def put_draft(session_id: str, item_id: str, req: DraftReq, request: Request) -> DraftResp:
    with _mapped_errors():
        _orchestrator(request).save_draft(session_id, item_id, req.text)
    return DraftResp(session_id=session_id, item_id=item_id, text=req.text)


@router.get("/{session_id}/items/{item_id}/draft", response_model=DraftResp)
def get_draft(session_id: str, item_id: str, request: Request) -> DraftResp:
    with _mapped_errors():
        text = _orchestrator(request).get_draft(session_id, item_id)
    return DraftResp(session_id=session_id, item_id=item_id, text=text)


@router.post("/{session_id}/integrity", response_model=SignalResp, status_code=201)
def integrity(session_id: str, req: SignalReq, request: Request) -> SignalResp:
    with _mapped_errors():
        signal = _orchestrator(request).record_signal(
            session_id,
            req.signal_type,
            item_id=req.item_id,
            detail=req.detail,
        )
    return SignalResp(signal_id=signal.signal_id, signal_type=signal.signal_type)


@router.get("/{session_id}/report", response_model=HiringReport)
def report(session_id: str, request: Request) -> HiringReport:
    with _mapped_errors():
        return _orchestrator(request).get_report(session_id)


@router.get("/{session_id}/report.pdf")
def report_pdf(session_id: str, request: Request) -> Response:
    orchestrator = _orchestrator(request)
    with _mapped_errors():
        hiring_report = orchestrator.get_report(session_id)
        session = orchestrator.get_session(session_id)
    payload = generate_hiring_report_pdf(hiring_report, session)
    filename = f"{_safe_slug(session.role) or 'interview'}-{session.session_id[:8]}-report.pdf"
    headers = {"Content-Disposition": f"attachment; filename=\"{filename}\""}
    return Response(content=payload, media_type="application/pdf", headers=headers)


@router.post("/{session_id}/abandon", response_model=CurrentView)
def abandon(session_id: str, request: Request) -> CurrentView:
    with _mapped_errors():
        return _orchestrator(request).abandon(session_id)


def _safe_slug(value: str) -> str:  # Sanitize value for filenames
    slug = re.sub(r"[^a-z0-9]+", "-", (value or "").lower())
    return re.sub(r"-+", "-", slug).strip("-")
