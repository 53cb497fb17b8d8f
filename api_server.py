from __future__ import annotations  # FastAPI server exposing the interview round pipeline

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router
from config import (
    ANSWER_EVALUATOR_KEY,
    CODE_REVIEWER_KEY,
    CODE_SANDBOX_KEY,
    ITEM_GENERATOR_KEY,
    AppConfig,
    bind_model,
    load_config,
    resolve_registry,
    settings,
)
from evaluation import EvaluationDispatcher
from evaluation.ai_evaluator import ANSWER_ROUTE, CODE_REVIEW_ROUTE, make_answer_evaluator, make_code_reviewer
from evaluation.sandbox import Judge0Sandbox
from interview_session.orchestrator import SessionOrchestrator
from question_gen.llm import GENERATOR_ROUTE, make_item_generator
from services.drafts import DraftBuffer
from storage.migrate import migrate

logger = logging.getLogger(__name__)


def load_app_config(path: Optional[str] = None) -> AppConfig:  # Defaults apply when no file is present
    config_path = Path(path or settings.APP_CONFIG_PATH)
    if not config_path.exists():
        logger.warning("No configuration at %s, using built-in defaults", config_path)
        return AppConfig()
    return load_config(config_path)


def bind_providers(cfg: AppConfig) -> None:
    """Bind LLM-backed providers for every registry target with a route."""

    routes = resolve_registry(cfg, [ANSWER_ROUTE, CODE_REVIEW_ROUTE, GENERATOR_ROUTE])
    if ANSWER_ROUTE in routes:
        bind_model(ANSWER_EVALUATOR_KEY, make_answer_evaluator(routes[ANSWER_ROUTE]))
    if CODE_REVIEW_ROUTE in routes:
        bind_model(CODE_REVIEWER_KEY, make_code_reviewer(routes[CODE_REVIEW_ROUTE]))
    if GENERATOR_ROUTE in routes:
        bind_model(ITEM_GENERATOR_KEY, make_item_generator(routes[GENERATOR_ROUTE]))
    sandbox = Judge0Sandbox.from_settings(settings)
    if sandbox is not None:
        bind_model(CODE_SANDBOX_KEY, sandbox)
    unbound = [target for target in (ANSWER_ROUTE, CODE_REVIEW_ROUTE) if target not in routes]
    if unbound:
        logger.warning("No LLM route for %s; bind providers before grading", ", ".join(unbound))


def build_orchestrator(cfg: AppConfig) -> SessionOrchestrator:
    dispatcher = EvaluationDispatcher(cfg.scoring)
    return SessionOrchestrator(cfg, dispatcher, drafts=DraftBuffer(settings.DRAFT_DEBOUNCE_S))


def create_app(orchestrator: Optional[SessionOrchestrator] = None) -> FastAPI:
    """Build the API; without an orchestrator one is wired from settings at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if getattr(app.state, "orchestrator", None) is None:
            migrate()
            cfg = load_app_config()
            bind_providers(cfg)
            app.state.orchestrator = build_orchestrator(cfg)
            requeued = app.state.orchestrator.dispatcher.recover()
            logger.info("Interview service ready (%d evaluations resumed)", requeued)
        try:
            yield
        finally:
            current = app.state.orchestrator
            current.drafts.close()
            current.dispatcher.shutdown()

    app = FastAPI(title="Interview Rounds API", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.orchestrator = orchestrator
    app.include_router(router)

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "ready": app.state.orchestrator is not None}

    return app


app = create_app()


__all__ = ["app", "create_app", "bind_providers", "build_orchestrator", "load_app_config"]
