"""Evaluation of submitted items: providers, sandbox, the grading worker and the job dispatcher."""
from .dispatcher import EvaluationDispatcher, JobQueue, JobView
from .evaluators import AnswerEvaluation, CodeReview, evaluate, evaluate_answer, evaluate_code, neutral_result
from .worker import TRANSIENT_ERRORS, EvaluationWorker

__all__ = [
    "EvaluationDispatcher",
    "EvaluationWorker",
    "JobQueue",
    "JobView",
    "TRANSIENT_ERRORS",
    "AnswerEvaluation",
    "CodeReview",
    "evaluate",
    "evaluate_answer",
    "evaluate_code",
    "neutral_result",
]
