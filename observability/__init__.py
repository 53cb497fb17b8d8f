"""Observability utilities for the interview round pipeline."""
from .logger import log_event

__all__ = ["log_event"]
