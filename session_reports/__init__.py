from __future__ import annotations  # Hiring report rendering exports

from .pdf import generate_hiring_report_pdf

__all__ = ["generate_hiring_report_pdf"]
