from __future__ import annotations  # Assessment report exports

from .pdf import generate_assessment_report_pdf

__all__ = ["generate_assessment_report_pdf"]
