"""Report assembly and rendering."""

from skillaudit.reporters.markdown import render_report_markdown
from skillaudit.reporters.report import build_report

__all__ = ["build_report", "render_report_markdown"]
