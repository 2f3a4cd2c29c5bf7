"""Terminal rendering of run reports."""

from efistubmgr.report.renderer import ReportRenderer

__all__ = ["ReportRenderer"]
