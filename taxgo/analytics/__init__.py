"""Dashboard analytics package."""

from taxgo.analytics.summary import DashboardSummary, GroupShare, build_summary

__all__ = ["DashboardSummary", "GroupShare", "build_summary"]
