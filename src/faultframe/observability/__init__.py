"""
Observability Module
====================

Reporting of playback telemetry. Reports never influence scheduling.
"""

from faultframe.observability.report import report_telemetry, summarize


__all__ = [
    "report_telemetry",
    "summarize",
]
