"""
Gap Auditor Service.

Independent, read-only verification pass comparing on-chain swap counts
with stored counts.
"""

from .core import GapAuditorService, build_gap_auditor
from .schemas import GapAuditReport, GapAuditRequest, TokenGapReport, WindowGap

__all__ = [
    "GapAuditReport",
    "GapAuditRequest",
    "GapAuditorService",
    "TokenGapReport",
    "WindowGap",
    "build_gap_auditor",
]
