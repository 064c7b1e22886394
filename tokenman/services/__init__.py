"""
Tokenman Services.

    from tokenman.services import EtaEstimator, QueueBacklogReader, TokenIssuer, TokenLifecycle
"""

from .backlog import QueueBacklogReader  # noqa: F401
from .eta import EtaEstimate, EtaEstimator  # noqa: F401
from .issue import IssueResult, TokenIssuer  # noqa: F401
from .lifecycle import TokenLifecycle, parse_scan_payload  # noqa: F401
