"""
Live interview package.

- orchestrator.py: turn-taking state machine
- session.py: session-state store
- retry.py: retry/backoff policy
- stream_consumer.py: fragment accumulation
- frame_correlator.py: mirrored still capture
- speech.py: speech sink adapters
"""

from .orchestrator import InterviewOrchestrator, InterviewState
from .session import InterviewSession
from .retry import RetryOutcome, retry_with_backoff

__all__ = [
    'InterviewOrchestrator',
    'InterviewState',
    'InterviewSession',
    'RetryOutcome',
    'retry_with_backoff',
]
