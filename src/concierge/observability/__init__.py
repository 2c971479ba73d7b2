"""
Concierge - Observability Package.

Provides:
- JSONL session logs for onboarding turns and ranking calls
"""

from concierge.observability.session_logger import SessionLogger

__all__ = [
    "SessionLogger",
]
