"""
Concierge - Session Logger.

Lightweight observability for debugging interview and recommendation flows.

Features:
- One JSONL file per session (easy to parse, tail -f friendly)
- Onboarding turns with the step before and after
- Profile save attempts and outcomes
- Ranking calls with candidate counts and top titles
- Smart truncation of large objects

Usage:
    from concierge.observability.session_logger import SessionLogger

    session_log = SessionLogger()  # Creates timestamped log file
    session_log.turn_start("j'ai 30 ans", step="age")
    session_log.turn_end("advanced", step="gender")
    session_log.close()

Log format (JSONL):
    {"ts": "2026-01-01T17:30:00", "event": "turn_start", "turn": 1, ...}
"""

import json
import time
from datetime import datetime
from pathlib import Path
from typing import Any


# =============================================================================
# Configuration
# =============================================================================

# Max string length before truncation
MAX_STRING_LEN = 200

# Max list items to show
MAX_LIST_ITEMS = 5

# Max dict keys to show
MAX_DICT_KEYS = 10

# Fields to always truncate heavily (free text typed by visitors)
HEAVY_FIELDS = {"additional_info", "description", "message", "query"}


# =============================================================================
# Smart Truncation
# =============================================================================


def _truncate_value(value: Any, depth: int = 0) -> Any:
    """
    Smart truncation of values for logging.

    - Strings > MAX_STRING_LEN get truncated with "..."
    - Lists > MAX_LIST_ITEMS show first N + count
    - Dicts > MAX_DICT_KEYS show first N keys + count
    - Nested structures respect depth limit
    """
    if depth > 3:
        return "<nested>"

    if value is None or isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, str):
        if len(value) > MAX_STRING_LEN:
            return value[:MAX_STRING_LEN] + f"... ({len(value)} chars)"
        return value

    if isinstance(value, (list, tuple)):
        items = [_truncate_value(v, depth + 1) for v in value[:MAX_LIST_ITEMS]]
        if len(value) > MAX_LIST_ITEMS:
            items.append(f"... +{len(value) - MAX_LIST_ITEMS} more")
        return items

    if isinstance(value, dict):
        result = {}
        for k in list(value.keys())[:MAX_DICT_KEYS]:
            v = value[k]
            if k in HEAVY_FIELDS and isinstance(v, str) and len(v) > 50:
                result[k] = v[:50] + f"... ({len(v)} chars)"
            else:
                result[k] = _truncate_value(v, depth + 1)
        if len(value) > MAX_DICT_KEYS:
            result["_truncated"] = f"+{len(value) - MAX_DICT_KEYS} keys"
        return result

    # Pydantic models, dataclasses and other objects
    if hasattr(value, "model_dump"):
        return _truncate_value(value.model_dump(), depth)
    if hasattr(value, "to_dict"):
        return _truncate_value(value.to_dict(), depth)
    if hasattr(value, "__dict__"):
        return _truncate_value(vars(value), depth)

    return str(value)[:MAX_STRING_LEN]


# =============================================================================
# Session Logger
# =============================================================================


class SessionLogger:
    """
    Per-session logger that writes JSONL to a file.

    When disabled every method is a no-op, so callers never need to check.
    """

    def __init__(
        self,
        session_id: str | None = None,
        enabled: bool = True,
        log_dir: str | Path | None = None,
    ):
        self.enabled = enabled
        self._turn_count = 0
        self._turn_started_at: float | None = None

        if not enabled:
            self.log_file = None
            self.log_path = None
            return

        if log_dir is None:
            from concierge.config import settings

            log_dir = settings.session_log_dir
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)

        if session_id is None:
            session_id = datetime.now().strftime("%Y%m%d_%H%M%S")

        self.session_id = session_id
        self.log_path = directory / f"session_{session_id}.jsonl"
        self.log_file = open(self.log_path, "a", encoding="utf-8")

        self._write({"event": "session_start", "session_id": session_id})

    def _write(self, data: dict) -> None:
        """Write a log entry."""
        if not self.enabled or self.log_file is None:
            return

        entry = {
            "ts": datetime.now().isoformat(),
            **data,
        }
        self.log_file.write(json.dumps(entry, default=str, ensure_ascii=False) + "\n")
        self.log_file.flush()  # Ensure it's written for tail -f

    # =========================================================================
    # Onboarding Events
    # =========================================================================

    def turn_start(self, user_message: str, step: str) -> None:
        """Log a visitor message arriving at an interview step."""
        self._turn_count += 1
        self._turn_started_at = time.time()
        self._write({
            "event": "turn_start",
            "turn": self._turn_count,
            "step": step,
            "user_message": _truncate_value(user_message),
        })

    def turn_end(self, outcome: str, step: str, profile: Any = None) -> None:
        """Log how the state machine resolved the turn."""
        duration_ms = (
            int((time.time() - self._turn_started_at) * 1000)
            if self._turn_started_at
            else None
        )
        self._turn_started_at = None
        self._write({
            "event": "turn_end",
            "turn": self._turn_count,
            "outcome": outcome,
            "step": step,
            "duration_ms": duration_ms,
            "profile": _truncate_value(profile) if profile is not None else None,
        })

    def profile_save(self, user_id: str, success: bool, error: str | None = None) -> None:
        """Log a profile persistence attempt."""
        self._write({
            "event": "profile_save",
            "turn": self._turn_count,
            "user_id": user_id,
            "success": success,
            "error": error,
        })

    # =========================================================================
    # Recommendation Events
    # =========================================================================

    def ranking(
        self,
        query: str,
        candidate_count: int,
        result_titles: list[str],
        only_on_sale: bool = False,
    ) -> None:
        """Log one ranking call."""
        self._write({
            "event": "ranking",
            "turn": self._turn_count,
            "query": _truncate_value(query),
            "candidates": candidate_count,
            "results": _truncate_value(result_titles),
            "only_on_sale": only_on_sale,
        })

    # =========================================================================
    # Custom Events
    # =========================================================================

    def log(self, event_type: str, **kwargs) -> None:
        """Log custom event."""
        self._write({
            "event": event_type,
            "turn": self._turn_count,
            **_truncate_value(kwargs),
        })

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def close(self) -> str | None:
        """Close the log file. Returns log path."""
        if self.log_file:
            self._write({"event": "session_end", "total_turns": self._turn_count})
            self.log_file.close()
            self.log_file = None
            return str(self.log_path)
        return None
