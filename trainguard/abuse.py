"""
AI abuse prevention.

Tracks per-user AI request cadence, spend and failures, and signals when a
request should be throttled. The guardrail engine never calls this module;
the calling application composes the two (see `trainguard.gate`).

`AbuseGuard` is the interface callers depend on. `InMemoryAbuseGuard` is a
single-process implementation suitable for tests and small deployments.
"""

import logging
import math
import re
import threading
import time
from datetime import datetime
from typing import Callable, Dict, List, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field

from trainguard.schemas import AbuseCheckResult, AbuseViolationType, UserAILimits

logger = logging.getLogger(__name__)


class AILimits(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Rate limits
    MAX_REQUESTS_PER_HOUR: int = 30
    MAX_REQUESTS_PER_DAY: int = 100
    MIN_INTERVAL_SECONDS: float = 1.0

    # Budget limits
    MAX_TOKENS_PER_DAY: int = 50000
    MAX_COST_PER_DAY_USD: float = 0.50
    MAX_COST_PER_MONTH_USD: float = 5.00

    # Content limits
    MAX_INPUT_LENGTH: int = 5000
    MAX_PROMPT_INJECTION_SCORE: int = 3

    # Failure limits
    MAX_CONSECUTIVE_FAILURES: int = 5
    FAILURE_COOLDOWN_MINUTES: int = 5

    # Flagging
    FLAG_DURATION_HOURS: int = 24
    VIOLATIONS_THRESHOLD: int = 5


AI_LIMITS = AILimits()

_INJECTION_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"ignore\s+(previous|all|the)\s+(instructions|prompts)",
        r"you\s+are\s+(now|no\s+longer)",
        r"forget\s+(everything|what|your)",
        r"new\s+instructions",
        r"disregard\s+(the|all|previous)",
        r"override\s+(the|your)",
        r"pretend\s+(to\s+be|you\s+are)",
        r"act\s+as\s+(if|a)",
        r"system\s*:\s*",
        r"\[system\]",
        r"</?system>",
        r"jailbreak",
        r"DAN\s+mode",
    )
]
_SPECIAL_CHARS_RE = re.compile(r"[{}\[\]<>|\\`]")
_DAY_SECONDS = 24 * 60 * 60


def detect_prompt_injection(text: str) -> int:
    """
    Score how much a user input looks like a prompt injection attempt.

    Each known injection phrase adds 2; a high share of special characters
    and very long unbroken words add 1 each.
    """
    score = sum(2 for pattern in _INJECTION_PATTERNS if pattern.search(text))

    special_chars = len(_SPECIAL_CHARS_RE.findall(text))
    if special_chars > len(text) * 0.1:
        score += 1

    if any(len(word) > 50 for word in text.split()):
        score += 1

    return score


class UserViolation(BaseModel):
    timestamp: float
    type: AbuseViolationType
    details: str


class UserAIHistory(BaseModel):
    """Usage counters for one user."""

    user_id: str
    requests_today: int = 0
    requests_this_hour: int = 0
    total_tokens_today: int = 0
    cost_today_usd: float = 0.0
    cost_this_month_usd: float = 0.0
    last_request_at: float = 0.0
    consecutive_failures: int = 0
    flagged_until: Optional[float] = None
    violations: List[UserViolation] = Field(default_factory=list)


class AbuseGuard(Protocol):
    """Interface the calling application uses to throttle AI requests."""

    def check(self, user_id: str, text: str, request_type: str) -> AbuseCheckResult:
        ...

    def record_request(self, user_id: str, tokens: int, cost_usd: float) -> None:
        ...

    def record_failure(self, user_id: str) -> None:
        ...

    def record_violation(
        self, user_id: str, violation_type: AbuseViolationType, details: str
    ) -> None:
        ...

    def get_limits(self, user_id: str) -> UserAILimits:
        ...


class InMemoryAbuseGuard:
    """
    Per-process abuse guard keeping user histories in a dict.

    Counters roll over on calendar hour, day and month boundaries of the
    injected clock.
    """

    def __init__(
        self,
        limits: AILimits = AI_LIMITS,
        clock: Callable[[], float] = time.time,
    ):
        self.limits = limits
        self._clock = clock
        self._histories: Dict[str, UserAIHistory] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # History bookkeeping
    # ------------------------------------------------------------------

    def get_history(self, user_id: str) -> UserAIHistory:
        with self._lock:
            history = self._histories.get(user_id)
            if history is None:
                history = UserAIHistory(user_id=user_id)
                self._histories[user_id] = history
                return history

            if history.last_request_at:
                self._roll_over(history, self._clock())
            return history

    @staticmethod
    def _roll_over(history: UserAIHistory, now: float) -> None:
        last = datetime.fromtimestamp(history.last_request_at)
        today = datetime.fromtimestamp(now)

        if last.date() != today.date():
            history.requests_today = 0
            history.total_tokens_today = 0
            history.cost_today_usd = 0.0
            history.consecutive_failures = 0

        if math.floor(now / 3600) != math.floor(history.last_request_at / 3600):
            history.requests_this_hour = 0

        if (last.year, last.month) != (today.year, today.month):
            history.cost_this_month_usd = 0.0

    def _recent_violations(self, history: UserAIHistory, now: float) -> int:
        return sum(1 for v in history.violations if now - v.timestamp < _DAY_SECONDS)

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    def check(self, user_id: str, text: str, request_type: str) -> AbuseCheckResult:
        """
        Decide whether an AI request may proceed.

        Checks run in order: account flag, rate limits, budget, content and
        usage patterns. Content and pattern failures are recorded as
        violations against the user.
        """
        with self._lock:
            history = self.get_history(user_id)
            now = self._clock()

            if history.flagged_until and now < history.flagged_until:
                result = AbuseCheckResult(
                    allowed=False,
                    reason="Account temporarily suspended after repeated violations",
                    wait_seconds=math.ceil(history.flagged_until - now),
                    violation_type=AbuseViolationType.ACCOUNT_FLAGGED,
                )
            else:
                result = (
                    self._check_rate_limit(history, now)
                    or self._check_budget(history)
                    or self._check_content(user_id, text)
                    or self._check_patterns(user_id, history, now)
                    or AbuseCheckResult(allowed=True)
                )

        if not result.allowed:
            logger.info(
                "AI request blocked for user %s (%s): %s",
                user_id,
                request_type,
                result.violation_type.value if result.violation_type else "unknown",
            )
        return result

    def _check_rate_limit(self, history: UserAIHistory, now: float) -> Optional[AbuseCheckResult]:
        limits = self.limits

        if now - history.last_request_at < limits.MIN_INTERVAL_SECONDS:
            return AbuseCheckResult(
                allowed=False,
                reason="Please wait a moment between requests",
                wait_seconds=math.ceil(limits.MIN_INTERVAL_SECONDS),
                violation_type=AbuseViolationType.RATE_LIMIT,
            )

        if history.requests_this_hour >= limits.MAX_REQUESTS_PER_HOUR:
            return AbuseCheckResult(
                allowed=False,
                reason=f"Limit of {limits.MAX_REQUESTS_PER_HOUR} requests per hour reached",
                wait_seconds=math.ceil(3600 - now % 3600),
                violation_type=AbuseViolationType.RATE_LIMIT,
            )

        if history.requests_today >= limits.MAX_REQUESTS_PER_DAY:
            return AbuseCheckResult(
                allowed=False,
                reason=f"Limit of {limits.MAX_REQUESTS_PER_DAY} requests per day reached",
                violation_type=AbuseViolationType.RATE_LIMIT,
            )

        if history.consecutive_failures >= limits.MAX_CONSECUTIVE_FAILURES:
            return AbuseCheckResult(
                allowed=False,
                reason="Too many consecutive failures. Wait a few minutes.",
                wait_seconds=limits.FAILURE_COOLDOWN_MINUTES * 60,
                violation_type=AbuseViolationType.RATE_LIMIT,
            )

        return None

    def _check_budget(self, history: UserAIHistory) -> Optional[AbuseCheckResult]:
        limits = self.limits

        if history.cost_today_usd >= limits.MAX_COST_PER_DAY_USD:
            reason = "Daily usage limit reached. Try again tomorrow."
        elif history.cost_this_month_usd >= limits.MAX_COST_PER_MONTH_USD:
            reason = "Monthly usage limit reached."
        elif history.total_tokens_today >= limits.MAX_TOKENS_PER_DAY:
            reason = "Daily token limit reached."
        else:
            return None

        return AbuseCheckResult(
            allowed=False,
            reason=reason,
            violation_type=AbuseViolationType.BUDGET_EXCEEDED,
        )

    def _check_content(self, user_id: str, text: str) -> Optional[AbuseCheckResult]:
        if len(text) > self.limits.MAX_INPUT_LENGTH:
            reason = "Input too long"
        elif detect_prompt_injection(text) >= self.limits.MAX_PROMPT_INJECTION_SCORE:
            reason = "Disallowed content detected"
        else:
            return None

        self.record_violation(user_id, AbuseViolationType.CONTENT_VIOLATION, reason)
        return AbuseCheckResult(
            allowed=False,
            reason=reason,
            violation_type=AbuseViolationType.CONTENT_VIOLATION,
        )

    def _check_patterns(
        self, user_id: str, history: UserAIHistory, now: float
    ) -> Optional[AbuseCheckResult]:
        if self._recent_violations(history, now) < self.limits.VIOLATIONS_THRESHOLD:
            return None

        self.record_violation(
            user_id, AbuseViolationType.SUSPICIOUS_PATTERN, "Suspicious usage pattern"
        )
        return AbuseCheckResult(
            allowed=False,
            reason="Too many recent violations. Account temporarily limited.",
            violation_type=AbuseViolationType.SUSPICIOUS_PATTERN,
        )

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_request(self, user_id: str, tokens: int, cost_usd: float) -> None:
        with self._lock:
            history = self.get_history(user_id)
            history.requests_today += 1
            history.requests_this_hour += 1
            history.total_tokens_today += tokens
            history.cost_today_usd += cost_usd
            history.cost_this_month_usd += cost_usd
            history.last_request_at = self._clock()
            history.consecutive_failures = 0

    def record_failure(self, user_id: str) -> None:
        with self._lock:
            history = self.get_history(user_id)
            history.consecutive_failures += 1
            history.last_request_at = self._clock()

    def record_violation(
        self, user_id: str, violation_type: AbuseViolationType, details: str
    ) -> None:
        """Record a violation and flag the account once the threshold is reached."""
        with self._lock:
            history = self.get_history(user_id)
            now = self._clock()
            history.violations = [
                v for v in history.violations if now - v.timestamp < _DAY_SECONDS
            ]
            history.violations.append(
                UserViolation(timestamp=now, type=violation_type, details=details)
            )

            if self._recent_violations(history, now) >= self.limits.VIOLATIONS_THRESHOLD:
                history.flagged_until = now + self.limits.FLAG_DURATION_HOURS * 3600
                logger.warning("User %s flagged until %s", user_id, history.flagged_until)

    def get_limits(self, user_id: str) -> UserAILimits:
        with self._lock:
            history = self.get_history(user_id)
            now = self._clock()
            limits = self.limits

            return UserAILimits(
                requests_remaining_today=max(0, limits.MAX_REQUESTS_PER_DAY - history.requests_today),
                requests_remaining_hour=max(0, limits.MAX_REQUESTS_PER_HOUR - history.requests_this_hour),
                tokens_remaining_today=max(0, limits.MAX_TOKENS_PER_DAY - history.total_tokens_today),
                budget_remaining_today_usd=max(0.0, limits.MAX_COST_PER_DAY_USD - history.cost_today_usd),
                budget_remaining_month_usd=max(0.0, limits.MAX_COST_PER_MONTH_USD - history.cost_this_month_usd),
                is_flagged=history.flagged_until is not None and now < history.flagged_until,
                can_make_request=self.check(user_id, "", "limits").allowed,
            )
