"""Abuse guard: safelist, blocklists, fail2ban-like bans and throttles.

Evaluation order per request:

1. safelist (bypasses everything)
2. blocklists (static IPs, banned IPs, bad user agents)
3. adaptive ban counter update for suspicious requests
4. throttles, in declaration order; the first one over its limit wins

Throttles count requests in fixed windows aligned to the epoch, so a
throttle's reset time is the next window boundary.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Optional
from urllib.parse import unquote_plus

from app.throttle.store import CounterStore

logger = logging.getLogger(__name__)

BOOKINGS_PATH = "/api/v1/bookings"

ALLOW = "allow"
SAFELISTED = "safelisted"
BLOCKED = "blocked"
THROTTLED = "throttled"


@dataclass(frozen=True)
class RequestInfo:
    ip: str
    method: str = "GET"
    path: str = "/"
    query_string: str = ""
    user_agent: str = ""
    email: Optional[str] = None

    @property
    def is_booking_submission(self) -> bool:
        return self.method == "POST" and self.path.rstrip("/") == BOOKINGS_PATH


@dataclass(frozen=True)
class Throttle:
    name: str
    limit: int
    period: int
    discriminator: Callable[[RequestInfo], Optional[str]]


@dataclass(frozen=True)
class GuardDecision:
    outcome: str
    rule: Optional[str] = None
    limit: Optional[int] = None
    period: Optional[int] = None
    count: Optional[int] = None
    epoch_time: Optional[int] = None
    reset_at: Optional[int] = None
    retry_after: Optional[int] = None

    @property
    def allowed(self) -> bool:
        return self.outcome in (ALLOW, SAFELISTED)


def request_ip(req: RequestInfo) -> Optional[str]:
    return req.ip


def booking_ip(req: RequestInfo) -> Optional[str]:
    if req.is_booking_submission:
        return req.ip
    return None


def booking_email(req: RequestInfo) -> Optional[str]:
    # Absent or non-string emails skip this throttle; the IP throttles still apply.
    if req.is_booking_submission and isinstance(req.email, str) and req.email.strip():
        return req.email.strip().lower()
    return None


def is_suspicious(req: RequestInfo) -> bool:
    """Path traversal, /etc/passwd lookups, or double percent-encoding."""
    if re.search(r"%[0-9a-fA-F]{2}", unquote_plus(req.query_string or "")):
        return True
    return "/etc/passwd" in req.path or ".." in req.path


@dataclass
class AbuseGuard:
    store: CounterStore
    throttles: list[Throttle] = field(default_factory=list)
    safelist: set[str] = field(default_factory=set)
    blocklist: set[str] = field(default_factory=set)
    blocked_user_agents: Optional[str] = None
    ban_max_retry: int = 5
    ban_find_time: int = 60
    ban_time: int = 3600
    prefix: str = "guard"

    @classmethod
    def from_settings(cls, settings, store: CounterStore) -> "AbuseGuard":
        return cls(
            store=store,
            throttles=[
                Throttle("req/ip", settings.THROTTLE_REQ_IP_LIMIT, settings.THROTTLE_REQ_IP_PERIOD, request_ip),
                Throttle("bookings/ip", settings.THROTTLE_BOOKINGS_IP_LIMIT, settings.THROTTLE_BOOKINGS_IP_PERIOD, booking_ip),
                Throttle("bookings/email", settings.THROTTLE_BOOKINGS_EMAIL_LIMIT, settings.THROTTLE_BOOKINGS_EMAIL_PERIOD, booking_email),
            ],
            safelist=settings.safelist_ips,
            blocklist=settings.blocklist_ips,
            blocked_user_agents=settings.BLOCKED_USER_AGENTS or None,
            ban_max_retry=settings.BAN_MAX_RETRY,
            ban_find_time=settings.BAN_FIND_TIME,
            ban_time=settings.BAN_TIME,
            prefix=settings.RATE_LIMIT_PREFIX,
        )

    def _key(self, *parts) -> str:
        return ":".join([self.prefix, *[str(p) for p in parts]])

    def block_ip(self, ip: str, ttl: int) -> None:
        """Add ``ip`` to the dynamic blocklist for ``ttl`` seconds."""
        self.store.set(self._key("blocked", ip), 1, ttl)

    def is_blocklisted(self, req: RequestInfo) -> bool:
        if req.ip in self.blocklist:
            return True
        if self.store.get(self._key("blocked", req.ip)):
            return True
        if self.store.get(self._key("allow2ban", "ban", req.ip)):
            return True
        if self.blocked_user_agents and re.search(self.blocked_user_agents, req.user_agent or "", re.IGNORECASE):
            return True
        return False

    def _track_suspicious(self, req: RequestInfo, now: int) -> None:
        if not is_suspicious(req):
            return
        window = now // self.ban_find_time
        count = self.store.increment(self._key("allow2ban", "count", window, req.ip), self.ban_find_time + 1)
        if count >= self.ban_max_retry:
            self.store.set(self._key("allow2ban", "ban", req.ip), 1, self.ban_time)
            logger.warning("[abuse guard][ban] IP: %s banned for %ss after %s suspicious requests", req.ip, self.ban_time, count)

    def _blocked(self, now: int) -> GuardDecision:
        # Blocks reuse the general throttle's numbers so the response does not
        # reveal whether the cause was reputation or volume.
        general = self.throttles[0] if self.throttles else Throttle("req/ip", 300, 300, request_ip)
        reset_at = now + (general.period - now % general.period)
        return GuardDecision(
            outcome=BLOCKED,
            rule="blocklist",
            limit=general.limit,
            period=general.period,
            epoch_time=now,
            reset_at=reset_at,
            retry_after=reset_at - now,
        )

    def check_lists(self, req: RequestInfo) -> Optional[GuardDecision]:
        """Safelist and blocklist verdicts only; None when neither applies.

        Needs nothing from the request body, so it can run before one is read.
        """
        if req.ip in self.safelist:
            return GuardDecision(outcome=SAFELISTED)
        if self.is_blocklisted(req):
            logger.warning("[abuse guard][blocklist] IP: %s | Path: %s", req.ip, req.path)
            return self._blocked(int(self.store.now()))
        return None

    def evaluate(self, req: RequestInfo) -> GuardDecision:
        now = int(self.store.now())

        decision = self.check_lists(req)
        if decision is not None:
            return decision

        self._track_suspicious(req, now)

        for throttle in self.throttles:
            discriminator = throttle.discriminator(req)
            if not discriminator:
                continue
            window = now // throttle.period
            count = self.store.increment(self._key(throttle.name, window, discriminator), throttle.period + 1)
            if count > throttle.limit:
                reset_at = now + (throttle.period - now % throttle.period)
                logger.warning(
                    "[abuse guard][throttle] IP: %s | Path: %s | Matched: %s", req.ip, req.path, throttle.name
                )
                return GuardDecision(
                    outcome=THROTTLED,
                    rule=throttle.name,
                    limit=throttle.limit,
                    period=throttle.period,
                    count=count,
                    epoch_time=now,
                    reset_at=reset_at,
                    retry_after=reset_at - now,
                )
        return GuardDecision(outcome=ALLOW)
