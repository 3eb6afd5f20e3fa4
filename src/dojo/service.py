"""Registration and deregistration of team servers."""

import logging
import threading
import urllib.parse
from typing import Callable, Dict, Optional

from .errors import AddressError, AuthError
from .monitor import POLL_INTERVAL, POLL_TIMEOUT, TRANSPORT_TIMEOUT, TeamMonitor, make_fetcher
from .registry import HealthRecord, InMemoryRegistry
from .tokens import TokenTable

logger = logging.getLogger(__name__)

_SCHEMES = ("http", "https")

MonitorFactory = Callable[[int, InMemoryRegistry], TeamMonitor]


def normalize_address(raw: str) -> str:
    """Return *raw* as a full URL whose path ends with a slash.

    A missing scheme defaults to http. Query and fragment are dropped so
    that appending a resource name yields a well-formed URL.
    """
    raw = raw.strip()
    if not raw:
        raise AddressError("no address found in request")
    if "://" not in raw:
        raw = "http://" + raw
    try:
        parts = urllib.parse.urlsplit(raw)
        parts.port  # raises ValueError on a malformed port
    except ValueError as exc:
        raise AddressError(f"bad server URL {raw!r}: {exc}") from exc
    if parts.scheme.lower() not in _SCHEMES:
        raise AddressError(f"bad server URL {raw!r}: unsupported scheme {parts.scheme!r}")
    if not parts.hostname:
        raise AddressError(f"bad server URL {raw!r}: missing host")
    path = parts.path
    if not path.endswith("/"):
        path += "/"
    return urllib.parse.urlunsplit((parts.scheme.lower(), parts.netloc, path, "", ""))


class RegistrationService:
    """Validates tokens, keeps the registry, and owns one monitor per team."""

    def __init__(
        self,
        tokens: TokenTable,
        registry: Optional[InMemoryRegistry] = None,
        monitor_factory: Optional[MonitorFactory] = None,
        poll_interval: float = POLL_INTERVAL,
        poll_timeout: float = POLL_TIMEOUT,
        transport_timeout: float = TRANSPORT_TIMEOUT,
    ):
        self.tokens = tokens
        self.registry = registry if registry is not None else InMemoryRegistry()
        if monitor_factory is None:
            fetch = make_fetcher(transport_timeout)

            def monitor_factory(team: int, registry: InMemoryRegistry) -> TeamMonitor:
                return TeamMonitor(team, registry, interval=poll_interval,
                                   timeout=poll_timeout, fetch=fetch)

        self._monitor_factory = monitor_factory
        self._lock = threading.Lock()
        self._monitors: Dict[int, TeamMonitor] = {}

    def register(self, token: str, raw_address: str) -> int:
        """Register *raw_address* for the team owning *token*; return the team."""
        if not token:
            raise AuthError("no token found in request")
        team = self.tokens.lookup(token)
        if team is None:
            raise AuthError(f"unknown team token {token!r}")
        if not raw_address:
            raise AddressError("no address found in request")
        address = normalize_address(raw_address)

        with self._lock:
            fresh = self.registry.insert_or_update_address(team, address)
            if fresh:
                monitor = self._monitor_factory(team, self.registry)
                self._monitors[team] = monitor
                monitor.start()
        logger.info("team %d %s %s", team, "registered" if fresh else "updated", address)
        return team

    def deregister(self, token: str, team: int) -> None:
        """Remove *team*'s entry; *token* must belong to that team."""
        if self.tokens.lookup(token) != team:
            raise AuthError("invalid token parameter")
        with self._lock:
            removed = self.registry.remove(team)
            monitor = self._monitors.pop(team, None)
        if monitor is not None:
            monitor.stop()
        if removed:
            logger.info("team %d deregistered", team)

    def get(self, team: int) -> Optional[HealthRecord]:
        return self.registry.get(team)

    def snapshot(self) -> Dict[int, HealthRecord]:
        return self.registry.snapshot()

    def monitor_for(self, team: int) -> Optional[TeamMonitor]:
        with self._lock:
            return self._monitors.get(team)

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Stop every monitor and wait up to *timeout* seconds for each."""
        with self._lock:
            monitors = list(self._monitors.values())
            self._monitors.clear()
        for monitor in monitors:
            monitor.stop()
        for monitor in monitors:
            monitor.join(timeout)
