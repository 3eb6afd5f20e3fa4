"""Per-team health monitor.

Each registered team gets one TeamMonitor running in a daemon thread. Every
cycle it reads the team's address from the registry, fetches
``<address>message`` and records the outcome, then waits ``interval``
seconds. The fetch runs in its own thread and is raced against ``timeout``;
when the timeout wins the fetch is abandoned and its result discarded.
"""

import http.client
import logging
import queue
import threading
import urllib.error
import urllib.request
from typing import Callable, Optional

from .errors import NoSuchTeam, PollError
from .registry import HealthState, InMemoryRegistry

logger = logging.getLogger(__name__)

POLL_INTERVAL = 1.0
POLL_TIMEOUT = 1.0
# Socket timeout for an individual fetch; reclaims abandoned polls.
TRANSPORT_TIMEOUT = 10.0

MESSAGE_RESOURCE = "message"

Fetcher = Callable[[str], str]


def make_fetcher(transport_timeout: float = TRANSPORT_TIMEOUT) -> Fetcher:
    """Return a fetch function that GETs a URL and returns its body as text."""
    # Bypass http_proxy env vars; team servers are polled directly.
    opener = urllib.request.build_opener(urllib.request.ProxyHandler({}))

    def fetch(url: str) -> str:
        try:
            with opener.open(url, timeout=transport_timeout) as resp:
                if resp.status != 200:
                    raise PollError(f"invalid status code {resp.status} {resp.reason} from server")
                try:
                    data = resp.read()
                except (OSError, http.client.HTTPException) as exc:
                    raise PollError(f"cannot read message body: {exc}") from exc
        except urllib.error.HTTPError as exc:
            exc.close()
            raise PollError(f"invalid status code {exc.code} {exc.reason} from server") from exc
        except (urllib.error.URLError, OSError, ValueError, http.client.HTTPException) as exc:
            raise PollError(f"cannot get URL {url}: {exc}") from exc
        return data.decode("utf-8", errors="replace")

    return fetch


def poll_with_timeout(url: str, timeout: float, fetch: Fetcher) -> str:
    """Fetch *url* in a worker thread and wait at most *timeout* seconds.

    Raises PollError on fetch failure or timeout. A fetch that loses the race
    keeps running until the transport gives up; its result goes nowhere.
    """
    results: queue.Queue = queue.Queue(maxsize=1)

    def _run() -> None:
        try:
            results.put((fetch(url), None))
        except PollError as exc:
            results.put((None, exc))

    threading.Thread(target=_run, name=f"poll {url}", daemon=True).start()
    try:
        message, err = results.get(timeout=timeout)
    except queue.Empty:
        raise PollError("timed out trying to connect to server") from None
    if err is not None:
        raise err
    return message


class TeamMonitor:
    """Background poller for a single team's server."""

    def __init__(
        self,
        team: int,
        registry: InMemoryRegistry,
        interval: float = POLL_INTERVAL,
        timeout: float = POLL_TIMEOUT,
        fetch: Optional[Fetcher] = None,
    ):
        self.team = team
        self.registry = registry
        self.interval = interval
        self.timeout = timeout
        self._fetch = fetch or make_fetcher()
        self._last_state: Optional[HealthState] = None
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, name=f"monitor-team-{team}", daemon=True)

    def start(self) -> None:
        self._thread.start()
        logger.info("Monitor for team %d started (interval=%.1fs, timeout=%.1fs)",
                    self.team, self.interval, self.timeout)

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> None:
        self._thread.join(timeout)

    @property
    def running(self) -> bool:
        return self._thread.is_alive() and not self._stop.is_set()

    def _loop(self) -> None:
        while not self._stop.is_set():
            if not self.check_once():
                break
            self._stop.wait(self.interval)
        logger.info("Monitor for team %d stopped", self.team)

    def check_once(self) -> bool:
        """Run one poll and record its outcome.

        Returns False once the team has left the registry, True otherwise.
        """
        try:
            address = self.registry.get_address(self.team)
        except NoSuchTeam:
            self._stop.set()
            return False

        try:
            message = poll_with_timeout(address + MESSAGE_RESOURCE, self.timeout, self._fetch)
        except PollError as exc:
            logger.debug("team %d poll failed: %s", self.team, exc)
            if self._stop.is_set():
                return False
            recorded = self.registry.set_status_error(self.team, str(exc))
            state = HealthState.ERROR
        else:
            if self._stop.is_set():
                return False
            recorded = self.registry.set_status_ok(self.team, message)
            state = HealthState.OK

        if not recorded:
            self._stop.set()
            return False
        if state != self._last_state:
            logger.info("team %d: %s -> %s", self.team,
                        self._last_state.value if self._last_state else "init", state.value)
            self._last_state = state
        return True
