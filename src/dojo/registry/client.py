"""HTTP client for a running Dojo registry server."""

import json
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Dict, Optional

from .health_registry import HealthRecord


class RegistryClientError(Exception):
    """The registry server rejected a request or could not be reached."""


class RegistryClient:
    """Thin HTTP client that talks to the registry HTTP API."""

    def __init__(self, host: str = "localhost", port: int = 8080, timeout: float = 10):
        self._base = f"http://{host}:{port}"
        self._timeout = timeout
        self._opener = urllib.request.build_opener(urllib.request.ProxyHandler({}))

    def _get(self, path: str) -> Any:
        url = f"{self._base}{path}"
        with self._opener.open(url, timeout=self._timeout) as resp:
            return json.loads(resp.read().decode())

    def _send(self, method: str, path: str, form: Dict[str, str]) -> None:
        data = urllib.parse.urlencode(form).encode()
        req = urllib.request.Request(f"{self._base}{path}", data=data, method=method)
        req.add_header("Content-Type", "application/x-www-form-urlencoded")
        try:
            with self._opener.open(req, timeout=self._timeout):
                pass
        except urllib.error.HTTPError as exc:
            raise RegistryClientError(_error_text(exc)) from exc
        except (urllib.error.URLError, OSError) as exc:
            raise RegistryClientError(f"cannot reach registry at {self._base}: {exc}") from exc

    def list_servers(self) -> Dict[int, HealthRecord]:
        try:
            data = self._get("/server")
        except (urllib.error.URLError, OSError):
            return {}
        return {int(team): HealthRecord.from_dict(d) for team, d in data.items()}

    def get_server(self, team: int) -> Optional[HealthRecord]:
        try:
            data = self._get(f"/server/{team}")
        except (urllib.error.URLError, OSError):
            return None
        return HealthRecord.from_dict(data)

    def register(self, token: str, url: str) -> None:
        self._send("POST", "/server", {"token": token, "url": url})

    def deregister(self, token: str, team: int) -> None:
        qs = urllib.parse.urlencode({"token": token})
        self._send("DELETE", f"/server/{team}?{qs}", {})


def _error_text(exc: urllib.error.HTTPError) -> str:
    try:
        return json.loads(exc.read().decode()).get("error", str(exc))
    except (ValueError, OSError):
        return str(exc)
