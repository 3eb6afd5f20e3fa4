"""
HTTP API for the team registry

Routes:
- GET    /server                 all teams, messages stripped
- GET    /server/<team>          one team, including its message
- POST   /server                 register (form fields ``token`` and ``url``)
- DELETE /server/<team>?token=   deregister
"""

import json
import logging
import threading
import urllib.parse
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional

from ..errors import AddressError, AuthError

logger = logging.getLogger(__name__)

ROOT = "/server"


class _BadPath(Exception):
    pass


def _parse_team(path: str) -> Optional[int]:
    """Return the team number named by *path*, or None for the collection root."""
    name = path[len(ROOT):]
    if name.startswith("/"):
        name = name[1:]
    if not name:
        return None
    if "/" in name:
        raise _BadPath("bad server path")
    if not (name.isascii() and name.isdigit()):
        raise _BadPath("invalid server path")
    return int(name)


def _make_handler(service):
    """Create a handler class bound to the given RegistrationService."""

    class RegistryHTTPHandler(BaseHTTPRequestHandler):

        def log_message(self, format, *args):
            # Requests are logged by _route without their query strings
            pass

        def _json_response(self, data: Any, status: int = 200):
            body = json.dumps(data, sort_keys=True).encode()
            self.send_response(status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            if self.command != "HEAD":
                self.wfile.write(body)

        def _error(self, message: str, status: int = 400):
            self._json_response({"error": message}, status=status)

        def _empty_response(self, status: int = 200):
            self.send_response(status)
            self.send_header("Content-Length", "0")
            self.end_headers()

        def _route(self):
            """Return (team, query) for a /server path, or None after replying."""
            parsed = urllib.parse.urlparse(self.path)
            logger.info("%s %s", self.command, parsed.path)
            if parsed.path != ROOT and not parsed.path.startswith(ROOT + "/"):
                self._error("not found", status=404)
                return None
            try:
                team = _parse_team(parsed.path)
            except _BadPath as exc:
                self._error(str(exc))
                return None
            return team, urllib.parse.parse_qs(parsed.query)

        def _read_form(self, query: dict):
            """Return query and form body fields merged, or None after replying."""
            form = dict(query)
            try:
                length = int(self.headers.get("Content-Length") or 0)
                body = self.rfile.read(length).decode() if length > 0 else ""
            except (ValueError, UnicodeDecodeError) as exc:
                self._error(f"bad form: {exc}")
                return None
            if body:
                ctype = self.headers.get("Content-Type", "")
                if ctype.startswith("application/x-www-form-urlencoded"):
                    for key, values in urllib.parse.parse_qs(body).items():
                        form[key] = values + form.get(key, [])
            return form

        def do_GET(self):
            routed = self._route()
            if routed is None:
                return
            team, _ = routed
            if team is None:
                records = service.snapshot()
                self._json_response({
                    str(t): r.to_dict(include_message=False) for t, r in records.items()
                })
                return
            record = service.get(team)
            if record is None:
                self._error(f"no server registered for team {team}", status=404)
                return
            self._json_response(record.to_dict())

        def do_POST(self):
            routed = self._route()
            if routed is None:
                return
            team, query = routed
            if team is not None:
                self._error(f"you can only POST to {ROOT}", status=405)
                return
            form = self._read_form(query)
            if form is None:
                return
            token = form.get("token", [""])[0]
            url = form.get("url", [""])[0]
            try:
                service.register(token, url)
            except (AuthError, AddressError) as exc:
                self._error(str(exc))
                return
            self._empty_response()

        def do_DELETE(self):
            routed = self._route()
            if routed is None:
                return
            team, query = routed
            if team is None:
                self._error(f"you cannot delete {ROOT}", status=405)
                return
            form = self._read_form(query)
            if form is None:
                return
            token = form.get("token", [""])[0]
            try:
                service.deregister(token, team)
            except AuthError as exc:
                self._error(str(exc))
                return
            self._empty_response()

        def _method_not_allowed(self):
            logger.info("%s %s", self.command, urllib.parse.urlparse(self.path).path)
            self._error("only GET, POST and DELETE allowed", status=405)

        do_PUT = _method_not_allowed
        do_PATCH = _method_not_allowed
        do_HEAD = _method_not_allowed
        do_OPTIONS = _method_not_allowed
        do_TRACE = _method_not_allowed
        do_CONNECT = _method_not_allowed

    return RegistryHTTPHandler


def create_registry_server(service, host: str = "0.0.0.0", port: int = 8080) -> ThreadingHTTPServer:
    """Build a ThreadingHTTPServer serving the registry API for *service*."""
    server = ThreadingHTTPServer((host, port), _make_handler(service))
    server.daemon_threads = True
    return server


def start_registry_server(service, host: str = "0.0.0.0", port: int = 8080) -> ThreadingHTTPServer:
    """Start a ThreadingHTTPServer in a daemon thread and return the server."""
    server = create_registry_server(service, host=host, port=port)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server
