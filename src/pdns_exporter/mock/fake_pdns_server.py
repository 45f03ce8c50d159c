"""
Fake PowerDNS HTTP API for testing without a DNS server.

    python -m pdns_exporter.mock.fake_pdns_server
    pdns-exporter --api-url http://localhost:8001/ --api-key secret
"""

from __future__ import annotations

import json
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Optional

from pdns_exporter.mock.generator import MockPowerDNS


class FakePowerDNSServer(HTTPServer):
    """HTTPServer that carries the simulated daemon and the expected API key.

    Setting `status_override` makes every API call answer with that status
    code, which is how tests simulate a broken upstream.
    """

    def __init__(self, address, api_key: str = "secret", daemon_type: str = "recursor", seed: int = 42):
        super().__init__(address, _APIHandler)
        self.api_key = api_key
        self.pdns = MockPowerDNS(seed=seed, daemon_type=daemon_type)
        self.status_override: Optional[int] = None


class _APIHandler(BaseHTTPRequestHandler):
    server: FakePowerDNSServer

    def do_GET(self):
        if self.headers.get("X-API-Key") != self.server.api_key:
            self._send(401, b"Unauthorized", "text/plain")
            return

        if self.server.status_override is not None:
            self._send(self.server.status_override, b"Internal Server Error", "text/plain")
            return

        path = self.path.rstrip("/")
        if path.endswith("/servers/localhost/statistics"):
            payload = self.server.pdns.statistics()
        elif path.endswith("/servers/localhost"):
            payload = self.server.pdns.server_info()
        else:
            self._send(404, b"Not Found", "text/plain")
            return

        self._send(200, json.dumps(payload).encode(), "application/json")

    def _send(self, status: int, body: bytes, content_type: str):
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass  # Suppress request logging noise


def run_fake_server(host: str = "127.0.0.1", port: int = 8001, daemon_type: str = "recursor"):
    server = FakePowerDNSServer((host, port), daemon_type=daemon_type)
    print(f"Fake PowerDNS {daemon_type} API running at http://{host}:{port}/ (API key: {server.api_key})")
    print("Press Ctrl+C to stop.\n")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        pass
    server.server_close()
    print("\nServer stopped.")


if __name__ == "__main__":
    run_fake_server()
