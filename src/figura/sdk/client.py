from __future__ import annotations

from typing import Any


class FiguraClient:
    """HTTP client for a running figura compile server."""

    def __init__(self, base_url: str = "http://127.0.0.1:8000", *, transport: Any | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        # Optional httpx transport (e.g. httpx.MockTransport in tests).
        self._transport = transport

    def _client(self, timeout_s: float) -> Any:
        import httpx

        return httpx.Client(base_url=self.base_url, timeout=timeout_s, transport=self._transport)

    def is_alive(self, *, timeout_s: float = 0.2) -> bool:
        import httpx

        try:
            with self._client(timeout_s) as client:
                res = client.get("/healthz")
                return res.status_code == 200 and bool(res.json().get("ok"))
        except httpx.HTTPError:
            return False

    def list_sources(self, *, timeout_s: float = 10.0) -> list[str]:
        with self._client(timeout_s) as client:
            res = client.get("/api/sources")
            if res.status_code >= 400:
                raise RuntimeError(f"Failed to list sources: {res.status_code} {res.text}")
            return [str(s) for s in res.json().get("sources", [])]

    def put_source(self, name: str, text: str, *, timeout_s: float = 10.0) -> dict[str, Any]:
        n = str(name).strip()
        if not n:
            raise ValueError("name cannot be empty")

        with self._client(timeout_s) as client:
            res = client.put(f"/api/sources/{n}", json={"text": text})
            if res.status_code >= 400:
                raise RuntimeError(f"Failed to register source: {res.status_code} {res.text}")
            return dict(res.json())

    def expand(self, script: str, *, timeout_s: float = 30.0) -> str:
        with self._client(timeout_s) as client:
            res = client.post("/api/expand", json={"script": script})
            if res.status_code >= 400:
                raise RuntimeError(f"Failed to expand script: {res.status_code} {res.text}")
            return str(res.json()["text"])

    def compile(self, script: str, *, timeout_s: float = 30.0) -> dict[str, Any]:
        with self._client(timeout_s) as client:
            res = client.post("/api/compile", json={"script": script})
            if res.status_code >= 400:
                raise RuntimeError(f"Failed to compile script: {res.status_code} {res.text}")
            return dict(res.json())

    def get_clip(self, *, timeout_s: float = 10.0) -> dict[str, Any] | None:
        with self._client(timeout_s) as client:
            res = client.get("/api/clip")
            if res.status_code == 404:
                return None
            if res.status_code >= 400:
                raise RuntimeError(f"Failed to get clip: {res.status_code} {res.text}")
            return dict(res.json())

    def sample(self, t: float, *, timeout_s: float = 10.0) -> dict[str, Any]:
        with self._client(timeout_s) as client:
            res = client.get("/api/clip/sample", params={"t": str(float(t))})
            if res.status_code >= 400:
                raise RuntimeError(f"Failed to sample clip: {res.status_code} {res.text}")
            return dict(res.json()["bones"])

    def index_lines(self, text: str, *, dialect: str = "script", timeout_s: float = 10.0) -> list[dict[str, Any]]:
        if dialect not in ("script", "keyframes"):
            raise ValueError("dialect must be 'script' or 'keyframes'")

        with self._client(timeout_s) as client:
            res = client.post("/api/index-lines", json={"text": text, "dialect": dialect})
            if res.status_code >= 400:
                raise RuntimeError(f"Failed to index lines: {res.status_code} {res.text}")
            return list(res.json()["markers"])

    def list_examples(self, *, timeout_s: float = 10.0) -> list[dict[str, Any]]:
        with self._client(timeout_s) as client:
            res = client.get("/api/examples")
            if res.status_code >= 400:
                raise RuntimeError(f"Failed to list examples: {res.status_code} {res.text}")
            return list(res.json()["examples"])

    def get_example(self, example_id: str, *, timeout_s: float = 10.0) -> dict[str, Any]:
        with self._client(timeout_s) as client:
            res = client.get(f"/api/examples/{example_id}")
            if res.status_code >= 400:
                raise RuntimeError(f"Failed to get example: {res.status_code} {res.text}")
            return dict(res.json())
