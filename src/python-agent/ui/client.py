from typing import Any, Dict

import httpx


class UIClient:
    """Lightweight client for the farm status UI API."""

    def __init__(self, base_url: str = "http://localhost:9001", timeout: float = 3.0):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(timeout=timeout)

    def update_status(self, **fields: Any) -> Dict[str, Any]:
        return self._post("/api/status", fields)

    def close(self) -> None:
        self.client.close()

    def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = self.client.post(f"{self.base_url}{path}", json=payload)
        response.raise_for_status()
        return response.json()
