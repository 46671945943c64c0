import time
from dataclasses import dataclass


@dataclass
class ResponseRecord:
    url: str
    status: int
    timestamp: float


class NetworkMonitor:
    """Records the status of every response a page receives."""

    def __init__(self, page):
        self.page = page
        self.responses: list[ResponseRecord] = []
        page.on("response", self._on_response)

    def _on_response(self, response) -> None:
        self.responses.append(ResponseRecord(url=response.url, status=response.status, timestamp=time.time()))

    def get_responses(self) -> list[ResponseRecord]:
        return list(self.responses)

    def failed(self) -> list[ResponseRecord]:
        return [r for r in self.responses if r.status >= 400]

    def rate_limited(self) -> list[ResponseRecord]:
        return [r for r in self.responses if r.status == 429]

    def clear(self) -> None:
        self.responses = []

    def stop(self) -> None:
        self.page.remove_listener("response", self._on_response)
