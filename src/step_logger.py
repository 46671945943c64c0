import json
import logging
import time


class ScenarioLogger:
    """Per-check logger: prefixes the check name, times each step."""

    def __init__(self, name: str, logger: logging.Logger | None = None):
        self.name = name
        self.logger = logger or logging.getLogger("scenarios")
        self.start = time.monotonic()
        self.steps: list[str] = []

    def _fmt(self, message: str, data=None) -> str:
        text = f"[{self.name}] {message}"
        if data is not None:
            text += "\n  Data: " + json.dumps(data, indent=2, default=str)
        return text

    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.start) * 1000)

    def step(self, message: str) -> None:
        self.steps.append(message)
        self.logger.info("→ [%dms] %s", self.elapsed_ms(), self._fmt(message))

    def info(self, message: str, data=None) -> None:
        self.logger.info(self._fmt(message, data))

    def success(self, message: str, data=None) -> None:
        self.logger.info("✓ " + self._fmt(message, data))

    def warn(self, message: str, data=None) -> None:
        self.logger.warning("⚠️ " + self._fmt(message, data))

    def error(self, message: str, data=None) -> None:
        self.logger.error("✖ " + self._fmt(message, data))
