class SuiteError(Exception):
    """Base class for failures raised by the suite itself."""


class ConfigurationError(SuiteError):
    pass


class NavigationError(SuiteError):
    def __init__(self, url: str, timeout_ms: int | None = None, reason: str = ""):
        self.url = url
        self.timeout_ms = timeout_ms
        self.reason = reason
        msg = f"Navigation to {url} failed"
        if timeout_ms is not None:
            msg += f" (timeout={timeout_ms}ms)"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ElementNotFoundError(SuiteError):
    def __init__(self, selector: str, timeout_ms: int, url: str = ""):
        self.selector = selector
        self.timeout_ms = timeout_ms
        self.url = url
        msg = f"Element not visible within {timeout_ms}ms: {selector}"
        if url:
            msg += f" (url={url})"
        super().__init__(msg)


class AssertionFailure(AssertionError):
    """An expected condition was false. `context` is attached to the report."""

    def __init__(self, message: str, context: dict | None = None):
        self.context = context or {}
        if self.context:
            details = ", ".join(f"{k}={v}" for k, v in self.context.items())
            message = f"{message} ({details})"
        super().__init__(message)


def check(condition, message: str, **context) -> None:
    if not condition:
        raise AssertionFailure(message, context)
