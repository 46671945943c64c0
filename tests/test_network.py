from types import SimpleNamespace

from network import NetworkMonitor


def test_monitor_tracks_failures_and_rate_limits(fake_page):
    monitor = NetworkMonitor(fake_page)
    for url, status in [("https://github.com/a", 200), ("https://github.com/b", 429), ("https://github.com/c", 503)]:
        fake_page.emit("response", SimpleNamespace(url=url, status=status))

    assert [r.status for r in monitor.get_responses()] == [200, 429, 503]
    assert [r.url for r in monitor.failed()] == ["https://github.com/b", "https://github.com/c"]
    assert [r.url for r in monitor.rate_limited()] == ["https://github.com/b"]

    monitor.clear()
    assert monitor.get_responses() == []


def test_stopped_monitor_ignores_responses(fake_page):
    monitor = NetworkMonitor(fake_page)
    monitor.stop()
    fake_page.emit("response", SimpleNamespace(url="https://github.com", status=200))
    assert monitor.get_responses() == []
