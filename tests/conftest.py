"""
Test fixtures and configuration for pytest
"""

import pytest
from sentry_sdk.transport import Transport


class CapturingTransport(Transport):
    """Sentry transport that keeps envelopes in memory instead of sending them."""

    def __init__(self):
        super().__init__()
        self.envelopes = []

    def capture_envelope(self, envelope):
        self.envelopes.append(envelope)

    @property
    def events(self):
        """Error/message events that would have been transmitted."""
        found = (envelope.get_event() for envelope in self.envelopes)
        return [event for event in found if event is not None]


@pytest.fixture(autouse=True)
def _isolated_log_dir(tmp_path, monkeypatch):
    """Keep every test's log files out of the project tree."""
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    yield


@pytest.fixture
def demo_config():
    """Provide a fully-resolved test configuration"""
    return {
        "web_server": {
            "host": "127.0.0.1",
            "port": 3099,
            "service_name": "Test Demo",
        },
        "sentry": {
            "dsn": "https://public@bugsink.example.com/1",
            "environment": "test",
            "debug": False,
            "traces_sample_rate": 0.0,
            "send_default_pii": True,
            "dashboard_url": "https://bugsink.example.com/",
        },
        "logging": {"debug": False},
    }


@pytest.fixture
def offline_config(demo_config):
    """Same configuration with Sentry switched off (no DSN)."""
    return {**demo_config, "sentry": {**demo_config["sentry"], "dsn": ""}}


@pytest.fixture
def transport():
    return CapturingTransport()


@pytest.fixture
def tracker(demo_config, transport):
    """An ``ErrorTracker`` whose SDK client transmits into ``transport``."""
    from bugsink_demo.observability.errors import ErrorTracker

    et = ErrorTracker(demo_config, transport=transport)
    yield et
    et.close()


@pytest.fixture
def offline_tracker(offline_config):
    from bugsink_demo.observability.errors import ErrorTracker

    et = ErrorTracker(offline_config)
    yield et
    et.close()


@pytest.fixture
def flask_client(demo_config, tracker, transport):
    """Test client for a ``DemoServer`` reporting into ``transport``."""
    from bugsink_demo.web_server import DemoServer

    server = DemoServer(config=demo_config, tracker=tracker)
    server.app.config["TESTING"] = True
    with server.app.test_client() as client:
        yield client, transport
