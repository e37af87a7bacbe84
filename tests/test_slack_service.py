import socket
import threading
import time

import pytest

from summarizer.services.history_service import HistoryFetcher, UpstreamFetchError
from summarizer.services.slack_service import SlackService


class LocalSlackServer:
    """TCP server on localhost that either hangs up on or ignores every request"""

    def __init__(self, hang_up=True):
        self.hang_up = hang_up
        self.hits = 0
        self.open_connections = []
        self._stop = threading.Event()
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self.sock.bind(('127.0.0.1', 0))
        self.sock.listen(8)
        self.sock.settimeout(0.1)
        self.url = f'http://127.0.0.1:{self.sock.getsockname()[1]}/api/'
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    def _serve(self):
        while not self._stop.is_set():
            try:
                conn, _ = self.sock.accept()
            except socket.timeout:
                continue
            self.hits += 1
            if self.hang_up:
                conn.settimeout(1)
                try:
                    conn.recv(65536)
                except OSError:
                    pass
                conn.close()
            else:
                self.open_connections.append(conn)

    def close(self):
        self._stop.set()
        self._thread.join(2)
        for conn in self.open_connections:
            conn.close()
        self.sock.close()


@pytest.fixture
def hang_up_server():
    server = LocalSlackServer(hang_up=True)
    yield server
    server.close()


@pytest.fixture
def silent_server():
    server = LocalSlackServer(hang_up=False)
    yield server
    server.close()


def test_client_has_no_sdk_retry_handlers():
    service = SlackService(token='xoxb-test')

    assert service.client.retry_handlers == []


def test_transport_failure_is_retried_exactly_once(hang_up_server):
    service = SlackService(token='xoxb-test', base_url=hang_up_server.url)
    fetcher = HistoryFetcher(service, sleep=lambda seconds: None)

    with pytest.raises(UpstreamFetchError):
        fetcher.fetch('C1', 3600, 100)

    assert hang_up_server.hits == 2


def test_placeholder_post_honours_per_call_timeout(silent_server):
    service = SlackService(token='xoxb-test', base_url=silent_server.url)

    start = time.monotonic()
    with pytest.raises(Exception):
        service.post_placeholder('C1', 'working on it', timeout=0.2)
    elapsed = time.monotonic() - start

    assert elapsed < 2
    assert silent_server.hits == 1
    assert service.client.timeout == SlackService.DEFAULT_TIMEOUT
