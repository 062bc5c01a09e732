import socket
import threading

import pytest
import requests

from havenrouting.config import Config
from havenrouting.routing.osrm_client import OSRMClient

from helpers import FALLBACK, PRIMARY, SessionScript


@pytest.fixture
def failing_script():
    return SessionScript([requests.exceptions.ConnectionError("network unreachable")])


@pytest.fixture
def test_config():
    cfg = Config()
    cfg.endpoints = {'foot': [PRIMARY, FALLBACK], 'bicycle': [PRIMARY]}
    cfg.retry_delay_s = 0.0
    cfg.offline_only = False
    cfg.instruction_language = 'de'
    return cfg


@pytest.fixture
def make_client(test_config):
    def _make(script, **overrides):
        options = test_config.get_remote_config()
        options.update(overrides)
        return OSRMClient(session_factory=script, **options)
    return _make


@pytest.fixture
def silent_server():
    """Local TCP server that accepts connections and never answers; yields (port, accepted event)"""
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(('127.0.0.1', 0))
    server.listen(8)
    server.settimeout(0.1)
    accepted = threading.Event()
    stop = threading.Event()
    held = []

    def serve():
        while not stop.is_set():
            try:
                conn, _ = server.accept()
            except socket.timeout:
                continue
            held.append(conn)
            accepted.set()

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    yield server.getsockname()[1], accepted
    stop.set()
    thread.join(timeout=2)
    for conn in held:
        conn.close()
    server.close()
