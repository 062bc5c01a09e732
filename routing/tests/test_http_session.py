import threading
import time

import pytest
import requests

from havenrouting.utils.http_session import AbortableAdapter, AbortableSession, ConnectionTracker


@pytest.fixture(autouse=True)
def no_proxy(monkeypatch):
    for name in ('HTTP_PROXY', 'http_proxy', 'ALL_PROXY', 'all_proxy'):
        monkeypatch.delenv(name, raising=False)


def blocked_get(session, url, outcome):
    started = time.perf_counter()
    try:
        session.get(url, timeout=(5.0, 10.0))
    except requests.exceptions.RequestException as e:
        outcome['error'] = e
    outcome['elapsed'] = time.perf_counter() - started


def test_abort_unblocks_request_waiting_for_headers(silent_server):
    port, accepted = silent_server
    session = AbortableSession()
    outcome = {}
    worker = threading.Thread(target=blocked_get, args=(session, f"http://127.0.0.1:{port}/", outcome))
    worker.start()
    assert accepted.wait(5.0)
    time.sleep(0.2)

    session.abort()
    worker.join(timeout=3.0)
    session.close()

    assert not worker.is_alive()
    assert isinstance(outcome['error'], requests.exceptions.ConnectionError)
    assert outcome['elapsed'] < 3.0


def test_session_refuses_new_requests_after_abort(silent_server):
    port, _ = silent_server
    session = AbortableSession()
    session.abort()
    started = time.perf_counter()
    with pytest.raises(requests.exceptions.ConnectionError):
        session.get(f"http://127.0.0.1:{port}/", timeout=(5.0, 10.0))
    assert time.perf_counter() - started < 3.0
    session.close()


def test_session_mounts_abortable_adapters():
    session = AbortableSession()
    assert isinstance(session.get_adapter('http://example.test/'), AbortableAdapter)
    assert isinstance(session.get_adapter('https://example.test/'), AbortableAdapter)
    session.close()


def test_tracker_counts_checked_out_connections():
    class Conn:
        sock = None

    tracker = ConnectionTracker()
    first, second = Conn(), Conn()
    tracker.checkout(first)
    tracker.checkout(second)
    tracker.release(first)
    assert tracker.abort() == 1
    with pytest.raises(ConnectionAbortedError):
        tracker.checkout(first)
