"""
requests session whose in-flight requests can be torn down from another thread.

A blocked ``Session.get`` waits for the response headers until the read
timeout fires, and ``Session.close`` only drops idle pooled connections.
``AbortableSession.abort`` shuts down the sockets of every connection the
session currently has checked out, so the blocked call fails at once with
``requests.exceptions.ConnectionError``.
"""

import functools
import logging
import socket
import threading

import requests
from requests.adapters import HTTPAdapter
from urllib3.connection import HTTPConnection, HTTPSConnection
from urllib3.connectionpool import HTTPConnectionPool, HTTPSConnectionPool

logger = logging.getLogger(__name__)


def _shutdown(sock):
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as e:
        logger.debug(f"Socket already gone while aborting: {e}")


class ConnectionTracker:
    """Connections currently checked out of the pools of one adapter"""

    def __init__(self):
        self._lock = threading.Lock()
        self._active = set()
        self.aborted = False

    def checkout(self, conn):
        with self._lock:
            if self.aborted:
                raise ConnectionAbortedError("Request aborted")
            self._active.add(conn)

    def release(self, conn):
        with self._lock:
            self._active.discard(conn)

    def abort(self):
        with self._lock:
            self.aborted = True
            active = list(self._active)
        for conn in active:
            sock = getattr(conn, 'sock', None)
            if sock is not None:
                _shutdown(sock)
        return len(active)


class _AbortableConnectionMixin:
    tracker = None

    def connect(self):
        super().connect()
        # abort() may have run while the socket was still being opened
        if self.tracker is not None and self.tracker.aborted and self.sock is not None:
            _shutdown(self.sock)


class _AbortableHTTPConnection(_AbortableConnectionMixin, HTTPConnection):
    pass


class _AbortableHTTPSConnection(_AbortableConnectionMixin, HTTPSConnection):
    pass


class _TrackingPoolMixin:
    def __init__(self, *args, tracker=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.tracker = tracker

    def _get_conn(self, timeout=None):
        conn = super()._get_conn(timeout=timeout)
        try:
            self.tracker.checkout(conn)
        except ConnectionAbortedError:
            super()._put_conn(conn)
            raise
        conn.tracker = self.tracker
        return conn

    def _put_conn(self, conn):
        if conn is not None:
            self.tracker.release(conn)
        super()._put_conn(conn)


class _TrackingHTTPConnectionPool(_TrackingPoolMixin, HTTPConnectionPool):
    ConnectionCls = _AbortableHTTPConnection


class _TrackingHTTPSConnectionPool(_TrackingPoolMixin, HTTPSConnectionPool):
    ConnectionCls = _AbortableHTTPSConnection


class AbortableAdapter(HTTPAdapter):
    def __init__(self, *args, **kwargs):
        self.tracker = ConnectionTracker()
        super().__init__(*args, **kwargs)

    def init_poolmanager(self, *args, **kwargs):
        super().init_poolmanager(*args, **kwargs)
        self.poolmanager.pool_classes_by_scheme = {
            'http': functools.partial(_TrackingHTTPConnectionPool, tracker=self.tracker),
            'https': functools.partial(_TrackingHTTPSConnectionPool, tracker=self.tracker),
        }

    def abort(self) -> int:
        return self.tracker.abort()


class AbortableSession(requests.Session):
    def __init__(self):
        super().__init__()
        self.mount('https://', AbortableAdapter())
        self.mount('http://', AbortableAdapter())

    def abort(self):
        """Tear down every request this session has in flight"""
        aborted = sum(adapter.abort() for adapter in self.adapters.values()
                      if isinstance(adapter, AbortableAdapter))
        if aborted:
            logger.debug(f"Aborted {aborted} in-flight connection(s)")
