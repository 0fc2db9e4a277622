"""
Readiness detection for the local cluster

A cluster counts as reachable as soon as a TCP connection to the native
transport port of any seed address succeeds.
"""
import time
import errno
import socket
import logging
from typing import Callable, Iterable
from ..models import ReadinessResult

logger = logging.getLogger(__name__)

# Local resources ran out, or a loopback alias is missing (macOS only routes 127.0.0.1 by default)
RESOURCE_EXHAUSTION_ERRNOS = frozenset({errno.EMFILE, errno.ENFILE, errno.ENOBUFS, errno.EADDRNOTAVAIL})


class ReadinessProber:
    """Checks whether a client can connect to the cluster, with bounded retries"""

    def __init__(self, connect_timeout: float = 2.0, sleep: Callable[[float], None] = time.sleep):
        self.connect_timeout = connect_timeout
        self.sleep = sleep
        self._exhaustion_reported = False

    def probe_once(self, addresses: Iterable[str], port: int) -> bool:
        """Return True if a connection to any address succeeds"""
        addresses = list(addresses)
        logger.debug(f"Trying to connect using addresses {addresses} and port {port}")

        for address in addresses:
            try:
                conn = socket.create_connection((address, port), timeout=self.connect_timeout)
            except OSError as e:
                if e.errno in RESOURCE_EXHAUSTION_ERRNOS:
                    self._report_exhaustion(address, port, e)
                else:
                    logger.debug(f"Cannot connect to {address}:{port}: {e}")
                continue

            conn.close()
            logger.debug(f"Connected to {address}:{port}")
            return True

        return False

    def _report_exhaustion(self, address: str, port: int, error: OSError) -> None:
        if self._exhaustion_reported:
            logger.debug(f"Cannot connect to {address}:{port}: {error}")
            return

        self._exhaustion_reported = True
        logger.error(
            f"Cannot connect to {address}:{port} because of a local resource problem ({error}). "
            f"If you are on OS X, try running 'sudo ifconfig lo0 alias 127.0.0.[0-15]'; "
            f"otherwise check the open file limit (ulimit -n)."
        )

    def wait_until_ready(self, addresses: Iterable[str], port: int, liveness_check: Callable[[], bool],
                         max_attempts: int, interval: float) -> ReadinessResult:
        """
        Poll until the cluster answers, a node dies, or attempts run out.

        Each attempt sleeps for `interval`, then checks liveness, then probes.
        A failed liveness check ends the wait at once with DEAD since a dead node
        will never become reachable. The first successful probe returns READY.
        Running out of attempts while everything stayed alive returns TIMED_OUT.
        """
        addresses = list(addresses)

        for attempt in range(max_attempts):
            self.sleep(interval)

            if not liveness_check():
                logger.error(f"Node process died while waiting for the cluster (attempt {attempt + 1}/{max_attempts})")
                return ReadinessResult.DEAD

            if self.probe_once(addresses, port):
                logger.info(f"Cluster reachable after {attempt + 1} attempt(s)")
                return ReadinessResult.READY

            logger.info(f"Cluster not reachable yet (attempt {attempt + 1}/{max_attempts})")

        return ReadinessResult.TIMED_OUT
