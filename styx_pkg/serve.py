"""Local preview server and watch-and-rebuild loop."""

import os
import logging
import threading
from functools import partial
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer

from .walker import walk

logger = logging.getLogger('Styx.Serve')


def parse_address(address):
    """Split 'host:port' into (host, port). An empty host listens on all interfaces."""
    host, sep, port = address.rpartition(':')
    if not sep or not port.isdigit():
        raise ValueError(f"http address must be host:port, got {address!r}")
    return host, int(port)


def snapshot(src_dir):
    """Fingerprint of the source tree used to detect changes."""
    state = []
    for entry in walk(src_dir):
        if entry.error is not None or entry.is_dir:
            continue
        try:
            size = os.path.getsize(entry.path)
        except OSError:
            size = -1
        state.append((entry.rel, entry.mtime, size))
    return tuple(state)


class Watcher(threading.Thread):
    """Polls the source tree and calls ``rebuild`` whenever it changes."""

    def __init__(self, src_dir, rebuild, interval=1.0):
        super().__init__(name='styx-watch', daemon=True)
        self.src_dir = src_dir
        self.rebuild = rebuild
        self.interval = interval
        self._stop_event = threading.Event()
        self._last = snapshot(src_dir)

    def check(self):
        """Rebuild once if the tree changed since the last check. Returns whether it did."""
        current = snapshot(self.src_dir)
        if current == self._last:
            return False
        self._last = current
        logger.info("Change detected, rebuilding...")
        result = self.rebuild()
        if not result:
            logger.error(f"Rebuild failed: {result.error}")
        return True

    def run(self):
        while not self._stop_event.wait(self.interval):
            self.check()

    def stop(self):
        self._stop_event.set()


def make_server(build_dir, address):
    host, port = parse_address(address)
    handler = partial(SimpleHTTPRequestHandler, directory=build_dir)
    return ThreadingHTTPServer((host, port), handler)


def serve(build_dir, address, src_dir=None, rebuild=None, watch=False, interval=1.0):
    """
    Serve ``build_dir`` over HTTP until interrupted.

    With ``watch``, ``rebuild`` (a callable returning a BuildResult) runs in a
    background thread each time ``src_dir`` changes.
    """
    watcher = None
    if watch:
        watcher = Watcher(src_dir, rebuild, interval)
        watcher.start()

    httpd = make_server(build_dir, address)
    logger.info(f"Serving HTTP on {address} ...")
    try:
        httpd.serve_forever()
    except KeyboardInterrupt:
        logger.debug("Interrupted, shutting down")
    finally:
        httpd.server_close()
        if watcher is not None:
            watcher.stop()
