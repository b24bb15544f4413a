#!/usr/bin/env python3
"""
Clipboard Worker
================
Detached process that owns the clipboard for a limited time.

Started by ClipboardDaemon; reads the handoff header and secret from stdin,
takes clipboard ownership, acknowledges with ``ok`` and then watches the
clipboard. Exits when:
- the timeout elapses (the clipboard is cleared if it still holds the secret)
- the clipboard content changes or ownership is lost
"""

import json
import logging
import subprocess
import sys
import time
from typing import Callable, Optional

from keysmith.clipboard import ACK, BACKENDS, ClipboardBackend

logger = logging.getLogger(__name__)

EXPIRED = "timeout"
CHANGED = "changed"


class ClipboardWorker:
    """Holds a secret on the clipboard and releases it on timeout or change."""

    def __init__(self,
                 backend: ClipboardBackend,
                 timeout: float,
                 poll_interval: float = 0.5,
                 runner: Callable = None,
                 popen: Callable = None,
                 clock: Callable[[], float] = None,
                 sleep: Callable[[float], None] = None):
        self.backend = backend
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._run = runner or subprocess.run
        self._popen = popen or subprocess.Popen
        self._clock = clock or time.monotonic
        self._sleep = sleep or time.sleep
        self._holder = None

    def take_ownership(self, secret: bytearray):
        if self.backend.hold:
            self._holder = self._popen(
                list(self.backend.hold),
                stdin=subprocess.PIPE,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
            self._holder.stdin.write(secret)
            self._holder.stdin.close()
        else:
            self._run(list(self.backend.copy), input=bytes(secret), check=True,
                      stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)

    def read_clipboard(self) -> Optional[bytes]:
        if not self.backend.paste:
            return None
        result = self._run(list(self.backend.paste), capture_output=True)
        if result.returncode != 0:
            return b""
        return result.stdout.rstrip(b"\r\n")

    def still_owned(self, secret: bytearray) -> bool:
        if self._holder is not None and self._holder.poll() is not None:
            return False
        current = self.read_clipboard()
        return current is None or current == bytes(secret)

    def release(self, clear: bool):
        if self._holder is not None:
            if self._holder.poll() is None:
                self._holder.terminate()
                self._holder.wait()
            self._holder = None
        if clear:
            if self.backend.clear:
                self._run(list(self.backend.clear), check=False,
                          stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
            elif not self.backend.hold:
                self._run(list(self.backend.copy), input=b"", check=False,
                          stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)

    def hold(self, secret: bytearray) -> str:
        """
        Watch the clipboard until timeout or external change.

        Returns:
            EXPIRED or CHANGED
        """
        deadline = self._clock() + self.timeout
        while self._clock() < deadline:
            self._sleep(self.poll_interval)
            if not self.still_owned(secret):
                logger.debug("Clipboard changed externally; leaving it alone")
                self.release(clear=False)
                return CHANGED

        owned = self.still_owned(secret)
        self.release(clear=owned)
        return EXPIRED


def read_handoff(stream) -> tuple:
    """Parse the header line and secret bytes sent by ClipboardDaemon."""
    header = json.loads(stream.readline().decode('utf-8'))
    secret = bytearray(stream.read(header["length"]))
    if len(secret) != header["length"]:
        raise ValueError("Truncated clipboard handoff")
    return header, secret


def main(stdin=None, stdout=None) -> int:
    stdin = stdin or sys.stdin.buffer
    stdout = stdout or sys.stdout.buffer

    secret = bytearray()
    try:
        try:
            header, secret = read_handoff(stdin)
            backend = BACKENDS[header["backend"]]
            worker = ClipboardWorker(backend, header["timeout"], header.get("poll_interval", 0.5))
            worker.take_ownership(secret)
        except (ValueError, KeyError, OSError, subprocess.CalledProcessError) as e:
            stdout.write(f"error: {e}\n".encode('utf-8'))
            stdout.flush()
            return 1

        stdout.write(ACK + b"\n")
        stdout.flush()
        stdout.close()

        worker.hold(secret)
        return 0
    finally:
        for i in range(len(secret)):
            secret[i] = 0


if __name__ == "__main__":
    sys.exit(main())
