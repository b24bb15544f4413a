#!/usr/bin/env python3
"""
Clipboard Persistence
=====================
Copies a secret to the OS clipboard so it survives process exit.

On X11 and Wayland the clipboard content lives in the process that owns the
selection, so it disappears when that process exits. ClipboardDaemon hands
the secret to a detached worker (``python -m keysmith.clipboard_worker``)
which holds the clipboard until a timeout elapses or something else takes
ownership.

Handoff protocol (worker stdin):
    {"backend": "xclip", "timeout": 45, "poll_interval": 0.5, "length": 20}\\n
    <length secret bytes>

The worker answers ``ok`` on stdout once it owns the clipboard; the parent
then zeroes its copy.

Usage:
    daemon = ClipboardDaemon()
    daemon.persist(secret)   # secret is wiped after a successful handoff
"""

import json
import logging
import os
import shutil
import subprocess
import sys
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from keysmith.errors import ClipboardEmptyError, ClipboardError, ClipboardUnavailableError
from keysmith.models import GeneratedSecret
from keysmith.settings import get_setting, require_setting

logger = logging.getLogger(__name__)

WORKER_MODULE = "keysmith.clipboard_worker"
ACK = b"ok"


# =============================================================================
# Backends
# =============================================================================

@dataclass(frozen=True)
class ClipboardBackend:
    """
    Command lines for one clipboard tool family.

    ``hold`` is a foreground command that owns the clipboard while it runs and
    reads the content from stdin. Backends without it (macOS, Windows) keep
    the content after ``copy`` exits.
    """
    name: str
    copy: Tuple[str, ...]
    paste: Optional[Tuple[str, ...]] = None
    hold: Optional[Tuple[str, ...]] = None
    clear: Optional[Tuple[str, ...]] = None
    env_var: Optional[str] = None

    @property
    def executables(self) -> Tuple[str, ...]:
        commands = [self.copy, self.paste, self.hold, self.clear]
        return tuple(dict.fromkeys(c[0] for c in commands if c))


BACKENDS = {
    "wayland": ClipboardBackend(
        name="wayland",
        copy=("wl-copy",),
        paste=("wl-paste", "--no-newline"),
        hold=("wl-copy", "--foreground"),
        clear=("wl-copy", "--clear"),
        env_var="WAYLAND_DISPLAY",
    ),
    "xclip": ClipboardBackend(
        name="xclip",
        copy=("xclip", "-selection", "clipboard"),
        paste=("xclip", "-selection", "clipboard", "-o"),
        hold=("xclip", "-selection", "clipboard", "-quiet"),
        env_var="DISPLAY",
    ),
    "xsel": ClipboardBackend(
        name="xsel",
        copy=("xsel", "--clipboard", "--input"),
        paste=("xsel", "--clipboard", "--output"),
        hold=("xsel", "--clipboard", "--input", "--nodetach"),
        clear=("xsel", "--clipboard", "--delete"),
        env_var="DISPLAY",
    ),
    "macos": ClipboardBackend(
        name="macos",
        copy=("pbcopy",),
        paste=("pbpaste",),
    ),
    "windows": ClipboardBackend(
        name="windows",
        copy=("clip.exe",),
        paste=("powershell", "-NoProfile", "-Command", "Get-Clipboard"),
        clear=("powershell", "-NoProfile", "-Command", "Set-Clipboard -Value $null"),
    ),
}

# Detection order per platform family
PLATFORM_BACKENDS = {
    "darwin": ("macos",),
    "win32": ("windows",),
    "cygwin": ("windows",),
}
UNIX_BACKENDS = ("wayland", "xclip", "xsel")


def detect_backend(platform: str = None,
                   env: dict = None,
                   which: Callable[[str], Optional[str]] = shutil.which) -> ClipboardBackend:
    """
    Pick the first usable clipboard backend.

    A backend is usable when all its tools are on PATH and, for X11/Wayland,
    the display variable is set.

    Raises:
        ClipboardUnavailableError: No backend found
    """
    platform = platform or sys.platform
    env = os.environ if env is None else env

    for name in PLATFORM_BACKENDS.get(platform, UNIX_BACKENDS):
        backend = BACKENDS[name]
        if backend.env_var and not env.get(backend.env_var):
            continue
        missing = [exe for exe in backend.executables if not which(exe)]
        if missing:
            logger.debug(f"Clipboard backend {name} unavailable, missing: {', '.join(missing)}")
            continue
        return backend

    raise ClipboardUnavailableError(
        "No clipboard backend found (install wl-clipboard, xclip or xsel)"
    )


# =============================================================================
# Daemon
# =============================================================================

class ClipboardDaemon:
    """
    Hands secrets to a detached clipboard worker.

    Args:
        timeout: Seconds the worker keeps the secret (default from app.yaml)
        poll_interval: Seconds between ownership checks
        handoff_timeout: Seconds to wait for the worker's acknowledgement
        backend: Fixed backend (default: detected on first use)
        popen: Process factory, replaceable in tests
    """

    def __init__(self,
                 timeout: Optional[float] = None,
                 poll_interval: Optional[float] = None,
                 handoff_timeout: Optional[float] = None,
                 backend: Optional[ClipboardBackend] = None,
                 popen: Callable = None):
        cfg = get_setting("clipboard", {}) or {}
        self.timeout = timeout if timeout is not None else require_setting("clipboard.timeout_seconds")
        self.poll_interval = poll_interval if poll_interval is not None else cfg.get("poll_interval_seconds", 0.5)
        self.handoff_timeout = (handoff_timeout if handoff_timeout is not None
                                else cfg.get("handoff_timeout_seconds", 5))
        self._backend = backend
        self._popen = popen or subprocess.Popen

    @property
    def backend(self) -> ClipboardBackend:
        if self._backend is None:
            self._backend = detect_backend()
        return self._backend

    def _spawn_kwargs(self) -> dict:
        kwargs = {
            'stdin': subprocess.PIPE,
            'stdout': subprocess.PIPE,
            'stderr': subprocess.DEVNULL,
            'close_fds': True,
        }
        if sys.platform == "win32":
            kwargs['creationflags'] = (subprocess.DETACHED_PROCESS
                                       | subprocess.CREATE_NEW_PROCESS_GROUP)
        else:
            kwargs['start_new_session'] = True
        return kwargs

    def persist(self, secret: GeneratedSecret):
        """
        Copy ``secret`` to the clipboard and wipe it after the handoff.

        Raises:
            ClipboardEmptyError: secret is empty (no OS call is made)
            ClipboardUnavailableError: no clipboard backend
            ClipboardError: worker failed to acknowledge
        """
        if secret is None or len(secret) == 0:
            raise ClipboardEmptyError()

        backend = self.backend
        payload = secret.handoff()
        try:
            self._handoff(backend, payload)
        finally:
            for i in range(len(payload)):
                payload[i] = 0
        secret.wipe()
        logger.info(f"Secret copied to clipboard via {backend.name} (cleared after {self.timeout}s)")

    def _handoff(self, backend: ClipboardBackend, payload: bytearray):
        header = {
            "backend": backend.name,
            "timeout": self.timeout,
            "poll_interval": self.poll_interval,
            "length": len(payload),
        }
        try:
            proc = self._popen([sys.executable, "-m", WORKER_MODULE], **self._spawn_kwargs())
        except OSError as e:
            raise ClipboardError(f"Could not start clipboard worker: {e}") from e

        try:
            proc.stdin.write(json.dumps(header).encode('utf-8') + b"\n")
            proc.stdin.write(payload)
            proc.stdin.close()
        except OSError as e:
            proc.kill()
            raise ClipboardError(f"Clipboard handoff failed: {e}") from e

        with ThreadPoolExecutor(max_workers=1) as executor:
            future = executor.submit(proc.stdout.readline)
            try:
                reply = future.result(timeout=self.handoff_timeout)
            except FutureTimeoutError:
                proc.kill()
                raise ClipboardError(
                    f"Clipboard worker did not acknowledge within {self.handoff_timeout}s"
                ) from None
        proc.stdout.close()

        if reply.strip() != ACK:
            proc.kill()
            detail = reply.strip().decode('utf-8', errors='replace') or "no response"
            raise ClipboardError(f"Clipboard worker failed: {detail}")
        logger.debug(f"Clipboard worker {proc.pid} acknowledged handoff")


__all__ = [
    'BACKENDS',
    'ClipboardBackend',
    'ClipboardDaemon',
    'detect_backend',
]
