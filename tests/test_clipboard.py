"""
Tests for Clipboard Persistence
===============================
Tests backend detection, the parent/worker handoff and the worker's hold
loop in keysmith/clipboard.py and keysmith/clipboard_worker.py. No real
clipboard or subprocess is touched.
"""

import io
import json

import pytest
import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch, MagicMock

# Ensure repo root is on path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from keysmith.clipboard import BACKENDS, ClipboardDaemon, detect_backend
from keysmith.clipboard_worker import CHANGED, EXPIRED, ClipboardWorker, main, read_handoff
from keysmith.errors import ClipboardEmptyError, ClipboardError, ClipboardUnavailableError
from keysmith.models import GeneratedSecret, Mode


class KeepOpenBytesIO(io.BytesIO):
    """BytesIO whose content survives close()."""

    def close(self):
        self.was_closed = True


def make_worker_process(reply=b"ok\n"):
    proc = MagicMock()
    proc.pid = 4242
    proc.stdin = KeepOpenBytesIO()
    proc.stdout = io.BytesIO(reply)
    return proc


def make_secret(value="s3cret-value"):
    return GeneratedSecret(value, 60.0, Mode.CHARACTER)


class TestDetectBackend:
    """Tests for clipboard backend detection."""

    def test_wayland_preferred(self):
        backend = detect_backend("linux", {"WAYLAND_DISPLAY": "wayland-0", "DISPLAY": ":0"},
                                 which=lambda exe: f"/usr/bin/{exe}")
        assert backend.name == "wayland"

    def test_xclip_on_x11(self):
        backend = detect_backend("linux", {"DISPLAY": ":0"},
                                 which=lambda exe: "/usr/bin/xclip" if exe == "xclip" else None)
        assert backend.name == "xclip"

    def test_xsel_fallback(self):
        backend = detect_backend("linux", {"DISPLAY": ":0"},
                                 which=lambda exe: "/usr/bin/xsel" if exe == "xsel" else None)
        assert backend.name == "xsel"

    def test_no_display(self):
        with pytest.raises(ClipboardUnavailableError):
            detect_backend("linux", {}, which=lambda exe: f"/usr/bin/{exe}")

    def test_no_tools(self):
        with pytest.raises(ClipboardUnavailableError):
            detect_backend("linux", {"DISPLAY": ":0"}, which=lambda exe: None)

    def test_macos(self):
        backend = detect_backend("darwin", {}, which=lambda exe: f"/usr/bin/{exe}")
        assert backend.name == "macos"
        assert backend.hold is None

    def test_windows(self):
        backend = detect_backend("win32", {}, which=lambda exe: f"C:\\Windows\\{exe}")
        assert backend.name == "windows"


class TestDaemonPersist:
    """Tests for ClipboardDaemon.persist."""

    def test_empty_request_makes_no_os_call(self):
        popen = MagicMock()
        daemon = ClipboardDaemon(popen=popen)
        with patch("keysmith.clipboard.detect_backend") as detect:
            with pytest.raises(ClipboardEmptyError):
                daemon.persist(make_secret(""))
        detect.assert_not_called()
        popen.assert_not_called()

    def test_unavailable_backend(self):
        popen = MagicMock()
        daemon = ClipboardDaemon(popen=popen)
        with patch("keysmith.clipboard.detect_backend", side_effect=ClipboardUnavailableError("none")):
            with pytest.raises(ClipboardUnavailableError):
                daemon.persist(make_secret())
        popen.assert_not_called()

    def test_handoff_protocol(self):
        proc = make_worker_process()
        popen = MagicMock(return_value=proc)
        daemon = ClipboardDaemon(timeout=30, poll_interval=0.25, backend=BACKENDS["xclip"], popen=popen)
        secret = make_secret("s3cret-value")

        daemon.persist(secret)

        args, kwargs = popen.call_args
        assert args[0] == [sys.executable, "-m", "keysmith.clipboard_worker"]
        if sys.platform != "win32":
            assert kwargs["start_new_session"] is True

        header_line, payload = proc.stdin.getvalue().split(b"\n", 1)
        header = json.loads(header_line)
        assert header == {"backend": "xclip", "timeout": 30, "poll_interval": 0.25, "length": 12}
        assert payload == b"s3cret-value"
        assert proc.stdin.was_closed
        # parent copy is zeroed after the acknowledgement
        assert secret.wiped

    def test_worker_error_keeps_secret(self):
        proc = make_worker_process(reply=b"error: xclip failed\n")
        daemon = ClipboardDaemon(backend=BACKENDS["xclip"], popen=MagicMock(return_value=proc))
        secret = make_secret()
        with pytest.raises(ClipboardError) as exc:
            daemon.persist(secret)
        assert "xclip failed" in str(exc.value)
        proc.kill.assert_called_once()
        assert not secret.wiped

    def test_worker_start_failure(self):
        daemon = ClipboardDaemon(backend=BACKENDS["xclip"], popen=MagicMock(side_effect=OSError("no python")))
        with pytest.raises(ClipboardError):
            daemon.persist(make_secret())


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.now += seconds


def make_runner(clipboard: bytes):
    calls = []

    def run(cmd, **kwargs):
        calls.append((cmd, kwargs))
        return SimpleNamespace(returncode=0, stdout=clipboard)

    run.calls = calls
    return run


class TestWorker:
    """Tests for the clipboard worker hold loop."""

    def test_timeout_clears_when_still_owned(self):
        secret = bytearray(b"s3cret")
        clock = FakeClock()
        holder = MagicMock()
        holder.poll.return_value = None
        runner = make_runner(b"s3cret\n")
        worker = ClipboardWorker(BACKENDS["xsel"], timeout=2, poll_interval=0.5, runner=runner,
                                 popen=MagicMock(return_value=holder), clock=clock, sleep=clock.sleep)

        worker.take_ownership(secret)
        assert worker.hold(secret) == EXPIRED

        holder.terminate.assert_called_once()
        assert runner.calls[-1][0] == list(BACKENDS["xsel"].clear)

    def test_external_change_leaves_clipboard(self):
        secret = bytearray(b"s3cret")
        clock = FakeClock()
        holder = MagicMock()
        holder.poll.return_value = None
        runner = make_runner(b"something else")
        worker = ClipboardWorker(BACKENDS["xsel"], timeout=10, poll_interval=0.5, runner=runner,
                                 popen=MagicMock(return_value=holder), clock=clock, sleep=clock.sleep)

        worker.take_ownership(secret)
        assert worker.hold(secret) == CHANGED
        assert clock.now == 0.5
        assert all(cmd != list(BACKENDS["xsel"].clear) for cmd, _ in runner.calls)

    def test_holder_exit_means_ownership_lost(self):
        secret = bytearray(b"s3cret")
        clock = FakeClock()
        holder = MagicMock()
        holder.poll.return_value = 0
        worker = ClipboardWorker(BACKENDS["xclip"], timeout=10, poll_interval=1, runner=make_runner(b"s3cret"),
                                 popen=MagicMock(return_value=holder), clock=clock, sleep=clock.sleep)
        worker.take_ownership(secret)
        assert worker.hold(secret) == CHANGED
        holder.terminate.assert_not_called()

    def test_backend_without_holder(self):
        """macOS keeps content after pbcopy exits; clearing copies an empty value."""
        secret = bytearray(b"s3cret")
        clock = FakeClock()
        runner = make_runner(b"s3cret")
        worker = ClipboardWorker(BACKENDS["macos"], timeout=1, poll_interval=0.5, runner=runner,
                                 clock=clock, sleep=clock.sleep)
        worker.take_ownership(secret)
        assert runner.calls[0][0] == ["pbcopy"]
        assert runner.calls[0][1]["input"] == b"s3cret"

        assert worker.hold(secret) == EXPIRED
        cmd, kwargs = runner.calls[-1]
        assert cmd == ["pbcopy"]
        assert kwargs["input"] == b""


class TestWorkerMain:
    """Tests for the worker entry point."""

    def test_read_handoff(self):
        stream = io.BytesIO(b'{"backend": "macos", "timeout": 1, "length": 3}\nabc')
        header, secret = read_handoff(stream)
        assert header["backend"] == "macos"
        assert secret == bytearray(b"abc")

    def test_truncated_handoff(self):
        stream = io.BytesIO(b'{"backend": "macos", "timeout": 1, "length": 9}\nabc')
        with pytest.raises(ValueError):
            read_handoff(stream)

    def test_main_acknowledges(self):
        stdin = io.BytesIO(b'{"backend": "macos", "timeout": 0, "poll_interval": 0.1, "length": 6}\ns3cret')
        stdout = KeepOpenBytesIO()
        completed = SimpleNamespace(returncode=0, stdout=b"s3cret")
        with patch("subprocess.run", return_value=completed) as run:
            assert main(stdin=stdin, stdout=stdout) == 0
        assert stdout.getvalue() == b"ok\n"
        assert run.called

    def test_main_unknown_backend(self):
        stdin = io.BytesIO(b'{"backend": "amiga", "timeout": 0, "length": 1}\nx')
        stdout = KeepOpenBytesIO()
        assert main(stdin=stdin, stdout=stdout) == 1
        assert stdout.getvalue().startswith(b"error:")
