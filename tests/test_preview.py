"""Tests for the local preview server."""
import subprocess
from unittest.mock import Mock, patch

import pytest
import requests

from portforge.services.preview import (
    PreviewError,
    PreviewServer,
    PreviewTimeoutError,
    install_dependencies,
    run_npm,
)


class FakeClock:
    """Monotonic clock that advances one second per reading."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        self.now += 1.0
        return self.now


def running_process():
    process = Mock()
    process.poll.return_value = None
    return process


class TestWaitUntilReady:
    """Test readiness polling."""

    def test_returns_once_server_answers(self, tmp_path):
        sleeps = []
        server = PreviewServer(tmp_path, sleep=sleeps.append, clock=FakeClock(), poll_interval=0.25)
        server.process = running_process()

        with patch.object(PreviewServer, 'is_responding', side_effect=[False, False, True]):
            server.wait_until_ready()

        assert sleeps == [0.25, 0.25]

    def test_timeout_stops_server(self, tmp_path):
        server = PreviewServer(tmp_path, timeout=3, sleep=lambda _: None, clock=FakeClock())
        process = running_process()
        server.process = process

        with patch.object(PreviewServer, 'is_responding', return_value=False):
            with pytest.raises(PreviewTimeoutError):
                server.wait_until_ready()

        process.terminate.assert_called_once()
        assert server.process is None

    def test_process_exit_is_reported(self, tmp_path):
        server = PreviewServer(tmp_path, sleep=lambda _: None, clock=FakeClock())
        process = Mock(returncode=1)
        process.poll.return_value = 1
        server.process = process

        with pytest.raises(PreviewError) as exc_info:
            server.wait_until_ready()

        assert "exited with code 1" in str(exc_info.value)


class TestIsResponding:
    """Test the HTTP readiness check."""

    @patch('portforge.services.preview.requests.get')
    def test_responding(self, mock_get, tmp_path):
        assert PreviewServer(tmp_path, port=4000).is_responding() is True
        mock_get.assert_called_once_with("http://localhost:4000", timeout=2)

    @patch('portforge.services.preview.requests.get')
    def test_not_responding(self, mock_get, tmp_path):
        mock_get.side_effect = requests.ConnectionError("refused")

        assert PreviewServer(tmp_path).is_responding() is False


class TestStart:
    """Test starting and stopping the server."""

    @patch.object(PreviewServer, 'is_responding', return_value=True)
    @patch('portforge.services.preview.subprocess.Popen')
    def test_dev_server(self, mock_popen, _mock_ready, tmp_path):
        mock_popen.return_value = running_process()

        with PreviewServer(tmp_path, port=4000, dev=True) as server:
            assert server.url == "http://localhost:4000"

        assert mock_popen.call_args[0][0] == ['npm', 'run', 'dev', '--', '--port', '4000']
        mock_popen.return_value.terminate.assert_called_once()

    @patch.object(PreviewServer, 'is_responding', return_value=True)
    @patch('portforge.services.preview.subprocess.Popen')
    @patch('portforge.services.preview.subprocess.run')
    def test_preview_builds_first(self, mock_run, mock_popen, _mock_ready, tmp_path):
        mock_run.return_value = Mock(returncode=0, stdout="", stderr="")
        mock_popen.return_value = running_process()
        server = PreviewServer(tmp_path)

        assert server.start() == "http://localhost:5000"

        assert mock_run.call_args[0][0] == ['npm', 'run', 'build']
        assert mock_popen.call_args[0][0] == ['npx', 'vite', 'preview', '--port', '5000']
        server.stop()

    @patch('portforge.services.preview.subprocess.Popen')
    def test_missing_node(self, mock_popen, tmp_path):
        mock_popen.side_effect = FileNotFoundError("npm")

        with pytest.raises(PreviewError):
            PreviewServer(tmp_path, dev=True).start()


class TestRunNpm:
    """Test run_npm and install_dependencies."""

    @patch('portforge.services.preview.subprocess.run')
    def test_install(self, mock_run, tmp_path):
        mock_run.return_value = Mock(returncode=0, stdout="added 10 packages", stderr="")

        install_dependencies(tmp_path)

        assert mock_run.call_args[0][0] == ['npm', 'install']

    @patch('portforge.services.preview.subprocess.run')
    def test_failure(self, mock_run, tmp_path):
        mock_run.side_effect = subprocess.CalledProcessError(1, ['npm', 'run', 'build'], stderr="boom")

        with pytest.raises(PreviewError) as exc_info:
            run_npm(['npm', 'run', 'build'], cwd=tmp_path)

        assert "exit code 1" in str(exc_info.value)

    @patch('portforge.services.preview.subprocess.run')
    def test_timeout(self, mock_run, tmp_path):
        mock_run.side_effect = subprocess.TimeoutExpired(['npm', 'install'], 5)

        with pytest.raises(PreviewError):
            run_npm(['npm', 'install'], cwd=tmp_path, timeout=5)
