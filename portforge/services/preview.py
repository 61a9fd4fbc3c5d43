"""Local preview server for a generated portfolio."""
import subprocess
import time
from pathlib import Path
from typing import Callable, List, Optional

import requests

from portforge.core.logger import get_logger

logger = get_logger(__name__)


class PreviewError(Exception):
    """Raised when the preview server cannot be built or started."""
    pass


class PreviewTimeoutError(PreviewError):
    """Raised when the server does not answer within the timeout."""
    pass


def run_npm(args: List[str], cwd: Path, timeout: Optional[int] = None) -> str:
    """Run an npm/npx command to completion and return its stdout.

    Raises:
        PreviewError: The command is missing or exits non-zero
    """
    logger.info(f"Running {' '.join(args)} in {cwd}")
    try:
        result = subprocess.run(
            args,
            cwd=str(cwd),
            capture_output=True,
            text=True,
            timeout=timeout,
            check=True,
        )
    except FileNotFoundError as e:
        raise PreviewError(f"{args[0]} not found. Please install Node.js first.") from e
    except subprocess.CalledProcessError as e:
        if e.stderr:
            logger.error(f"Error output: {e.stderr}")
        raise PreviewError(f"{' '.join(args)} failed with exit code {e.returncode}") from e
    except subprocess.TimeoutExpired as e:
        raise PreviewError(f"{' '.join(args)} timed out after {timeout}s") from e

    return result.stdout


def install_dependencies(project_dir: Path, timeout: Optional[int] = 600) -> None:
    """Install the project's npm dependencies."""
    run_npm(['npm', 'install'], cwd=project_dir, timeout=timeout)


class PreviewServer:
    """Runs the Vite dev server or a production preview and waits until it answers."""

    def __init__(
        self,
        project_dir: Path,
        port: int = 5000,
        dev: bool = False,
        timeout: float = 60.0,
        poll_interval: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.project_dir = Path(project_dir)
        self.port = port
        self.dev = dev
        self.timeout = timeout
        self.poll_interval = poll_interval
        self._sleep = sleep
        self._clock = clock
        self.process: Optional[subprocess.Popen] = None

    @property
    def url(self) -> str:
        return f"http://localhost:{self.port}"

    def command(self) -> List[str]:
        if self.dev:
            return ['npm', 'run', 'dev', '--', '--port', str(self.port)]
        return ['npx', 'vite', 'preview', '--port', str(self.port)]

    def build(self) -> None:
        logger.info("Building the project for production...")
        run_npm(['npm', 'run', 'build'], cwd=self.project_dir)

    def start(self) -> str:
        """Start the server and block until it responds.

        Returns:
            Local URL of the running server

        Raises:
            PreviewError: Build failed or the server process exited
            PreviewTimeoutError: No response within the timeout
        """
        if not self.dev:
            self.build()

        mode = "development server" if self.dev else "production preview"
        logger.info(f"Starting the {mode}...")
        try:
            self.process = subprocess.Popen(
                self.command(),
                cwd=str(self.project_dir),
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except FileNotFoundError as e:
            raise PreviewError(f"{self.command()[0]} not found. Please install Node.js first.") from e

        self.wait_until_ready()
        logger.info(f"{mode.capitalize()} is running at: {self.url}")
        return self.url

    def is_responding(self) -> bool:
        try:
            requests.get(self.url, timeout=2)
        except requests.RequestException:
            return False
        return True

    def wait_until_ready(self) -> None:
        """Poll the server URL until it answers, the process dies, or time runs out."""
        deadline = self._clock() + self.timeout
        while True:
            if self.process is not None and self.process.poll() is not None:
                code = self.process.returncode
                self.process = None
                raise PreviewError(f"Preview server exited with code {code} before it was ready")

            if self.is_responding():
                return

            if self._clock() >= deadline:
                self.stop()
                raise PreviewTimeoutError(
                    f"Preview server did not respond at {self.url} within {self.timeout:.0f}s"
                )
            self._sleep(self.poll_interval)

    def stop(self) -> None:
        """Terminate the server process if running."""
        if self.process is None:
            return

        if self.process.poll() is None:
            self.process.terminate()
            try:
                self.process.wait(timeout=10)
            except subprocess.TimeoutExpired:
                self.process.kill()
                self.process.wait()
        self.process = None
        logger.info("Preview server stopped")

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
        return False
