"""Shared fixtures and utilities for integration tests."""

import socket
import subprocess
import sys
import time
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[2]


def kill_process_on_port(port: int) -> None:
    """Kill any process listening on the specified port.

    This prevents zombie processes from previous test runs from blocking new tests.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.settimeout(1)
    result = sock.connect_ex(('127.0.0.1', port))
    sock.close()

    if result != 0:
        return  # Port not in use

    try:
        output = subprocess.check_output(
            ['lsof', '-ti', f':{port}'],
            stderr=subprocess.DEVNULL
        ).decode()
        for pid in output.strip().split('\n'):
            if pid:
                subprocess.run(['kill', '-9', pid], check=False, capture_output=True)
    except (subprocess.CalledProcessError, FileNotFoundError):
        pass

    # Wait for port to be released
    time.sleep(0.5)


def wait_for_server(port: int, timeout: float = 5.0) -> bool:
    """Wait for server to start accepting connections.

    Returns True if server is ready, False if timeout.
    """
    start_time = time.time()
    while time.time() - start_time < timeout:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(0.5)
        result = sock.connect_ex(('127.0.0.1', port))
        sock.close()
        if result == 0:
            return True
        time.sleep(0.1)
    return False


def create_server_fixture(port: int, *extra_args: str):
    """Factory function to create a server fixture for a given port."""
    @pytest.fixture
    def server_fixture():
        kill_process_on_port(port)

        # Capture stderr to diagnose startup failures
        proc = subprocess.Popen(
            [sys.executable, "-m", "server.main", "--host", "127.0.0.1", "--port", str(port), *extra_args],
            cwd=PROJECT_ROOT,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE
        )

        if not wait_for_server(port, timeout=15.0):
            poll_result = proc.poll()
            if poll_result is not None:
                _, stderr = proc.communicate(timeout=2)
                stderr_text = stderr.decode().strip() if stderr else "No stderr"
                error_msg = f"Server process exited with code {poll_result}. stderr: {stderr_text}"
            else:
                error_msg = "Server did not start accepting connections in time"
                proc.kill()
                proc.wait()
            pytest.fail(f"Server failed to start on port {port}: {error_msg}")

        yield f"ws://127.0.0.1:{port}"

        proc.terminate()
        try:
            proc.wait(timeout=5)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()

    return server_fixture


server_url = create_server_fixture(18765)
extended_server_url = create_server_fixture(18766, "--extended-commands")
