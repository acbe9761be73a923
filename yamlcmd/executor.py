"""yamlcmd executor - HTTP request and shell execution."""

import json
import subprocess
import time
from typing import Any

import requests


class RequestResult:
    """Result of an HTTP request."""

    def __init__(self):
        self.status_code: int = 0
        self.headers: dict[str, str] = {}
        self.body: Any = None  # parsed JSON or raw text
        self.elapsed_ms: float = 0
        self.error: str | None = None
        self.raw_text: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None and 200 <= self.status_code < 300


class ShellResult:
    """Result of a local shell command."""

    def __init__(self):
        self.returncode: int = 0
        self.stdout: str = ""
        self.stderr: str = ""
        self.error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.returncode == 0


def execute_request(
    method: str,
    url: str,
    headers: dict[str, str] | None = None,
    payload: Any = None,
    timeout: int = 30,
) -> RequestResult:
    """Execute an HTTP request and return structured result.

    - Sends payload (if any) as a JSON body
    - Attempts to parse response as JSON, falls back to raw text
    - Captures timing
    - Never raises - always returns RequestResult with error field set
    """
    result = RequestResult()

    try:
        kwargs: dict[str, Any] = {
            "method": method.upper(),
            "url": url,
            "headers": headers,
            "timeout": timeout,
            "allow_redirects": True,
        }
        if payload is not None:
            kwargs["json"] = payload

        start = time.monotonic()
        resp = requests.request(**kwargs)
        result.elapsed_ms = (time.monotonic() - start) * 1000

        result.status_code = resp.status_code
        result.headers = dict(resp.headers)
        result.raw_text = resp.text

        try:
            result.body = resp.json()
        except (json.JSONDecodeError, ValueError):
            result.body = resp.text

    except requests.exceptions.Timeout:
        result.error = f"Request timed out after {timeout}s"
    except requests.exceptions.ConnectionError as e:
        result.error = f"Connection error: {e}"
    except requests.exceptions.RequestException as e:
        result.error = f"Request failed: {e}"

    return result


def run_shell(command: str) -> ShellResult:
    """Run command through the system shell and capture its output.

    Never raises - a command that cannot be started sets the error field.
    """
    result = ShellResult()
    try:
        proc = subprocess.run(
            command,
            shell=True,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        result.error = f"Could not run command: {e}"
        return result

    result.returncode = proc.returncode
    result.stdout = proc.stdout
    result.stderr = proc.stderr
    return result
