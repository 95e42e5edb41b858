"""Subprocess execution service for arobootstrap."""

import subprocess
import time
from typing import Iterable, List, Optional

from arobootstrap.errors import CommandError

REDACTED = "***"
SECRET_FLAGS = {"--password", "--client-secret", "--secret", "-p"}


def redact(cmd: List[str]) -> List[str]:
    """Returns *cmd* with the values of secret-bearing flags masked."""
    shown = []
    hide_next = False
    for arg in cmd:
        if hide_next:
            shown.append(REDACTED)
            hide_next = False
            continue
        flag, sep, _ = arg.partition("=")
        if flag in SECRET_FLAGS and sep:
            shown.append(f"{flag}={REDACTED}")
            continue
        hide_next = arg in SECRET_FLAGS
        shown.append(arg)
    return shown


def command_label(cmd: List[str]) -> str:
    """Short name such as ``az ad sp create-for-rbac`` for messages."""
    words = []
    for arg in cmd:
        if arg.startswith("-"):
            break
        words.append(arg)
    return " ".join(words[:4]) or cmd[0]


class CommandRunner:
    """Runs az and other tools, keeping secrets out of logs and errors."""

    def __init__(self, logger, default_timeout: Optional[float] = None):
        self.logger = logger
        self.default_timeout = default_timeout

    def run(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = True,
        timeout: Optional[float] = None,
        retry_count: int = 0,
        retry_backoff_seconds: float = 0.0,
        retry_on_returncodes: Optional[Iterable[int]] = None,
        sensitive_output: bool = False,
    ) -> subprocess.CompletedProcess:
        label = command_label(cmd)
        self.logger.debug("Executing: %s", " ".join(redact(cmd)))

        timeout = timeout if timeout is not None else self.default_timeout
        attempts = max(1, retry_count + 1)
        retry_codes = set(retry_on_returncodes or [])

        attempt = 0
        while True:
            attempt += 1
            result = self._execute(cmd, label, capture_output, timeout, final=attempt >= attempts)
            if result is None:
                self._wait_before_retry(label, attempt, attempts, retry_backoff_seconds, "timed out")
                continue

            if capture_output and result.stdout:
                if sensitive_output:
                    self.logger.debug(
                        "%s returned %s characters of sensitive output", label, len(result.stdout)
                    )
                else:
                    self.logger.debug("Command output: %s", result.stdout.strip())

            if result.returncode == 0:
                return result

            message = self._failure_message(label, result, capture_output, sensitive_output)
            retryable = not retry_codes or result.returncode in retry_codes
            if attempt < attempts and retryable:
                self._wait_before_retry(
                    label, attempt, attempts, retry_backoff_seconds, f"failed with exit code {result.returncode}"
                )
                continue

            if check:
                raise CommandError(message)
            self.logger.debug(message)
            return result

    def _execute(
        self,
        cmd: List[str],
        label: str,
        capture_output: bool,
        timeout: Optional[float],
        final: bool,
    ) -> Optional[subprocess.CompletedProcess]:
        """Runs *cmd* once. Returns None on a timeout that may be retried."""
        try:
            return subprocess.run(cmd, text=True, capture_output=capture_output, timeout=timeout)
        except FileNotFoundError as exc:
            raise CommandError(
                f"Required command not found: {cmd[0]}. Please install it and try again."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            if not final:
                return None
            raise CommandError(f"{label} timed out after {timeout}s") from exc
        except OSError as exc:
            raise CommandError(f"Failed to execute {label}: {exc}") from exc

    @staticmethod
    def _failure_message(
        label: str,
        result: subprocess.CompletedProcess,
        capture_output: bool,
        sensitive_output: bool,
    ) -> str:
        message = f"{label} failed with exit code {result.returncode}"
        stderr = (result.stderr or "").strip() if capture_output else ""
        if stderr and not sensitive_output:
            message = f"{message}\n{stderr}"
        return message

    def _wait_before_retry(self, label: str, attempt: int, attempts: int, backoff: float, reason: str):
        self.logger.warning(
            "%s attempt %s/%s %s. Retrying in %.1fs.",
            label,
            attempt,
            attempts,
            reason,
            backoff,
        )
        time.sleep(backoff)
