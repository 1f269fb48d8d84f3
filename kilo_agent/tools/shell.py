"""Shell command execution for command-style tools."""

import os
import signal
import subprocess
from pathlib import Path
from typing import Optional

from ..errors import CommandFailedError, ShellTimeoutError
from ..logger import get_logger

_log = get_logger(__name__)

_KILL_WAIT_TIMEOUT = 5  # seconds to reap the group after SIGKILL


def _kill_process_group(proc: subprocess.Popen) -> None:
    """Kill the command's whole process group, then reap the shell.

    The shell is started in its own session, so its pid is also the group id
    shared by every pipeline member, subshell and background job it forked.
    """
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except OSError:
        pass  # already exited
    try:
        proc.kill()
    except OSError:
        pass
    try:
        proc.communicate(timeout=_KILL_WAIT_TIMEOUT)
    except subprocess.TimeoutExpired:
        _log.error("Process group %d did not exit after SIGKILL", proc.pid)


class ShellExecutor:
    """Run one command string through ``bash -c`` with stdout and stderr combined."""

    def __init__(self, cwd: Optional[str] = None, shell: str = "bash"):
        self.cwd = str(Path(cwd).resolve()) if cwd else None
        self.shell = shell

    def run(self, command: str, timeout: float) -> str:
        """Return trimmed combined output.

        Raises ``ShellTimeoutError`` once ``timeout`` seconds pass (the whole
        process group is killed first) and ``CommandFailedError`` on a
        non-zero exit or when the process cannot be started.
        """
        _log.debug("Executing command: %s", command[:100])

        try:
            proc = subprocess.Popen(
                [self.shell, "-c", command],
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
                cwd=self.cwd,
                env={**os.environ, "TERM": "dumb"},
                start_new_session=True,
            )
        except OSError as e:
            raise CommandFailedError(f"{type(e).__name__}: {e}")

        try:
            stdout, _ = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            _kill_process_group(proc)
            _log.warning("Command timed out after %ss: %s", timeout, command[:100])
            raise ShellTimeoutError(timeout)

        output = (stdout or "").strip()
        if proc.returncode != 0:
            _log.info("Command exited with status %d: %s", proc.returncode, command[:100])
            raise CommandFailedError(f"exit status {proc.returncode}", output)

        return output if output else "(no output)"
