"""Subprocess process runner implementation."""

import subprocess
from typing import List, Optional

from ..interfaces.process import ProcessResult, ProcessRunner


class SubprocessRunner(ProcessRunner):
    """Run processes using the subprocess module."""

    def run(
        self,
        command: List[str],
        timeout: Optional[int] = None,
    ) -> ProcessResult:
        """Run a command."""
        result = subprocess.run(
            command,
            capture_output=True,
            timeout=timeout,
            check=False,
            text=True,
        )
        return ProcessResult(
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
