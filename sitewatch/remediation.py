import asyncio
import logging
from typing import Optional, Tuple

logger = logging.getLogger("SiteWatch.Remediation")


class RemediationRunner:
    """Launches the remediation executable and captures its output"""

    def __init__(self):
        self.last_returncode: Optional[int] = None
        self.last_error: Optional[str] = None

    async def invoke(self, executable_path: str) -> Tuple[str, Optional[str]]:
        """
        Run the executable with no arguments and wait for it to finish.

        stdout and stderr are captured as a single interleaved stream. No
        timeout is applied. A non-zero exit code is not an error, only a
        failure to launch or wait for the process is.

        Returns:
            Tuple of (combined_output, error_message)
        """
        self.last_returncode = None
        self.last_error = None

        try:
            process = await asyncio.create_subprocess_exec(
                executable_path,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
            stdout, _ = await process.communicate()
        except (OSError, ValueError) as e:
            self.last_error = f"Failed to execute ELF binary: {e}"
            logger.error(self.last_error)
            return "", self.last_error

        self.last_returncode = process.returncode
        output = stdout.decode(errors="replace") if stdout else ""

        if process.returncode != 0:
            logger.warning(f"ELF binary {executable_path} exited with status {process.returncode}")

        logger.info(f"ELF binary output:\n{output}")
        return output, None
