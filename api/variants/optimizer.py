"""
Lossless/lossy post-processing of encoded images with external binaries.

The optimizer works on file paths because the tools it shells out to do.
"""

import mimetypes
import shutil
import subprocess

from core.exceptions import OptimizerError
from core.logger import logger

# Candidate tools per MIME type, tried in order; `{file}` is replaced with
# the path of the file to optimize in place
DEFAULT_COMMANDS: dict[str, list[list[str]]] = {
    "image/jpeg": [
        ["jpegoptim", "--quiet", "--strip-all", "--all-progressive", "-m85", "{file}"],
    ],
    "image/png": [
        ["optipng", "-quiet", "-o2", "{file}"],
    ],
    "image/gif": [
        ["gifsicle", "--batch", "-O3", "{file}"],
    ],
}


class ImageOptimizer:
    """
    Copies the input to the output path and optimizes the copy in place with
    the first tool available for the file's MIME type.

    When no tool is installed the output is the unmodified copy.
    """

    def __init__(self, commands: dict[str, list[list[str]]] | None = None, timeout: int = 60):
        self.commands = DEFAULT_COMMANDS if commands is None else commands
        self.timeout = timeout

    def _select(self, mime_type: str | None) -> list[str] | None:
        for command in self.commands.get(mime_type or "", []):
            binary = shutil.which(command[0])
            if binary:
                return [binary, *command[1:]]
        return None

    def optimize(self, input_path: str, output_path: str) -> None:
        shutil.copyfile(input_path, output_path)

        mime_type, _ = mimetypes.guess_type(input_path)
        command = self._select(mime_type)
        if command is None:
            logger.debug("No optimizer available for %s, keeping encoded file", mime_type)
            return

        cmd = [part.replace("{file}", output_path) for part in command]
        logger.debug("Running optimizer: %s", " ".join(cmd))
        proc = subprocess.run(cmd, text=True, capture_output=True, timeout=self.timeout)
        if proc.returncode != 0:
            raise OptimizerError(cmd, proc.returncode, proc.stderr)
