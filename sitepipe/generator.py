"""External static-site generator invocation."""
import asyncio
import logging

from sitepipe.config import Config
from sitepipe.results import ErrorKind, GeneratorResult

logger = logging.getLogger(__name__)


class SiteGenerator:
    """Runs the generator binary as a child process sharing our stdio."""

    def __init__(self, config: Config):
        self.config = config
        self.command = list(config.generator.command)

    async def run(self) -> GeneratorResult:
        """Run the generator and wait for it to exit.

        Returns:
            GeneratorResult with the exit code, or a subprocess error kind
            when the binary could not be started or exited non-zero
        """
        logger.info(f"Running {' '.join(self.command)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *self.command,
                cwd=str(self.config.paths.base_dir),
            )
        except OSError as e:
            return GeneratorResult(
                exit_code=None,
                error_kind=ErrorKind.SUBPROCESS,
                message=f"Cannot start {self.command[0]}: {e}",
            )

        exit_code = await process.wait()
        if exit_code != 0:
            return GeneratorResult(
                exit_code=exit_code,
                error_kind=ErrorKind.SUBPROCESS,
                message=f"{self.command[0]} exited with code {exit_code}",
            )
        return GeneratorResult(exit_code=0)
