"""Base pipeline interface for sitepipe."""
import asyncio
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path

from sitepipe.config import AssetGroup, Config
from sitepipe.results import PipelineError, PipelineResult, TransformationError

logger = logging.getLogger(__name__)


def write_atomic(dest: Path, content: bytes) -> None:
    """Write content to dest via a temp file in the same directory."""
    dest.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=dest.parent, prefix=f".{dest.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
        os.replace(tmp_name, dest)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class BasePipeline(ABC):
    """Abstract base class for asset pipelines.

    A run matches the group's sources, builds every output in memory and only
    then flushes them to disk, so a failed run leaves earlier output alone.
    """

    name: str = ""

    def __init__(self, config: Config, group: AssetGroup):
        """Initialize pipeline.

        Args:
            config: Build configuration
            group: Asset group this pipeline consumes
        """
        self.config = config
        self.group = group
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    @abstractmethod
    async def build(self, sources: list[Path]) -> list[tuple[Path, bytes]]:
        """Transform sources into output files.

        Args:
            sources: Matched source files in glob order

        Returns:
            List of (destination, content) pairs

        Raises:
            PipelineError: If a source cannot be transformed
        """
        pass

    def after_write(self, outputs: list[tuple[Path, bytes]]) -> None:
        """Hook called once all outputs are flushed."""
        pass

    async def run(self) -> PipelineResult:
        """Run the pipeline once against its asset group.

        Returns:
            PipelineResult with written paths or the error kind
        """
        async with self._lock:
            sources = self.group.sources()
            logger.debug(f"[{self.name}] {len(sources)} source(s) under {self.group.root}")

            try:
                outputs = await self.build(sources)
            except PipelineError as e:
                return PipelineResult.failed(self.name, e)
            except Exception as e:
                return PipelineResult.failed(self.name, TransformationError(str(e)))

            written = []
            for dest, content in outputs:
                try:
                    write_atomic(dest, content)
                except OSError as e:
                    return PipelineResult.failed(
                        self.name, TransformationError(f"Cannot write {dest}: {e}")
                    )
                written.append(dest)
                await asyncio.sleep(0)

            try:
                self.after_write(outputs)
            except OSError as e:
                return PipelineResult.failed(
                    self.name, TransformationError(f"Cannot finish {self.name} output: {e}")
                )
            return PipelineResult(group=self.name, outputs=written)
