"""Script pipeline: relocate JavaScript sources into the assets directory."""
import asyncio
from pathlib import Path

import rjsmin

from sitepipe.pipelines.base import BasePipeline
from sitepipe.results import SourceSyntaxError


def minify_js(content: str) -> str:
    """Minify JavaScript content."""
    return rjsmin.jsmin(content)


class ScriptPipeline(BasePipeline):
    """Copies scripts verbatim, or minified when the profile asks for it."""

    name = "js"

    async def build(self, sources: list[Path]) -> list[tuple[Path, bytes]]:
        outputs = []
        for source in sources:
            content = source.read_bytes()
            if self.config.scripts.minify:
                try:
                    text = content.decode("utf-8")
                except UnicodeDecodeError as e:
                    raise SourceSyntaxError(f"{source}: {e}") from e
                content = minify_js(text).encode("utf-8")

            outputs.append((self.group.destination / source.name, content))
            await asyncio.sleep(0)
        return outputs
