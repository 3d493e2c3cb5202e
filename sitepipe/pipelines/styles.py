"""Style pipeline: SCSS -> prefixed, minified, single stylesheet."""
import asyncio
import hashlib
import json
import logging
from pathlib import Path

import rcssmin
import sass

from sitepipe.css import prefix_css, resolve_custom_media
from sitepipe.pipelines.base import BasePipeline, write_atomic
from sitepipe.results import SourceSyntaxError

logger = logging.getLogger(__name__)


def compute_hash(content: bytes, length: int = 8) -> str:
    """Compute short hash of content."""
    return hashlib.md5(content).hexdigest()[:length]


def minify_css(content: str) -> str:
    """Minify CSS content."""
    return rcssmin.cssmin(content)


class StylePipeline(BasePipeline):
    """Compiles every non-partial SCSS source into one stylesheet."""

    name = "css"

    def compile_source(self, source: Path) -> str:
        """Compile one SCSS file.

        Args:
            source: Path to .scss file

        Returns:
            Expanded CSS

        Raises:
            SourceSyntaxError: If libsass rejects the file
        """
        try:
            return sass.compile(
                filename=str(source),
                include_paths=[str(self.group.root)],
                output_style="expanded",
            )
        except sass.CompileError as e:
            raise SourceSyntaxError(f"{source}: {e}") from e

    def render(self, chunks: list[str]) -> str:
        """Run the post-compile passes over concatenated CSS."""
        css = "\n".join(chunks)
        css = prefix_css(css)
        css = minify_css(css)
        return resolve_custom_media(css)

    async def build(self, sources: list[Path]) -> list[tuple[Path, bytes]]:
        # Partials are only reachable through @import
        entries = [source for source in sources if not source.name.startswith("_")]
        if not entries:
            return []

        chunks = []
        for source in entries:
            chunks.append(self.compile_source(source))
            await asyncio.sleep(0)

        css = self.render(chunks)
        return [(self.config.styles_output, css.encode("utf-8"))]

    def after_write(self, outputs: list[tuple[Path, bytes]]) -> None:
        if not self.config.styles.manifest:
            return

        for dest, content in outputs:
            update_manifest(self.config.manifest_path, self.public_url(dest), compute_hash(content))

    def public_url(self, dest: Path) -> str:
        """URL of an output relative to the site root."""
        return "/" + dest.relative_to(self.config.paths.base_dir).as_posix()


def update_manifest(manifest_path: Path, url: str, content_hash: str) -> dict[str, str]:
    """Record the versioned URL of an output in the manifest.

    Args:
        manifest_path: Path to manifest.json
        url: Unversioned URL
        content_hash: Hash of the written content

    Returns:
        Updated manifest
    """
    manifest = {}
    if manifest_path.exists():
        try:
            manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning(f"Ignoring unreadable manifest {manifest_path}")
            manifest = {}

    manifest[url] = f"{url}?v={content_hash}"
    write_atomic(manifest_path, json.dumps(manifest, indent=2, sort_keys=True).encode("utf-8"))
    logger.debug(f"  {url} -> {manifest[url]}")
    return manifest
