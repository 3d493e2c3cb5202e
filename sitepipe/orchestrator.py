"""Site build orchestration: asset pipelines, then the site generator."""
import asyncio
import logging

from sitepipe.config import Config
from sitepipe.generator import SiteGenerator
from sitepipe.pipelines.base import BasePipeline
from sitepipe.pipelines.images import ImagePipeline
from sitepipe.pipelines.scripts import ScriptPipeline
from sitepipe.pipelines.styles import StylePipeline
from sitepipe.results import GeneratorResult, PipelineResult, Reporter

logger = logging.getLogger(__name__)


def create_pipelines(config: Config) -> dict[str, BasePipeline]:
    """Create one pipeline per asset group.

    Args:
        config: Build configuration

    Returns:
        Mapping of group name to pipeline
    """
    groups = config.asset_groups()
    return {
        "css": StylePipeline(config, groups["css"]),
        "js": ScriptPipeline(config, groups["js"]),
        "img": ImagePipeline(config, groups["img"]),
    }


class Orchestrator:
    """Runs the asset pipelines and then the external generator."""

    def __init__(
        self,
        config: Config,
        reporter: Reporter | None = None,
        pipelines: dict[str, BasePipeline] | None = None,
        generator: SiteGenerator | None = None,
    ):
        """Initialize orchestrator.

        Args:
            config: Build configuration
            reporter: Logs step outcomes
            pipelines: Pipelines keyed by group name
            generator: External site generator
        """
        self.config = config
        self.reporter = reporter or Reporter()
        self.pipelines = pipelines if pipelines is not None else create_pipelines(config)
        self.generator = generator or SiteGenerator(config)

    async def run_pipeline(self, name: str) -> PipelineResult:
        """Run a single pipeline by group name and report it."""
        result = await self.pipelines[name].run()
        self.reporter.pipeline(result)
        return result

    async def build_assets(self) -> list[PipelineResult]:
        """Run every pipeline concurrently and wait for all of them."""
        results = await asyncio.gather(
            *(pipeline.run() for pipeline in self.pipelines.values())
        )
        for result in results:
            self.reporter.pipeline(result)
        return list(results)

    async def build(self) -> GeneratorResult:
        """Build assets, then the site.

        The generator runs once all pipelines have finished, even if some of
        them failed; their errors are already reported.

        Returns:
            GeneratorResult of the generator run
        """
        await self.build_assets()
        result = await self.generator.run()
        self.reporter.generator(result)
        return result
