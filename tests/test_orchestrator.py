"""Tests for the orchestrator, site generator and reporter."""
import asyncio
import logging
import random
import sys

import pytest
import yaml

from sitepipe.config import Config
from sitepipe.generator import SiteGenerator
from sitepipe.orchestrator import Orchestrator
from sitepipe.results import (
    ErrorKind,
    GeneratorResult,
    PipelineResult,
    Reporter,
    SourceSyntaxError,
)


class FakePipeline:
    """Pipeline stand-in that finishes after a delay and records it."""

    def __init__(self, name, events, delay=0.0, result=None):
        self.name = name
        self.events = events
        self.delay = delay
        self.result = result or PipelineResult(group=name)

    async def run(self):
        self.events.append(("start", self.name))
        await asyncio.sleep(self.delay)
        self.events.append(("done", self.name))
        return self.result


class FakeGenerator:
    """Generator stand-in recording when it was invoked."""

    def __init__(self, events, exit_code=0):
        self.events = events
        self.exit_code = exit_code

    async def run(self):
        self.events.append(("generator", None))
        return GeneratorResult(exit_code=self.exit_code)


def config_with_command(tmp_path, test_config_dict, command):
    test_config_dict["generator"]["command"] = command
    config_file = tmp_path / "generator.yaml"
    config_file.write_text(yaml.dump(test_config_dict))
    return Config(str(config_file))


class TestOrchestratorBarrier:
    """Tests that the generator waits for every pipeline."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", range(12))
    async def test_generator_runs_after_all_pipelines(self, test_config, seed):
        rng = random.Random(seed)
        events = []
        pipelines = {
            name: FakePipeline(name, events, delay=rng.uniform(0, 0.02))
            for name in ("css", "js", "img")
        }
        orchestrator = Orchestrator(
            test_config, pipelines=pipelines, generator=FakeGenerator(events)
        )

        result = await orchestrator.build()

        assert result.ok
        generator_index = events.index(("generator", None))
        done_indexes = [events.index(("done", name)) for name in pipelines]
        assert max(done_indexes) < generator_index
        assert generator_index == len(events) - 1

    @pytest.mark.asyncio
    async def test_pipelines_run_concurrently(self, test_config):
        events = []
        pipelines = {
            name: FakePipeline(name, events, delay=0.01) for name in ("css", "js", "img")
        }
        orchestrator = Orchestrator(
            test_config, pipelines=pipelines, generator=FakeGenerator(events)
        )

        await orchestrator.build()

        # All three start before any finishes
        assert [kind for kind, _ in events[:3]] == ["start", "start", "start"]

    @pytest.mark.asyncio
    async def test_failed_pipeline_still_builds_site(self, test_config, caplog):
        events = []
        failed = PipelineResult.failed("css", SourceSyntaxError("main.scss: bad"))
        pipelines = {
            "css": FakePipeline("css", events, result=failed),
            "js": FakePipeline("js", events),
            "img": FakePipeline("img", events),
        }
        orchestrator = Orchestrator(
            test_config, pipelines=pipelines, generator=FakeGenerator(events)
        )

        with caplog.at_level(logging.ERROR):
            result = await orchestrator.build()

        assert result.exit_code == 0
        assert ("generator", None) in events
        assert "main.scss: bad" in caplog.text

    @pytest.mark.asyncio
    async def test_run_pipeline_by_name(self, test_config):
        events = []
        pipelines = {"css": FakePipeline("css", events)}
        orchestrator = Orchestrator(
            test_config, pipelines=pipelines, generator=FakeGenerator(events)
        )

        result = await orchestrator.run_pipeline("css")

        assert result.ok
        assert events == [("start", "css"), ("done", "css")]


class TestOrchestratorBuild:
    """End-to-end build with real pipelines."""

    @pytest.mark.asyncio
    async def test_build_writes_assets_then_runs_generator(
        self, test_config, sass_dir, js_dir, large_png, project_dir
    ):
        (sass_dir / "main.scss").write_text("body { color: red; }\n")
        (js_dir / "app.js").write_text("console.log('hi');\n")
        seen_assets = []

        class CheckingGenerator:
            async def run(self):
                seen_assets.extend(
                    sorted(p.relative_to(project_dir).as_posix()
                           for p in (project_dir / "assets").rglob("*") if p.is_file())
                )
                return GeneratorResult(exit_code=0)

        orchestrator = Orchestrator(test_config, generator=CheckingGenerator())
        result = await orchestrator.build()

        assert result.ok
        assert seen_assets == [
            "assets/css/styles.css",
            "assets/img/hero.png",
            "assets/js/app.js",
            "assets/manifest.json",
        ]

    @pytest.mark.asyncio
    async def test_manifest_failure_still_runs_generator(self, test_config, sass_dir, js_dir):
        (sass_dir / "main.scss").write_text("body { color: red; }\n")
        (js_dir / "app.js").write_text("console.log('hi');\n")
        test_config.manifest_path.mkdir(parents=True)
        events = []

        orchestrator = Orchestrator(test_config, generator=FakeGenerator(events))
        result = await orchestrator.build()

        assert result.ok
        assert events == [("generator", None)]
        assert (test_config.paths.assets_dir / "js" / "app.js").exists()
        css_result = await orchestrator.run_pipeline("css")
        assert css_result.error_kind is ErrorKind.TRANSFORMATION


class TestSiteGenerator:
    """Tests for SiteGenerator subprocess handling."""

    @pytest.mark.asyncio
    async def test_success(self, tmp_path, test_config_dict):
        config = config_with_command(tmp_path, test_config_dict, [sys.executable, "-c", "pass"])

        result = await SiteGenerator(config).run()

        assert result.ok
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_runs_in_base_dir(self, tmp_path, test_config_dict, project_dir):
        script = "import pathlib; pathlib.Path('built.txt').write_text('ok')"
        config = config_with_command(tmp_path, test_config_dict, [sys.executable, "-c", script])

        await SiteGenerator(config).run()

        assert (project_dir / "built.txt").read_text() == "ok"

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, tmp_path, test_config_dict):
        config = config_with_command(
            tmp_path, test_config_dict, [sys.executable, "-c", "import sys; sys.exit(3)"]
        )

        result = await SiteGenerator(config).run()

        assert not result.ok
        assert result.exit_code == 3
        assert result.error_kind is ErrorKind.SUBPROCESS

    @pytest.mark.asyncio
    async def test_missing_binary(self, tmp_path, test_config_dict):
        config = config_with_command(
            tmp_path, test_config_dict, ["sitepipe-no-such-generator", "build"]
        )

        result = await SiteGenerator(config).run()

        assert result.exit_code is None
        assert result.error_kind is ErrorKind.SUBPROCESS
        assert "sitepipe-no-such-generator" in result.message


class TestReporter:
    """Tests for Reporter logging."""

    def test_pipeline_failure_logged_in_red(self, caplog):
        reporter = Reporter()
        result = PipelineResult.failed("css", SourceSyntaxError("broken"))

        with caplog.at_level(logging.INFO):
            reporter.pipeline(result)

        assert len(caplog.records) == 1
        record = caplog.records[0]
        assert record.levelno == logging.ERROR
        assert "\x1b[31m" in record.getMessage()
        assert "source_syntax: broken" in record.getMessage()

    def test_pipeline_success_logged(self, caplog, tmp_path):
        reporter = Reporter()
        result = PipelineResult(group="js", outputs=[tmp_path / "a.js"])

        with caplog.at_level(logging.INFO):
            reporter.pipeline(result)

        assert "[js] wrote 1 file(s)" in caplog.text

    def test_generator_spawn_failure_logged(self, caplog):
        reporter = Reporter()
        result = GeneratorResult(
            exit_code=None, error_kind=ErrorKind.SUBPROCESS, message="Cannot start jekyll"
        )

        with caplog.at_level(logging.INFO):
            reporter.generator(result)

        assert caplog.records[0].levelno == logging.ERROR
        assert "Cannot start jekyll" in caplog.text
