"""Typed outcomes and error kinds for build steps."""
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import click

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    """Failure categories surfaced by build steps."""

    SOURCE_SYNTAX = "source_syntax"
    TRANSFORMATION = "transformation"
    SUBPROCESS = "subprocess"
    NETWORK = "network"
    CONFIGURATION = "configuration"


class PipelineError(Exception):
    """Base error for a failed build step."""

    kind = ErrorKind.TRANSFORMATION


class SourceSyntaxError(PipelineError):
    """Raised when a stylesheet or script cannot be parsed."""

    kind = ErrorKind.SOURCE_SYNTAX


class TransformationError(PipelineError):
    """Raised when a transformation library fails."""

    kind = ErrorKind.TRANSFORMATION


class SubprocessSpawnError(PipelineError):
    """Raised when the site generator cannot be started."""

    kind = ErrorKind.SUBPROCESS


class DeployError(PipelineError):
    """Raised when pushing the generated site fails."""

    kind = ErrorKind.NETWORK


@dataclass
class PipelineResult:
    """Outcome of one pipeline run."""

    group: str
    outputs: list[Path] = field(default_factory=list)
    error_kind: ErrorKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error_kind is None

    @classmethod
    def failed(cls, group: str, error: PipelineError) -> "PipelineResult":
        return cls(group=group, error_kind=error.kind, message=str(error))


@dataclass
class GeneratorResult:
    """Outcome of one external generator run."""

    exit_code: int | None
    error_kind: ErrorKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error_kind is None and self.exit_code == 0


class Reporter:
    """Logs build step outcomes based on their error kind."""

    def __init__(self, log: logging.Logger | None = None):
        self.log = log or logger

    def error(self, label: str, kind: ErrorKind, message: str) -> None:
        self.log.error(click.style(f"[{label}] {kind.value}: {message}", fg="red"))

    def pipeline(self, result: PipelineResult) -> None:
        """Report a pipeline result."""
        if not result.ok:
            self.error(result.group, result.error_kind, result.message)
        elif result.outputs:
            self.log.info(f"[{result.group}] wrote {len(result.outputs)} file(s)")
        else:
            self.log.debug(f"[{result.group}] no matching sources")

    def generator(self, result: GeneratorResult) -> None:
        """Report a generator result."""
        if result.error_kind is not None:
            self.error("generator", result.error_kind, result.message)
        else:
            self.log.info(click.style("[generator] site built", fg="green"))
