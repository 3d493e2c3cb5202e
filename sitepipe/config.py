"""Configuration loader and asset registry for sitepipe."""
import copy
import fnmatch
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_FILE = "sitepipe.yaml"


class ConfigurationError(Exception):
    """Raised when configuration is invalid."""
    pass


class BuildMode(str, Enum):
    """Build mode selected once at startup."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"

    @classmethod
    def from_env(cls, value: str | None) -> "BuildMode":
        """Map the ``--env`` flag value to a build mode.

        Args:
            value: Flag value (``prod``, ``production``, ``dev``, ``development`` or None)

        Returns:
            Matching BuildMode
        """
        if value is None:
            return cls.DEVELOPMENT
        normalized = value.strip().lower()
        if normalized in ("prod", "production"):
            return cls.PRODUCTION
        if normalized in ("dev", "development"):
            return cls.DEVELOPMENT
        raise ConfigurationError(f"Unknown env: {value}. Use 'dev' or 'prod'.")


@dataclass(frozen=True)
class AssetGroup:
    """A named set of source files sharing glob patterns and a destination."""

    name: str
    root: Path
    patterns: tuple[str, ...]
    destination: Path | None = None

    def sources(self) -> list[Path]:
        """Return matched source files in deterministic order."""
        if not self.root.is_dir():
            return []

        seen: set[Path] = set()
        matched: list[Path] = []
        for pattern in self.patterns:
            for path in sorted(self.root.glob(pattern)):
                if path in seen or not path.is_file():
                    continue
                # Hidden files and folders such as .DS_Store or .git
                if any(part.startswith(".") for part in path.relative_to(self.root).parts):
                    continue
                seen.add(path)
                matched.append(path)
        return matched

    def matches(self, path: str | Path) -> bool:
        """Check whether a changed path belongs to this group."""
        root = os.path.abspath(self.root)
        candidate = os.path.abspath(path)
        try:
            rel = Path(candidate).relative_to(root).as_posix()
        except ValueError:
            return False

        for pattern in self.patterns:
            if fnmatch.fnmatchcase(rel, pattern):
                return True
            # "**/" also matches files directly under root
            if pattern.startswith("**/") and fnmatch.fnmatchcase(rel, pattern[3:]):
                return True
        return False


class PathsConfig:
    """Filesystem layout configuration."""

    def __init__(self, data: dict[str, Any]):
        self.base: str = data.get("base", "./")
        self.source: str = data.get("source", "_dev/src")
        self.assets: str = data.get("assets", "assets")
        self.site: str = data.get("site", "_site")

    @property
    def base_dir(self) -> Path:
        return Path(self.base)

    @property
    def source_dir(self) -> Path:
        return self.base_dir / self.source

    @property
    def assets_dir(self) -> Path:
        return self.base_dir / self.assets

    @property
    def site_dir(self) -> Path:
        return self.base_dir / self.site


class StylesConfig:
    """Style pipeline configuration."""

    def __init__(self, data: dict[str, Any]):
        self.source: str = data.get("source", "sass")
        self.patterns: list[str] = data.get("patterns", ["**/*.scss"])
        self.output: str = data.get("output", "css/styles.css")
        self.manifest: bool = data.get("manifest", True)


class ScriptsConfig:
    """Script pipeline configuration."""

    def __init__(self, data: dict[str, Any]):
        self.source: str = data.get("source", "js")
        self.patterns: list[str] = data.get("patterns", ["**/*.js"])
        self.output: str = data.get("output", "js")
        self.minify: bool = data.get("minify", False)


class ImagesConfig:
    """Image pipeline configuration."""

    def __init__(self, data: dict[str, Any]):
        self.source: str = data.get("source", "img")
        self.patterns: list[str] = data.get("patterns", ["**/*"])
        self.output: str = data.get("output", "img")
        self.max_width: int = data.get("max_width", 750)
        self.interlace: bool = data.get("interlace", True)
        self.quality: int = data.get("quality", 70)

    def validate(self) -> None:
        """Validate image transformation settings."""
        if not isinstance(self.max_width, int) or self.max_width <= 0:
            raise ConfigurationError(
                f"images.max_width must be a positive integer, got: {self.max_width}"
            )
        if not isinstance(self.quality, int) or not 1 <= self.quality <= 100:
            raise ConfigurationError(
                f"images.quality must be between 1 and 100, got: {self.quality}"
            )


class GeneratorConfig:
    """External site generator configuration."""

    def __init__(self, data: dict[str, Any]):
        self.command: list[str] = data.get("command", ["jekyll", "build", "--incremental"])
        self.watch: list[str] = data.get(
            "watch",
            ["index.html", "_posts/*", "_layouts/*", "_includes/*", "_data/*.yml"],
        )

    def validate(self) -> None:
        """Validate generator command."""
        if not isinstance(self.command, list) or not self.command:
            raise ConfigurationError("generator.command must be a non-empty list")


class ServerConfig:
    """Dev server configuration."""

    def __init__(self, data: dict[str, Any]):
        self.host: str = data.get("host", "127.0.0.1")
        self.port: int = data.get("port", 4000)


class DeployConfig:
    """Deploy target configuration."""

    def __init__(self, data: dict[str, Any]):
        self.remote: str | None = data.get("remote")
        self.branch: str = data.get("branch", "gh-pages")
        self.force: bool = data.get("force", True)
        self.message: str = data.get("message", "Update site")


def merge_overrides(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge profile overrides into a copy of the base data."""
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_overrides(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _is_within(path: Path, other: Path) -> bool:
    path = Path(os.path.abspath(path))
    other = Path(os.path.abspath(other))
    return path == other or other in path.parents


class Config:
    """Main configuration class."""

    def __init__(
        self,
        config_path: str | None = None,
        profile: str | None = None,
        mode: BuildMode = BuildMode.DEVELOPMENT,
    ):
        """Load configuration from an optional YAML file.

        Args:
            config_path: Path to config file. Falls back to SITEPIPE_CONFIG,
                then ./sitepipe.yaml, then built-in defaults
            profile: Name of a profile under ``profiles`` to apply
            mode: Build mode for this invocation
        """
        data = self._read(config_path)

        profiles = data.pop("profiles", {}) or {}
        if profile is not None:
            if profile not in profiles:
                raise ConfigurationError(f"Unknown profile: {profile}")
            data = merge_overrides(data, profiles[profile] or {})

        self.profile = profile
        self._mode = BuildMode(mode)

        # Load sections
        self.paths = PathsConfig(data.get("paths", {}))
        self.styles = StylesConfig(data.get("styles", {}))
        self.scripts = ScriptsConfig(data.get("scripts", {}))
        self.images = ImagesConfig(data.get("images", {}))
        self.generator = GeneratorConfig(data.get("generator", {}))
        self.server = ServerConfig(data.get("server", {}))
        self.deploy = DeployConfig(data.get("deploy", {}))

        # Validate configuration
        self.validate()

    def _read(self, config_path: str | None) -> dict[str, Any]:
        if config_path is None:
            config_path = os.getenv("SITEPIPE_CONFIG")
            if config_path is None:
                if not Path(DEFAULT_CONFIG_FILE).exists():
                    self.config_path = None
                    return {}
                config_path = DEFAULT_CONFIG_FILE

        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")

        with open(self.config_path, "r") as f:
            data = yaml.safe_load(f)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigurationError("Config file must contain a mapping")
        return data

    @property
    def mode(self) -> BuildMode:
        return self._mode

    @property
    def is_production(self) -> bool:
        return self._mode is BuildMode.PRODUCTION

    @property
    def styles_output(self) -> Path:
        return self.paths.assets_dir / self.styles.output

    @property
    def manifest_path(self) -> Path:
        return self.paths.assets_dir / "manifest.json"

    def asset_groups(self) -> dict[str, AssetGroup]:
        """Build the asset group registry.

        Returns:
            Mapping of group name (css, js, img, jekyll) to AssetGroup
        """
        source_dir = self.paths.source_dir
        assets_dir = self.paths.assets_dir
        return {
            "css": AssetGroup(
                name="css",
                root=source_dir / self.styles.source,
                patterns=tuple(self.styles.patterns),
                destination=self.styles_output.parent,
            ),
            "js": AssetGroup(
                name="js",
                root=source_dir / self.scripts.source,
                patterns=tuple(self.scripts.patterns),
                destination=assets_dir / self.scripts.output,
            ),
            "img": AssetGroup(
                name="img",
                root=source_dir / self.images.source,
                patterns=tuple(self.images.patterns),
                destination=assets_dir / self.images.output,
            ),
            "jekyll": AssetGroup(
                name="jekyll",
                root=self.paths.base_dir,
                patterns=tuple(self.generator.watch),
            ),
        }

    def validate(self) -> None:
        """Validate entire configuration."""
        self.images.validate()
        self.generator.validate()

        if not isinstance(self.server.port, int) or not 0 < self.server.port < 65536:
            raise ConfigurationError(f"server.port is invalid: {self.server.port}")

        # No pipeline may read its own output
        for group in self.asset_groups().values():
            if group.destination is None:
                continue
            if _is_within(group.destination, group.root) or _is_within(group.root, group.destination):
                raise ConfigurationError(
                    f"Destination {group.destination} of '{group.name}' overlaps its source {group.root}"
                )


def load_config(
    config_path: str | None = None,
    profile: str | None = None,
    mode: BuildMode = BuildMode.DEVELOPMENT,
) -> Config:
    """Load and return configuration.

    Args:
        config_path: Optional path to config file
        profile: Optional profile name
        mode: Build mode

    Returns:
        Config object

    Raises:
        ConfigurationError: If configuration is invalid
    """
    return Config(config_path, profile=profile, mode=mode)
