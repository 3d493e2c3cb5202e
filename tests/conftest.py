"""Shared pytest fixtures for sitepipe tests."""
import pytest
import yaml
from PIL import Image

from sitepipe.config import BuildMode, Config


@pytest.fixture
def project_dir(tmp_path):
    """Create a project tree with the conventional source layout."""
    src = tmp_path / "_dev" / "src"
    for name in ("sass", "js", "img"):
        (src / name).mkdir(parents=True)
    (tmp_path / "_posts").mkdir()
    return tmp_path


@pytest.fixture
def test_config_dict(project_dir):
    """Return a test configuration dictionary."""
    return {
        "paths": {
            "base": str(project_dir),
            "source": "_dev/src",
            "assets": "assets",
            "site": "_site",
        },
        "images": {
            "max_width": 750,
            "quality": 70,
        },
        "generator": {
            "command": ["jekyll", "build", "--incremental"],
        },
        "server": {
            "host": "127.0.0.1",
            "port": 4000,
        },
        "profiles": {
            "minified": {
                "paths": {"assets": "dist/assets"},
                "scripts": {"minify": True},
            },
        },
    }


@pytest.fixture
def test_config_file(tmp_path, test_config_dict):
    """Create a temporary test configuration file."""
    config_file = tmp_path / "sitepipe.yaml"
    with open(config_file, "w") as f:
        yaml.dump(test_config_dict, f)

    return str(config_file)


@pytest.fixture
def test_config(test_config_file):
    """Create a development-mode Config instance."""
    return Config(test_config_file)


@pytest.fixture
def prod_config(test_config_file):
    """Create a production-mode Config instance."""
    return Config(test_config_file, mode=BuildMode.PRODUCTION)


@pytest.fixture
def sass_dir(project_dir):
    return project_dir / "_dev" / "src" / "sass"


@pytest.fixture
def js_dir(project_dir):
    return project_dir / "_dev" / "src" / "js"


@pytest.fixture
def img_dir(project_dir):
    return project_dir / "_dev" / "src" / "img"


@pytest.fixture
def large_png(img_dir):
    """A 1200x600 PNG source image."""
    path = img_dir / "hero.png"
    image = Image.new("RGB", (1200, 600))
    for x in range(0, 1200, 10):
        for y in range(0, 600, 10):
            image.putpixel((x, y), (x % 256, y % 256, 128))
    image.save(path, format="PNG")
    return path


@pytest.fixture
def small_jpeg(img_dir):
    """A 400x300 JPEG source image."""
    path = img_dir / "thumb.jpg"
    Image.new("RGB", (400, 300), (200, 30, 30)).save(path, format="JPEG", quality=95)
    return path
