"""Deploy the generated site to a hosting branch."""
import logging
import shutil
import subprocess
import tempfile
from pathlib import Path

from sitepipe.config import Config
from sitepipe.results import DeployError

logger = logging.getLogger(__name__)


def _git(args: list[str], cwd: Path) -> str:
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=str(cwd),
            capture_output=True,
            text=True,
            check=True,
        )
    except FileNotFoundError as e:
        raise DeployError("git executable not found") from e
    except subprocess.CalledProcessError as e:
        raise DeployError(f"git {' '.join(args)} failed: {e.stderr.strip()}") from e
    return result.stdout.strip()


def resolve_remote(config: Config) -> str:
    """Return the push target, defaulting to the base repo's origin URL."""
    if config.deploy.remote:
        return config.deploy.remote
    return _git(["remote", "get-url", "origin"], config.paths.base_dir)


def deploy(config: Config) -> str:
    """Push the generated site tree to the hosting branch.

    The site is committed as a single commit in a throwaway repository and
    pushed over the branch, replacing whatever it held.

    Args:
        config: Build configuration

    Returns:
        The remote the site was pushed to

    Raises:
        DeployError: If the site is missing or any git step fails
    """
    site_dir = config.paths.site_dir
    if not site_dir.is_dir():
        raise DeployError(f"Site directory not found: {site_dir}")

    remote = resolve_remote(config)
    branch = config.deploy.branch

    with tempfile.TemporaryDirectory(prefix="sitepipe-deploy-") as tmp:
        work_tree = Path(tmp) / "site"
        shutil.copytree(site_dir, work_tree)

        _git(["init", "--quiet"], work_tree)
        _git(["checkout", "--quiet", "-b", branch], work_tree)
        _git(["add", "--all"], work_tree)
        _git(
            [
                "-c", "user.name=sitepipe",
                "-c", "user.email=sitepipe@localhost",
                "commit", "--quiet", "-m", config.deploy.message,
            ],
            work_tree,
        )

        push = ["push", "--quiet"]
        if config.deploy.force:
            push.append("--force")
        push += [remote, f"{branch}:{branch}"]

        logger.info(f"Pushing {site_dir} to {remote} ({branch})")
        _git(push, work_tree)

    logger.info("Deploy complete")
    return remote
