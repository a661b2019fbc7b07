"""Container runtime collaborator: listing and pruning via the docker CLI."""

import logging
import re
import subprocess

from reclaim.errors import DockerError
from reclaim.models import DockerContainer, DockerImage, PruneResult

log = logging.getLogger(__name__)

LIST_TIMEOUT = 30
PRUNE_TIMEOUT = 300

_SIZE_MULTIPLIERS = {
    "B": 1,
    "KB": 1000,
    "MB": 1000**2,
    "GB": 1000**3,
    "TB": 1000**4,
    "K": 1000,
    "M": 1000**2,
    "G": 1000**3,
    "T": 1000**4,
}


def parse_docker_size(size_str: str) -> int:
    """Parse a docker size string ("1.2GB", "512kB", "0B") to bytes."""
    if not size_str:
        return 0

    match = re.match(r"([\d.]+)\s*([KMGT]?B?)", size_str.strip(), re.IGNORECASE)
    if not match:
        return 0

    num = float(match.group(1))
    unit = match.group(2).upper() or "B"
    return int(num * _SIZE_MULTIPLIERS.get(unit, 1))


def _run(args: list[str], timeout: int) -> subprocess.CompletedProcess:
    """Run a docker command, raising DockerError if it cannot run."""
    try:
        return subprocess.run(
            ["docker", *args],
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except FileNotFoundError:
        raise DockerError("Docker is not installed")
    except subprocess.TimeoutExpired:
        raise DockerError(f"docker {' '.join(args)} timed out")


def _list(args: list[str]) -> list[list[str]]:
    result = _run(args, LIST_TIMEOUT)
    if result.returncode != 0:
        raise DockerError(result.stderr.strip() or "Docker command failed")
    return [line.split("|") for line in result.stdout.splitlines() if line.strip()]


def docker_available() -> bool:
    """Check whether the docker daemon answers."""
    try:
        return _run(["info"], LIST_TIMEOUT).returncode == 0
    except DockerError:
        return False


def list_images() -> list[DockerImage]:
    """
    List all images.

    Raises:
        DockerError: If docker is missing or the command fails
    """
    images = []
    for parts in _list(["images", "--format", "{{.ID}}|{{.Repository}}|{{.Tag}}|{{.Size}}"]):
        if len(parts) != 4:
            log.debug("Ignoring unexpected image line: %s", parts)
            continue
        img_id, repository, tag, size = parts
        images.append(
            DockerImage(
                id=img_id,
                repository=repository,
                tag=tag,
                size=size,
                size_bytes=parse_docker_size(size),
            )
        )
    return images


def list_containers() -> list[DockerContainer]:
    """
    List all containers, running and stopped.

    Raises:
        DockerError: If docker is missing or the command fails
    """
    containers = []
    for parts in _list(["ps", "-a", "--format", "{{.ID}}|{{.Names}}|{{.Image}}|{{.Status}}"]):
        if len(parts) != 4:
            log.debug("Ignoring unexpected container line: %s", parts)
            continue
        cont_id, name, image, status = parts
        containers.append(DockerContainer(id=cont_id, name=name, image=image, status=status))
    return containers


def count_dangling_images() -> int:
    """Number of untagged images."""
    result = _run(["images", "-f", "dangling=true", "-q"], LIST_TIMEOUT)
    if result.returncode != 0:
        raise DockerError(result.stderr.strip() or "Docker command failed")
    return len([line for line in result.stdout.splitlines() if line.strip()])


def disk_usage() -> str:
    """Output of 'docker system df'."""
    result = _run(["system", "df"], LIST_TIMEOUT)
    if result.returncode != 0:
        raise DockerError(result.stderr.strip() or "Docker command failed")
    return result.stdout


def _prune(args: list[str]) -> PruneResult:
    command = "docker " + " ".join(args)
    log.info("Running %s", command)
    try:
        result = _run(args, PRUNE_TIMEOUT)
    except DockerError as e:
        return PruneResult(command=command, success=False, error=str(e))

    if result.returncode != 0:
        return PruneResult(
            command=command,
            success=False,
            output=result.stdout,
            error=result.stderr.strip() or "Command failed",
        )
    return PruneResult(command=command, success=True, output=result.stdout)


def prune_dangling_images() -> PruneResult:
    """Remove untagged images."""
    return _prune(["image", "prune", "-f"])


def prune_stopped_containers() -> PruneResult:
    """Remove all stopped containers."""
    return _prune(["container", "prune", "-f"])


def system_prune() -> PruneResult:
    """Remove stopped containers, unused networks, dangling images and build cache."""
    return _prune(["system", "prune", "-f"])
