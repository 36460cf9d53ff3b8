"""
Lightweight host facts for the problem statement context.

Everything here reads files and environment variables only; no external
commands are run, so collection is fast and safe before the session starts.
"""

import logging
import os
import platform
import shutil
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel

logger = logging.getLogger(__name__)

_K8S_TOKEN = "var/run/secrets/kubernetes.io/serviceaccount/token"
_RUNTIME_SOCKETS = (
    "var/run/docker.sock",
    "run/containerd/containerd.sock",
    "run/podman/podman.sock",
)
_RUNTIME_BINARIES = ("docker", "podman", "crictl", "nerdctl")


class SystemInfo(BaseModel):
    """Basic facts about the host the diagnosis runs on."""

    os: str
    kernel: str | None = None
    cpu_model: str | None = None
    cpu_count: int | None = None
    total_memory: str | None = None
    available_memory: str | None = None
    total_disk: str | None = None
    free_disk: str | None = None
    is_kubernetes: bool = False
    container_runtime_available: bool = False


def _read(path: Path) -> str | None:
    try:
        return path.read_text()
    except OSError:
        return None


def _human_bytes(n: float) -> str:
    if n < 1024:
        return f"{int(n)} B"
    for unit in ("KiB", "MiB", "GiB"):
        n /= 1024
        if n < 1024:
            return f"{n:.1f} {unit}"
    n /= 1024
    return f"{n:.1f} TiB"


def parse_os_release(content: str) -> str | None:
    """PRETTY_NAME (or NAME plus VERSION) from /etc/os-release content."""
    fields = {}
    for line in content.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            fields[key.strip()] = value.strip().strip('"')
    if fields.get("PRETTY_NAME"):
        return fields["PRETTY_NAME"]
    name = fields.get("NAME")
    if name and fields.get("VERSION"):
        return f"{name} {fields['VERSION']}"
    return name


def parse_meminfo(content: str) -> tuple[str | None, str | None]:
    """(total, available) memory from /proc/meminfo content."""
    values = {}
    for line in content.splitlines():
        key, _, rest = line.partition(":")
        parts = rest.split()
        if parts and parts[0].isdigit():
            values[key] = int(parts[0]) * 1024
    total = values.get("MemTotal")
    available = values.get("MemAvailable", values.get("MemFree"))
    return (
        _human_bytes(total) if total is not None else None,
        _human_bytes(available) if available is not None else None,
    )


def parse_cpu_model(content: str) -> str | None:
    for line in content.splitlines():
        if line.startswith("model name"):
            return line.partition(":")[2].strip() or None
    return None


def is_kubernetes(env: Mapping[str, str], root: Path) -> bool:
    return (
        "KUBERNETES_SERVICE_HOST" in env
        or "KUBERNETES_SERVICE_PORT" in env
        or (root / _K8S_TOKEN).exists()
    )


def container_runtime_available(root: Path) -> bool:
    if any((root / socket).exists() for socket in _RUNTIME_SOCKETS):
        return True
    return any(shutil.which(binary) for binary in _RUNTIME_BINARIES)


def collect_system_info(
    root: Path = Path("/"),
    env: Mapping[str, str] | None = None,
) -> SystemInfo:
    """
    Collect host facts.

    Args:
        root: Filesystem root to read from (tests point this at a tmp dir)
        env: Environment mapping (default: os.environ)

    Returns:
        SystemInfo; fields that cannot be determined are None
    """
    env = os.environ if env is None else env

    os_release = _read(root / "etc/os-release")
    os_name = (parse_os_release(os_release) if os_release else None) or platform.system()

    kernel = None
    proc_version = _read(root / "proc/version")
    if proc_version:
        parts = proc_version.split()
        kernel = parts[2] if len(parts) > 2 else None

    cpuinfo = _read(root / "proc/cpuinfo")
    meminfo = _read(root / "proc/meminfo")
    total_memory, available_memory = parse_meminfo(meminfo) if meminfo else (None, None)

    total_disk = free_disk = None
    try:
        usage = shutil.disk_usage(root)
        total_disk, free_disk = _human_bytes(usage.total), _human_bytes(usage.free)
    except OSError as e:
        logger.debug(f"Could not read disk usage of {root}: {e}")

    return SystemInfo(
        os=os_name,
        kernel=kernel,
        cpu_model=parse_cpu_model(cpuinfo) if cpuinfo else None,
        cpu_count=os.cpu_count(),
        total_memory=total_memory,
        available_memory=available_memory,
        total_disk=total_disk,
        free_disk=free_disk,
        is_kubernetes=is_kubernetes(env, root),
        container_runtime_available=container_runtime_available(root),
    )


def format_context(info: SystemInfo) -> str:
    """Render host facts as the problem statement context block."""
    lines = [f"OS: {info.os}"]
    if info.kernel:
        lines.append(f"Kernel: {info.kernel}")
    if info.cpu_model or info.cpu_count:
        cpu = info.cpu_model or "unknown model"
        if info.cpu_count:
            cpu += f" ({info.cpu_count} cores)"
        lines.append(f"CPU: {cpu}")
    if info.total_memory:
        lines.append(f"Memory: {info.available_memory or '?'} available of {info.total_memory}")
    if info.total_disk:
        lines.append(f"Disk (/): {info.free_disk or '?'} free of {info.total_disk}")
    lines.append(f"Kubernetes: {'yes' if info.is_kubernetes else 'no'}")
    lines.append(
        f"Container runtime: {'available' if info.container_runtime_available else 'not found'}"
    )
    return "\n".join(lines)
