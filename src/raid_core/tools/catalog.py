"""
Default diagnostic tool catalogue.

Every tool here is a thin, read-only wrapper around a host command
(kubectl, journalctl, systemctl, ps, df, ...). Commands are built as argv
lists from validated arguments and executed without a shell, so argument
values can never inject extra commands.

Tools are discoverable via build_default_registry(), which is what the CLI
hands to the ToolDispatcher and the AI provider.
"""

import shutil
from typing import Any

from raid_core.tools.commands import ArgvBuilder, command_executor
from raid_core.tools.registry import ParamDef, ToolDefinition, ToolRegistry

NAMESPACE = ParamDef(
    type="str",
    description="Kubernetes namespace (default: current context namespace)",
    required=False,
)
LINES = ParamDef(
    type="int",
    description="Number of lines to return (1-1000, default 50)",
    required=False,
    default=50,
    minimum=1,
    maximum=1000,
)


def _namespaced(argv: list[str], arguments: dict[str, Any]) -> list[str]:
    namespace = arguments.get("namespace")
    if namespace:
        argv += ["-n", namespace]
    return argv


def _container_runtime() -> str:
    """Prefer docker, fall back to podman, then crictl."""
    for binary in ("docker", "podman", "crictl"):
        if shutil.which(binary):
            return binary
    return "docker"


_COMMAND_TOOLS: list[tuple[ToolDefinition, ArgvBuilder]] = [
    # Kubernetes
    (
        ToolDefinition(
            name="kubectl_get_pods",
            description="List pods with status, restarts, node and IP (kubectl get pods -o wide).",
            parameters={"namespace": NAMESPACE},
            category="kubernetes",
        ),
        lambda a: _namespaced(["kubectl", "get", "pods", "--output=wide"], a),
    ),
    (
        ToolDefinition(
            name="kubectl_describe_pod",
            description="Describe one pod: events, container states, probes, volumes.",
            parameters={
                "pod": ParamDef(type="str", description="Pod name"),
                "namespace": NAMESPACE,
            },
            category="kubernetes",
        ),
        lambda a: _namespaced(["kubectl", "describe", "pod", a["pod"]], a),
    ),
    (
        ToolDefinition(
            name="kubectl_logs",
            description="Recent logs of a pod (optionally of the previous container instance).",
            parameters={
                "pod": ParamDef(type="str", description="Pod name"),
                "namespace": NAMESPACE,
                "lines": LINES,
                "previous": ParamDef(
                    type="bool",
                    description="Show logs of the previous (crashed) container",
                    required=False,
                    default=False,
                ),
            },
            category="kubernetes",
        ),
        lambda a: _namespaced(
            ["kubectl", "logs", a["pod"], f"--tail={a['lines']}"]
            + (["--previous"] if a.get("previous") else []),
            a,
        ),
    ),
    (
        ToolDefinition(
            name="kubectl_get_events",
            description="Cluster events sorted by time; shows scheduling, pull and probe failures.",
            parameters={"namespace": NAMESPACE},
            category="kubernetes",
        ),
        lambda a: _namespaced(
            ["kubectl", "get", "events", "--sort-by=.lastTimestamp"], a
        ),
    ),
    (
        ToolDefinition(
            name="kubectl_get_nodes",
            description="List nodes with readiness, roles, version and addresses.",
            category="kubernetes",
        ),
        lambda a: ["kubectl", "get", "nodes", "--output=wide"],
    ),
    # systemd / journal
    (
        ToolDefinition(
            name="journalctl_recent",
            description="Most recent system journal entries.",
            parameters={"lines": LINES},
            category="journal",
        ),
        lambda a: ["journalctl", "--no-pager", "-n", str(a["lines"])],
    ),
    (
        ToolDefinition(
            name="journalctl_service",
            description="Recent journal entries for one systemd unit.",
            parameters={
                "service": ParamDef(type="str", description="Unit name, e.g. nginx.service"),
                "lines": LINES,
            },
            category="journal",
        ),
        lambda a: ["journalctl", "-u", a["service"], "--no-pager", "-n", str(a["lines"])],
    ),
    (
        ToolDefinition(
            name="journalctl_errors",
            description="Journal entries with priority err or worse since the last boot.",
            parameters={"lines": LINES},
            category="journal",
        ),
        lambda a: ["journalctl", "-p", "err", "-b", "--no-pager", "-n", str(a["lines"])],
    ),
    (
        ToolDefinition(
            name="systemctl_status",
            description="Status of one systemd unit, including its latest log lines.",
            parameters={"service": ParamDef(type="str", description="Unit name")},
            category="systemd",
        ),
        lambda a: ["systemctl", "status", a["service"], "--no-pager"],
    ),
    (
        ToolDefinition(
            name="systemctl_failed",
            description="List systemd units in the failed state.",
            category="systemd",
        ),
        lambda a: ["systemctl", "--failed", "--no-pager"],
    ),
    # Containers
    (
        ToolDefinition(
            name="container_list",
            description="List containers (running and stopped) of the local container runtime.",
            category="containers",
        ),
        lambda a: [_container_runtime(), "ps", "-a"],
    ),
    # Processes and resources
    (
        ToolDefinition(
            name="ps_aux",
            description="Process list sorted by CPU usage.",
            category="system",
        ),
        lambda a: ["ps", "aux", "--sort=-%cpu"],
    ),
    (
        ToolDefinition(
            name="disk_usage",
            description="Filesystem disk usage (df -h).",
            category="system",
        ),
        lambda a: ["df", "-h"],
    ),
    (
        ToolDefinition(
            name="memory_usage",
            description="Memory and swap usage (free -h).",
            category="system",
        ),
        lambda a: ["free", "-h"],
    ),
    (
        ToolDefinition(
            name="cgroups",
            description="Kernel cgroup controllers (/proc/cgroups) and this process's cgroup.",
            category="cgroups",
        ),
        lambda a: ["cat", "/proc/cgroups", "/proc/self/cgroup"],
    ),
    (
        ToolDefinition(
            name="dmesg_errors",
            description="Kernel ring buffer messages at level err and above (OOM kills, I/O errors).",
            category="system",
        ),
        lambda a: ["dmesg", "--level=emerg,alert,crit,err", "--ctime"],
    ),
    # Network
    (
        ToolDefinition(
            name="ip_addr",
            description="Network interfaces and their addresses.",
            category="network",
        ),
        lambda a: ["ip", "addr"],
    ),
    (
        ToolDefinition(
            name="listening_sockets",
            description="Listening TCP/UDP sockets with owning processes (ss -tulpn).",
            category="network",
        ),
        lambda a: ["ss", "-tulpn"],
    ),
]


def build_default_registry() -> ToolRegistry:
    """
    Build a registry holding the default diagnostic tools.

    Returns:
        A new ToolRegistry; callers may register additional tools on it
    """
    registry = ToolRegistry()
    for definition, build_argv in _COMMAND_TOOLS:
        registry.register(definition, command_executor(build_argv))
    return registry

