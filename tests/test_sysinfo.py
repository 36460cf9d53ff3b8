"""Tests for host fact collection."""

from unittest.mock import patch

import pytest

from raid_core.sysinfo import (
    SystemInfo,
    collect_system_info,
    format_context,
    parse_cpu_model,
    parse_meminfo,
    parse_os_release,
)

OS_RELEASE = """\
NAME="Ubuntu"
VERSION="22.04.4 LTS (Jammy Jellyfish)"
ID=ubuntu
PRETTY_NAME="Ubuntu 22.04.4 LTS"
"""

MEMINFO = """\
MemTotal:        8048576 kB
MemFree:          512000 kB
MemAvailable:    4024288 kB
"""

CPUINFO = """\
processor	: 0
vendor_id	: GenuineIntel
model name	: Intel(R) Xeon(R) CPU E5-2686 v4 @ 2.30GHz
"""


@pytest.fixture
def fake_root(tmp_path):
    """A filesystem root with the files collect_system_info reads."""
    (tmp_path / "etc").mkdir()
    (tmp_path / "proc").mkdir()
    (tmp_path / "etc/os-release").write_text(OS_RELEASE)
    (tmp_path / "proc/meminfo").write_text(MEMINFO)
    (tmp_path / "proc/cpuinfo").write_text(CPUINFO)
    (tmp_path / "proc/version").write_text("Linux version 5.15.0-101-generic (buildd@lcy02) #111")
    return tmp_path


def test_parse_os_release_prefers_pretty_name():
    assert parse_os_release(OS_RELEASE) == "Ubuntu 22.04.4 LTS"


def test_parse_os_release_falls_back_to_name_and_version():
    assert parse_os_release('NAME="Debian"\nVERSION="12"\n') == "Debian 12"
    assert parse_os_release("NAME=Alpine\n") == "Alpine"


def test_parse_meminfo():
    total, available = parse_meminfo(MEMINFO)

    assert total == "7.7 GiB"
    assert available == "3.8 GiB"


def test_parse_meminfo_without_available_uses_free():
    total, available = parse_meminfo("MemTotal: 1024 kB\nMemFree: 512 kB\n")

    assert total == "1.0 MiB"
    assert available == "512.0 KiB"


def test_parse_cpu_model():
    assert parse_cpu_model(CPUINFO) == "Intel(R) Xeon(R) CPU E5-2686 v4 @ 2.30GHz"
    assert parse_cpu_model("processor : 0\n") is None


def test_collect_from_fake_root(fake_root):
    with patch("raid_core.sysinfo.shutil.which", return_value=None):
        info = collect_system_info(root=fake_root, env={})

    assert info.os == "Ubuntu 22.04.4 LTS"
    assert info.kernel == "5.15.0-101-generic"
    assert info.cpu_model.startswith("Intel(R) Xeon(R)")
    assert info.total_memory == "7.7 GiB"
    assert info.total_disk is not None
    assert info.is_kubernetes is False
    assert info.container_runtime_available is False


def test_kubernetes_detected_from_env(fake_root):
    info = collect_system_info(root=fake_root, env={"KUBERNETES_SERVICE_HOST": "10.0.0.1"})

    assert info.is_kubernetes is True


def test_kubernetes_detected_from_service_account(fake_root):
    token = fake_root / "var/run/secrets/kubernetes.io/serviceaccount/token"
    token.parent.mkdir(parents=True)
    token.write_text("secret")

    info = collect_system_info(root=fake_root, env={})

    assert info.is_kubernetes is True


def test_container_runtime_detected_from_socket(fake_root):
    (fake_root / "var/run").mkdir(parents=True)
    (fake_root / "var/run/docker.sock").touch()

    with patch("raid_core.sysinfo.shutil.which", return_value=None):
        info = collect_system_info(root=fake_root, env={})

    assert info.container_runtime_available is True


def test_missing_files_leave_fields_empty(tmp_path):
    """An empty root still yields a usable SystemInfo."""
    info = collect_system_info(root=tmp_path, env={})

    assert info.os
    assert info.kernel is None
    assert info.total_memory is None


def test_format_context():
    info = SystemInfo(
        os="Ubuntu 22.04.4 LTS",
        kernel="5.15.0",
        cpu_model="Xeon",
        cpu_count=4,
        total_memory="7.7 GiB",
        available_memory="3.8 GiB",
        total_disk="100.0 GiB",
        free_disk="20.0 GiB",
        is_kubernetes=True,
    )

    assert format_context(info).splitlines() == [
        "OS: Ubuntu 22.04.4 LTS",
        "Kernel: 5.15.0",
        "CPU: Xeon (4 cores)",
        "Memory: 3.8 GiB available of 7.7 GiB",
        "Disk (/): 20.0 GiB free of 100.0 GiB",
        "Kubernetes: yes",
        "Container runtime: not found",
    ]
