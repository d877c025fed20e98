"""
Script: image_tools/installers.py
What: The ordered install steps run against the mounted working container.
Doing: Installs OS packages, bats, conmon, crictl/critest, CNI plugins, runc, and two static config files.
Why: Each step is small and independent, so it is easy to test and read on its own.
Goal: Leave the mounted root filesystem with every dependency the CRI-O test suite needs.
"""

from __future__ import annotations

import dataclasses
import shutil
from collections.abc import Callable
from pathlib import Path

from image_tools.common import ImageToolError, optional_env, run_cmd
from image_tools.container import buildah_run
from image_tools.downloads import download_file, fetch_and_extract


# Only these architectures have upstream release binaries for cri-tools, CNI plugins and runc.
PREBUILT_ARCHES = ("amd64",)

# Pinned versions. Each one can be overridden with the environment variable of the same name.
PINNED_VERSIONS = {
    "CRI_TOOLS_VERSION": "v1.17.0",
    "CNI_PLUGINS_VERSION": "v0.8.5",
    "RUNC_VERSION": "v1.0.0-rc10",
    "CONMON_REF": "v2.0.10",
}

BATS_REPO = "https://github.com/bats-core/bats-core.git"
CONMON_REPO = "https://github.com/containers/conmon.git"

PACKAGES = (
    "apparmor",
    "autoconf",
    "automake",
    "bison",
    "build-essential",
    "conntrack",
    "curl",
    "e2fslibs-dev",
    "gawk",
    "gettext",
    "go-md2man",
    "iproute2",
    "iptables",
    "jq",
    "libaio-dev",
    "libapparmor-dev",
    "libcap-dev",
    "libdevmapper-dev",
    "libdevmapper1.02.1",
    "libfuse-dev",
    "libglib2.0-dev",
    "libgpgme11-dev",
    "libjson-glib-dev",
    "libseccomp-dev",
    "libseccomp2",
    "libsystemd-dev",
    "libtool",
    "libudev-dev",
    "lsof",
    "netcat-openbsd",
    "parallel",
    "pkg-config",
    "protobuf-c-compiler",
    "protobuf-compiler",
    "python3-protobuf",
    "socat",
    "sudo",
    "wget",
)

CRI_TOOLS = ("crictl", "critest")
CNI_PLUGIN_DIR = Path("opt/cni/bin")

# (source relative to the repository root, destination relative to the image root)
STATIC_FILES = (
    (Path("test/policy.json"), Path("etc/containers/policy.json")),
    (Path("test/registries.conf"), Path("etc/containers/registries.conf")),
)


@dataclasses.dataclass(frozen=True)
class InstallContext:
    """What every install step shares: the container handle and its mounted root."""

    container: str
    mount: Path
    arch: str
    repo_root: Path

    def image_path(self, relative: str | Path) -> Path:
        """Map an absolute in-image path (for example `/usr/bin`) onto the mount."""
        return self.mount / str(relative).lstrip("/")


def pinned_version(name: str) -> str:
    return optional_env(name, PINNED_VERSIONS[name])


def has_prebuilt_binaries(arch: str) -> bool:
    return arch in PREBUILT_ARCHES


def resolve_repo_root() -> Path:
    """Use `REPO_ROOT` when set, otherwise the top of the current git checkout."""
    repo_root = optional_env("REPO_ROOT")
    if not repo_root:
        repo_root = run_cmd(["git", "rev-parse", "--show-toplevel"]).strip()
    return Path(repo_root)


def install_packages(ctx: InstallContext) -> None:
    buildah_run(ctx.container, ["apt-get", "update"])
    buildah_run(
        ctx.container,
        ["apt-get", "install", "-y", "--no-install-recommends", *PACKAGES],
    )
    # Package indexes and downloaded .debs only add size to the squashed layer.
    buildah_run(ctx.container, ["apt-get", "clean"])
    buildah_run(ctx.container, ["sh", "-c", "rm -rf /var/lib/apt/lists/*"])


def install_bats(ctx: InstallContext) -> None:
    checkout = ctx.image_path("/tmp/bats")
    shutil.rmtree(checkout, ignore_errors=True)
    run_cmd(
        ["git", "clone", "--depth", "1", optional_env("BATS_REPO", BATS_REPO), str(checkout)],
        capture_output=False,
    )
    buildah_run(ctx.container, ["/tmp/bats/install.sh", "/usr/local"])
    shutil.rmtree(checkout)

    # GNU parallel refuses to run unattended until its citation notice is acknowledged.
    parallel_dir = ctx.image_path("/root/.parallel")
    parallel_dir.mkdir(parents=True, exist_ok=True)
    (parallel_dir / "will-cite").touch()


def install_conmon(ctx: InstallContext) -> None:
    conmon_ref = pinned_version("CONMON_REF")
    checkout = ctx.image_path("/tmp/conmon")
    shutil.rmtree(checkout, ignore_errors=True)
    run_cmd(
        ["git", "clone", optional_env("CONMON_REPO", CONMON_REPO), str(checkout)],
        capture_output=False,
    )
    run_cmd(["git", "checkout", "--detach", conmon_ref], cwd=str(checkout))

    buildah_run(ctx.container, ["make", "-C", "/tmp/conmon"])
    buildah_run(ctx.container, ["make", "-C", "/tmp/conmon", "install", "PREFIX=/usr"])
    shutil.rmtree(checkout)
    print(f"Installed conmon {conmon_ref}")


def cri_tool_url(name: str, version: str, arch: str) -> str:
    return (
        "https://github.com/kubernetes-sigs/cri-tools/releases/download/"
        f"{version}/{name}-{version}-linux-{arch}.tar.gz"
    )


def install_cri_tools(ctx: InstallContext) -> None:
    if not has_prebuilt_binaries(ctx.arch):
        print(f"Skipping {', '.join(CRI_TOOLS)}: no pre-built binaries for {ctx.arch}")
        return

    version = pinned_version("CRI_TOOLS_VERSION")
    bin_dir = ctx.image_path("/usr/local/bin")
    for name in CRI_TOOLS:
        fetch_and_extract(cri_tool_url(name, version, ctx.arch), bin_dir)
        buildah_run(ctx.container, ["chown", "root:root", f"/usr/local/bin/{name}"])
        buildah_run(ctx.container, [name, "--version"])


def cni_plugins_url(version: str, arch: str) -> str:
    return (
        "https://github.com/containernetworking/plugins/releases/download/"
        f"{version}/cni-plugins-linux-{arch}-{version}.tgz"
    )


def install_cni_plugins(ctx: InstallContext) -> None:
    if not has_prebuilt_binaries(ctx.arch):
        print(f"Skipping CNI plugins: no pre-built binaries for {ctx.arch}")
        return

    version = pinned_version("CNI_PLUGINS_VERSION")
    plugin_dir = ctx.image_path(CNI_PLUGIN_DIR)
    names = fetch_and_extract(cni_plugins_url(version, ctx.arch), plugin_dir)
    print(f"Installed {len(names)} CNI plugin entries {version} into /{CNI_PLUGIN_DIR}")


def runc_url(version: str, arch: str) -> str:
    return f"https://github.com/opencontainers/runc/releases/download/{version}/runc.{arch}"


def install_runc(ctx: InstallContext) -> None:
    if not has_prebuilt_binaries(ctx.arch):
        print(f"Skipping runc: no pre-built binary for {ctx.arch}")
        return

    runc_path = ctx.image_path("/usr/bin/runc")
    download_file(runc_url(pinned_version("RUNC_VERSION"), ctx.arch), runc_path)
    runc_path.chmod(0o755)
    buildah_run(ctx.container, ["runc", "--version"])


def install_static_files(ctx: InstallContext) -> None:
    for source, destination in STATIC_FILES:
        source_path = ctx.repo_root / source
        if not source_path.is_file():
            raise ImageToolError(f"Missing file to copy into image: {source_path}")
        destination_path = ctx.image_path(destination)
        destination_path.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source_path, destination_path)
        print(f"Copied {source} to /{destination}")


# Later steps may rely on directories created by earlier ones.
INSTALL_STEPS: tuple[tuple[str, Callable[[InstallContext], None]], ...] = (
    ("packages", install_packages),
    ("bats", install_bats),
    ("conmon", install_conmon),
    ("cri-tools", install_cri_tools),
    ("cni-plugins", install_cni_plugins),
    ("runc", install_runc),
    ("static-files", install_static_files),
)


def run_install_steps(ctx: InstallContext) -> None:
    for name, step in INSTALL_STEPS:
        print(f"==> Installing {name}")
        step(ctx)
