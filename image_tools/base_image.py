"""
Script: image_tools/base_image.py
What: Pins the golang base image to one architecture-specific manifest digest.
Doing: Drops any local copy of the image, reads the remote manifest list with `skopeo inspect --raw`, and picks the linux/<arch> entry.
Why: A digest never moves, so two builds from the same flags start from the same bytes.
Goal: Return `docker.io/library/golang@sha256:...` for the requested architecture.
"""

from __future__ import annotations

from image_tools.common import ImageToolError, run_cmd, run_json_cmd


BASE_IMAGE = "docker.io/library/golang"


def remove_cached_image(image_ref: str) -> None:
    """Remove every local image matching `image_ref` so the lookup below is never served from cache."""
    output = run_cmd(["buildah", "images", "--quiet", "--filter", f"reference={image_ref}"])
    # The same image id can be listed once per matching name.
    image_ids = list(dict.fromkeys(line.strip() for line in output.splitlines() if line.strip()))
    for image_id in image_ids:
        run_cmd(["buildah", "rmi", "--force", image_id], capture_output=False)


def select_manifest_digest(manifest_list: dict, arch: str, *, os_name: str = "linux") -> str:
    """
    Pick the digest of the manifest built for `os_name`/`arch`.

    `manifest_list` is the raw OCI index (or Docker manifest list) JSON.
    """
    manifests = manifest_list.get("manifests")
    if not isinstance(manifests, list):
        raise ImageToolError("Expected a multi-platform manifest list with a `manifests` array")

    for entry in manifests:
        platform = entry.get("platform") or {}
        if platform.get("os") == os_name and platform.get("architecture") == arch:
            digest = str(entry.get("digest") or "")
            if not digest:
                raise ImageToolError(f"Manifest entry for {os_name}/{arch} has no digest")
            return digest

    raise ImageToolError(f"No {os_name}/{arch} manifest found")


def pinned_reference(image: str, digest: str) -> str:
    return f"{image}@{digest}"


def resolve_base_image_digest(arch: str, go_version: str, *, image: str = BASE_IMAGE) -> str:
    image_ref = f"{image}:{go_version}"
    remove_cached_image(image_ref)

    manifest_list = run_json_cmd(["skopeo", "inspect", "--raw", f"docker://{image_ref}"])
    try:
        digest = select_manifest_digest(manifest_list, arch)
    except ImageToolError as exc:
        raise ImageToolError(f"Failed to resolve {image_ref} for {arch}: {exc}") from exc

    print(f"Resolved base image: {pinned_reference(image, digest)}")
    return digest
