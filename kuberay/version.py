"""Release version of the command line and a summary of the host it runs on."""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass

VERSION = "0.1.0"
PRE_RELEASE_ID = "dev"
GIT_COMMIT = ""
BUILD_DATE = ""

EXTRA_SEP = "-"

_PLATFORMS = {
    "win32": "windows",
    "cygwin": "windows",
    "darwin": "darwin",
    "linux": "linux",
}


@dataclass(frozen=True)
class BuildMetadata:
    """Short commit hash and build date."""

    build_date: str = ""
    git_commit: str = ""


@dataclass(frozen=True)
class VersionInfo:
    version: str
    pre_release_id: str
    metadata: BuildMetadata


@dataclass(frozen=True)
class Info:
    kuberay_version: str
    os: str


def get_version_info() -> VersionInfo:
    return VersionInfo(
        version=VERSION,
        pre_release_id=PRE_RELEASE_ID,
        metadata=BuildMetadata(build_date=BUILD_DATE, git_commit=GIT_COMMIT),
    )


def is_release_candidate(pre_release_id: str) -> bool:
    return pre_release_id.startswith("rc.")


def get_version(
    version: str = VERSION,
    pre_release_id: str = PRE_RELEASE_ID,
    git_commit: str = GIT_COMMIT,
    build_date: str = BUILD_DATE,
) -> str:
    """Return the full version string, with build metadata for snapshot builds."""
    if not pre_release_id:
        return version
    with_pre_release = f"{version}{EXTRA_SEP}{pre_release_id}"
    if is_release_candidate(pre_release_id) or not git_commit or not build_date:
        return with_pre_release
    return f"{with_pre_release}+{git_commit}.{build_date}"


def version_json() -> str:
    info = get_version_info()
    return json.dumps(
        {
            "Version": info.version,
            "PreReleaseID": info.pre_release_id,
            "Metadata": {
                "BuildDate": info.metadata.build_date,
                "GitCommit": info.metadata.git_commit,
            },
        },
        separators=(",", ":"),
    )


def _operating_system() -> str:
    platform = sys.platform
    for prefix, name in _PLATFORMS.items():
        if platform.startswith(prefix):
            return name
    return platform


def get_info() -> Info:
    return Info(kuberay_version=get_version(), os=_operating_system())


def info_json() -> str:
    info = get_info()
    return json.dumps({"KubeRayVersion": info.kuberay_version, "OS": info.os}, separators=(",", ":"))