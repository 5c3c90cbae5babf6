"""Artifact discovery, classification, versioning and output naming."""

from vioinject.artifacts.detector import ArtifactDetector
from vioinject.artifacts.naming import (
    compute_output_name,
    compute_volume_label,
    extract_version_token,
)
from vioinject.artifacts.version import (
    compare_versions,
    parse_version,
    release_prefix,
    same_release,
)


__all__ = [
    "ArtifactDetector",
    "compare_versions",
    "compute_output_name",
    "compute_volume_label",
    "extract_version_token",
    "parse_version",
    "release_prefix",
    "same_release",
]
