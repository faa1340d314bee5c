"""Generated hosting configuration."""

from .bundle import build_config_bundle, bundle_filename, bundle_files
from .hosting import placeholder_files, secret_name, synthesize

__all__ = [
    "build_config_bundle",
    "bundle_filename",
    "bundle_files",
    "placeholder_files",
    "secret_name",
    "synthesize",
]
