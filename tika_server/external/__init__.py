"""
This module handles the tika-server jar artifact.
It exposes checksum validation and the versioned download.
"""

from .artifact import Version, download_server, fetch_expected_md5, resolve_server_url, validate_file_md5

__all__ = ["Version", "download_server", "fetch_expected_md5", "resolve_server_url", "validate_file_md5"]
