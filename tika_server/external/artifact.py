import os
import re
import hashlib
import logging
import threading
import requests
from pathlib import Path
from typing import Optional, Union

from tika_server import settings
from tika_server.errors import ArtifactPathError, ChecksumMismatchError, DownloadError

log = logging.getLogger(__name__)

# Version identifiers are opaque strings such as "1.14".
Version = str

MD5_PATTERN = re.compile(r"\b([0-9a-fA-F]{32})\b")


def validate_file_md5(path: Union[str, Path], expected_digest: str) -> bool:
    """
    Checks whether a local file matches an expected MD5 digest.

    A file that cannot be read and a file with the wrong content both return
    False; callers that need to tell them apart must check existence first.

    :param path: The file to hash. It does not have to exist.
    :param expected_digest: Hex digest to compare against, case-insensitive.
    :return: True only if the file was readable and the digests are equal.
    """
    md5 = hashlib.md5()
    try:
        with open(path, "rb") as f:
            for chunk in iter(lambda: f.read(settings.DOWNLOAD_CHUNK_SIZE), b""):
                md5.update(chunk)
    except OSError as e:
        log.debug(f"Could not read '{path}' for checksum validation: {e}")
        return False

    actual = md5.hexdigest()
    if actual != expected_digest.strip().lower():
        log.debug(f"Checksum mismatch for '{path}': expected {expected_digest}, got {actual}.")
        return False
    return True


def resolve_server_url(version: Version) -> str:
    """Returns the remote location of the tika-server jar for a version."""
    base = settings.DOWNLOAD_BASE_URL
    if not base.endswith("/"):
        base += "/"
    return f"{base}tika-server-{version}.jar"


def _http_get(session: Optional[requests.Session], url: str, **kwargs) -> requests.Response:
    headers = {"User-Agent": settings.USER_AGENT}
    getter = session.get if session is not None else requests.get
    return getter(url, headers=headers, timeout=settings.DOWNLOAD_TIMEOUT, **kwargs)


def fetch_expected_md5(version: Version, session: Optional[requests.Session] = None) -> str:
    """
    Fetches the published MD5 digest that sits next to the jar for a version.

    :raises DownloadError: If the digest file cannot be fetched or parsed.
    """
    url = resolve_server_url(version) + ".md5"
    try:
        res = _http_get(session, url)
        res.raise_for_status()
    except requests.RequestException as e:
        log.error(f"Failed to fetch checksum for tika-server {version}: {e}")
        raise DownloadError(f"failed to fetch checksum from {url}: {e}") from e

    match = MD5_PATTERN.search(res.text)
    if not match:
        log.error(f"Could not parse an MD5 digest from {url}")
        raise DownloadError(f"no MD5 digest found at {url}")
    return match.group(1).lower()


def _stream_to_file(res: requests.Response, dest: Path, cancel_event: Optional[threading.Event]) -> None:
    # Content-Length counts encoded bytes; iter_content yields decoded ones.
    total_size = 0 if res.headers.get("content-encoding") else int(res.headers.get("content-length", 0))
    downloaded = 0
    with open(dest, "wb") as f:
        for chunk in res.iter_content(chunk_size=settings.DOWNLOAD_CHUNK_SIZE):
            if cancel_event is not None and cancel_event.is_set():
                raise DownloadError("download cancelled")
            f.write(chunk)
            downloaded += len(chunk)
    if total_size and downloaded != total_size:
        raise DownloadError(f"incomplete download: got {downloaded} of {total_size} bytes")


def download_server(
    version: Version,
    path: Union[str, Path],
    expected_md5: Optional[str] = None,
    cancel_event: Optional[threading.Event] = None,
    session: Optional[requests.Session] = None,
) -> None:
    """
    Makes sure a valid tika-server jar for `version` exists at `path`.

    An existing file whose checksum matches is kept as is. Otherwise the jar is
    downloaded next to `path`, verified, and moved into place.

    :param version: The server version to fetch.
    :param path: Destination of the jar. Parent directories are created.
    :param expected_md5: Known digest of the jar. Fetched from the remote
        `.md5` file when omitted.
    :param cancel_event: When set, the transfer is aborted.
    :param session: Optional requests session to reuse connections.
    :raises ArtifactPathError: If `path` is empty or cannot be written.
    :raises DownloadError: If the transfer fails or the checksum does not match.
    """
    if not str(path):
        raise ArtifactPathError("no destination path for the server jar")
    dest = Path(path)
    if dest.is_dir():
        raise ArtifactPathError(f"destination '{dest}' is a directory")

    if expected_md5 is None:
        expected_md5 = fetch_expected_md5(version, session)

    if dest.exists() and validate_file_md5(dest, expected_md5):
        log.info(f"tika-server {version} already present at '{dest}'.")
        return

    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ArtifactPathError(f"cannot create directory for '{dest}': {e}") from e

    url = resolve_server_url(version)
    part_path = dest.with_name(dest.name + ".part")
    log.info(f"Downloading tika-server {version} from {url}...")
    try:
        with _http_get(session, url, stream=True) as res:
            res.raise_for_status()
            _stream_to_file(res, part_path, cancel_event)
    except requests.RequestException as e:
        part_path.unlink(missing_ok=True)
        log.error(f"Download failed: {e}")
        raise DownloadError(f"failed to download {url}: {e}") from e
    except DownloadError:
        part_path.unlink(missing_ok=True)
        raise
    except OSError as e:
        part_path.unlink(missing_ok=True)
        raise ArtifactPathError(f"cannot write '{part_path}': {e}") from e

    if not validate_file_md5(part_path, expected_md5):
        part_path.unlink(missing_ok=True)
        log.error(f"Downloaded jar from {url} failed checksum validation.")
        raise ChecksumMismatchError(f"checksum mismatch for {url}, expected {expected_md5}")

    os.replace(part_path, dest)
    log.info(f"Successfully downloaded to '{dest}'.")
