"""
Reference dataset management.

Handles downloading, caching, and updating the reference CSV files used to compare
extraction results, from the repository: https://github.com/fityannugroho/idn-area-data
"""

import json
import os
import shutil
import zipfile
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import httpx
from tqdm import tqdm

from idn_area_extractor.config import Entity

GITHUB_API_BASE = "https://api.github.com"
REPO_OWNER = "fityannugroho"
REPO_NAME = "idn-area-data"
CACHE_VALIDITY_DAYS = 7
DEFAULT_TIMEOUT = 30.0

REFERENCE_FILENAMES: dict[Entity, str] = {
    "regency": "regencies.csv",
    "district": "districts.csv",
    "island": "islands.csv",
    "village": "villages.csv",
}


class RemoteError(Exception):
    """Base exception for remote operations."""


class NetworkError(RemoteError):
    """Network-related errors."""


class CacheError(RemoteError):
    """Cache-related errors."""


def _get_cache_root() -> Path:
    return Path.home() / ".cache" / "idn-area-extractor"


def _get_cache_directory() -> Path:
    """
    Get the cache directory of the reference data, creating it if needed.

    Returns:
        Path to ~/.cache/idn-area-extractor/reference/
    """
    cache_dir = _get_cache_root() / "reference"
    cache_dir.mkdir(parents=True, exist_ok=True)
    return cache_dir


def _get_cache_metadata_path() -> Path:
    return _get_cache_root() / "metadata.json"


def _load_cache_metadata() -> dict[str, str] | None:
    """
    Load cache metadata (version, release_date, download_date).

    Returns None if the metadata file doesn't exist or is invalid.
    """
    metadata_path = _get_cache_metadata_path()
    if not metadata_path.exists():
        return None

    try:
        with metadata_path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, IOError):
        return None


def _save_cache_metadata(version: str, release_date: str) -> None:
    metadata = {
        "version": version,
        "release_date": release_date,
        "download_date": datetime.now().isoformat(),
    }

    metadata_path = _get_cache_metadata_path()
    metadata_path.parent.mkdir(parents=True, exist_ok=True)

    with metadata_path.open("w", encoding="utf-8") as f:
        json.dump(metadata, f, indent=2)


def _is_cache_valid() -> bool:
    """Check if the cache holds CSV files downloaded less than CACHE_VALIDITY_DAYS ago."""
    cache_dir = _get_cache_directory()
    metadata = _load_cache_metadata()

    if not list(cache_dir.glob("*.csv")) or not metadata:
        return False

    try:
        download_date = datetime.fromisoformat(metadata["download_date"])
        return datetime.now() - download_date < timedelta(days=CACHE_VALIDITY_DAYS)
    except (KeyError, ValueError):
        return False


def _get_github_headers() -> dict[str, str]:
    """Headers for GitHub API requests; GITHUB_TOKEN is used when set."""
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }

    github_token = os.environ.get("GITHUB_TOKEN")
    if github_token:
        headers["Authorization"] = f"Bearer {github_token}"

    return headers


def _get_latest_release_info() -> dict[str, Any]:
    """
    Fetch latest release information from GitHub API.

    Returns:
        Dictionary containing: tag_name, published_at, zipball_url

    Raises:
        NetworkError: If unable to fetch release info
    """
    url = f"{GITHUB_API_BASE}/repos/{REPO_OWNER}/{REPO_NAME}/releases/latest"

    try:
        with httpx.Client(timeout=DEFAULT_TIMEOUT) as client:
            response = client.get(url, headers=_get_github_headers(), follow_redirects=True)
            response.raise_for_status()
            data = response.json()

            return {
                "tag_name": data["tag_name"],
                "published_at": data["published_at"],
                "zipball_url": data["zipball_url"],
            }
    except httpx.HTTPError as e:
        raise NetworkError(f"Failed to fetch latest release info: {e}")
    except (KeyError, json.JSONDecodeError) as e:
        raise NetworkError(f"Invalid response from GitHub API: {e}")


def _download_and_extract_zipball(
    url: str, target_dir: Path, *, show_progress: bool = True
) -> None:
    """
    Download a release zipball and extract its data/*.csv files into target_dir.

    Raises:
        NetworkError: If download fails
        CacheError: If extraction fails
    """
    temp_zip = target_dir.parent / "temp_download.zip"

    try:
        with httpx.stream(
            "GET",
            url,
            headers=_get_github_headers(),
            timeout=DEFAULT_TIMEOUT,
            follow_redirects=True,
        ) as response:
            response.raise_for_status()
            total_size = int(response.headers.get("content-length", 0))

            with (
                temp_zip.open("wb") as f,
                tqdm(
                    total=total_size,
                    unit="B",
                    unit_scale=True,
                    desc="Downloading reference data",
                    colour="cyan",
                    disable=not show_progress or total_size <= 0,
                ) as pbar,
            ):
                for chunk in response.iter_bytes(chunk_size=8192):
                    f.write(chunk)
                    pbar.update(len(chunk))

    except httpx.HTTPError as e:
        if temp_zip.exists():
            temp_zip.unlink()
        raise NetworkError(f"Failed to download zipball: {e}")

    try:
        with zipfile.ZipFile(temp_zip, "r") as zf:
            # GitHub zipballs have structure: {repo}-{sha}/data/*.csv
            data_files = [
                name for name in zf.namelist() if "/data/" in name and name.endswith(".csv")
            ]

            if not data_files:
                raise CacheError("No CSV files found in data/ folder of the release archive")

            if target_dir.exists():
                shutil.rmtree(target_dir)
            target_dir.mkdir(parents=True, exist_ok=True)

            for file_path in data_files:
                filename = Path(file_path).name
                with zf.open(file_path) as source, (target_dir / filename).open("wb") as target:
                    shutil.copyfileobj(source, target)

    except zipfile.BadZipFile as e:
        raise CacheError(f"Invalid zip file: {e}")
    except (IOError, OSError) as e:
        raise CacheError(f"Failed to extract files: {e}")
    finally:
        if temp_zip.exists():
            temp_zip.unlink()


def get_cached_version() -> str | None:
    """Version of the cached reference data (e.g. "v4.0.0"), or None without cache."""
    metadata = _load_cache_metadata()
    return metadata["version"] if metadata else None


def show_version_info() -> None:
    """Display cached reference data version information."""
    metadata = _load_cache_metadata()

    if not metadata:
        print("No cached reference data found.")
        print("Run extract with --compare to download it.")
        return

    print("Cached Reference Data Information:")
    print(f"  Version: {metadata.get('version', 'unknown')}")
    print(f"  Release Date: {metadata.get('release_date', 'unknown')}")
    print(f"  Downloaded: {metadata.get('download_date', 'unknown')}")

    try:
        download_date = datetime.fromisoformat(metadata["download_date"])
        days_remaining = CACHE_VALIDITY_DAYS - (datetime.now() - download_date).days

        if days_remaining > 0:
            print(f"  Status: Valid (expires in {days_remaining} days)")
        else:
            print("  Status: Outdated (will update on next use)")
    except (KeyError, ValueError):
        print("  Status: Unknown")

    print(f"  Cache Location: {_get_cache_directory()}")


def get_default_reference_path(
    *, refresh_cache: bool = False, show_progress: bool = True
) -> Path:
    """
    Get path to the reference data directory, downloading if necessary.

    Args:
        refresh_cache: If True, force re-download even if cache is valid
        show_progress: Whether to show the download progress bar

    Returns:
        Path to directory containing the reference CSV files

    Raises:
        RemoteError: If unable to get the reference data
    """
    cache_dir = _get_cache_directory()

    if not refresh_cache and _is_cache_valid():
        return cache_dir

    try:
        release_info = _get_latest_release_info()

        if not refresh_cache:
            metadata = _load_cache_metadata()
            if metadata and metadata.get("version") == release_info["tag_name"]:
                # Latest version already cached, only refresh the download timestamp
                _save_cache_metadata(release_info["tag_name"], release_info["published_at"])
                return cache_dir

        _download_and_extract_zipball(
            release_info["zipball_url"],
            cache_dir,
            show_progress=show_progress,
        )
        _save_cache_metadata(release_info["tag_name"], release_info["published_at"])

        return cache_dir

    except NetworkError as e:
        if cache_dir.exists() and list(cache_dir.glob("*.csv")):
            print(f"Warning: {e}")
            print(f"Using cached reference data from: {cache_dir}")
            return cache_dir

        raise RemoteError(
            f"Unable to download reference data: {e}\n"
            "No cached data available. Please check your internet connection or "
            "use --reference to specify a local directory."
        )

    except CacheError as e:
        raise RemoteError(f"Failed to prepare reference cache: {e}")
