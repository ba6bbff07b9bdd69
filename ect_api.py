#!/usr/bin/env python3
"""
ECT (Election Commission of Thailand) feed client.

Fetches the four result feeds concurrently, validates each with its schema
and hands them to the lookup builder. Fetching is join-all: one failed or
malformed feed fails the whole fetch with SourceFetchError.
fetch_sources_with_status() is the per-source alternative used by the
degraded join.

Feeds can also be read from a local snapshot directory (see
snapshot_sources) instead of the network.
"""

import hashlib
import json
import shutil
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

import requests
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type
)

from config import Config, get_config
from ect_schemas import (
    PARSERS,
    MpCandidate,
    PartyOverview,
    StatsCons,
    StatsReferendum,
)
from election_types import RegistryRecord
from logging_config import get_logger

logger = get_logger(__name__)


# Feed name -> (base, file name, live)
ECT_FEEDS = {
    "stats_cons": ("stats", "stats_cons.json", True),
    "stats_referendum": ("stats", "stats_referendum.json", True),
    "mp_candidates": ("refs", "info_mp_candidate.json", False),
    "party_overview": ("refs", "info_party_overview.json", False),
    "constituencies": ("refs", "info_constituency.json", False),
}

# The four feeds the election lookups are built from
RESULT_SOURCES = ("stats_cons", "stats_referendum", "mp_candidates", "party_overview")

MAX_FETCH_WORKERS = 4

RETRYABLE_ERRORS = (requests.ConnectionError, requests.Timeout, requests.HTTPError)


class SourceFetchError(RuntimeError):
    """One or more ECT feeds could not be fetched or parsed."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        super().__init__(message)


@dataclass(frozen=True)
class Endpoint:
    name: str
    url: str
    live: bool  # live results get the short cache window


def get_endpoints(config: Optional[Config] = None) -> dict[str, Endpoint]:
    """Build feed URLs from the configured base URLs."""
    config = config or get_config()
    bases = {"stats": config.stats_base_url, "refs": config.refs_base_url}
    return {
        name: Endpoint(name=name, url=f"{bases[base]}/{filename}", live=live)
        for name, (base, filename, live) in ECT_FEEDS.items()
    }


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    retry=retry_if_exception_type(RETRYABLE_ERRORS),
    reraise=True
)
def fetch_json(url: str, timeout: float = 30) -> Any:
    """Fetch and decode a JSON document, retrying transient HTTP failures."""
    logger.info(f"Fetching {url.rsplit('/', 1)[-1]}")
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return response.json()


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=8),
    retry=retry_if_exception_type(RETRYABLE_ERRORS),
    reraise=True
)
def _download(url: str, timeout: float = 60) -> bytes:
    response = requests.get(url, timeout=timeout)
    response.raise_for_status()
    return response.content


class SourceCache:
    """
    In-process response cache with a freshness window per lookup.

    Thread-safe: fetch workers share one instance.

    Example:
        cache = SourceCache()
        payload = cache.get(url, max_age=300)
        if payload is None:
            payload = fetch_json(url)
            cache.put(url, payload)
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[float, Any]] = {}

    def get(self, key: str, max_age: float) -> Optional[Any]:
        """Return the cached payload if it is younger than max_age seconds."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, payload = entry
            if self._clock() - stored_at >= max_age:
                return None
            return payload

    def put(self, key: str, payload: Any) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), payload)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Shared by all fetches in this process
response_cache = SourceCache()


def load_source(name: str, config: Optional[Config] = None, cache: Optional[SourceCache] = None) -> Any:
    """
    Load one raw feed payload.

    Reads <snapshot_dir>/<name>.json when a snapshot directory is configured,
    otherwise fetches over HTTP through the response cache.
    """
    config = config or get_config()
    cache = cache if cache is not None else response_cache

    if config.snapshot_dir:
        path = Path(config.snapshot_dir) / f"{name}.json"
        logger.info(f"Reading {name} from snapshot {path}")
        with open(path, encoding="utf-8") as f:
            return json.load(f)

    endpoint = get_endpoints(config)[name]
    window = config.live_cache_seconds if endpoint.live else config.static_cache_seconds
    payload = cache.get(endpoint.url, window)
    if payload is not None:
        logger.debug(f"Cache hit for {name}")
        return payload

    payload = fetch_json(endpoint.url, timeout=config.request_timeout)
    cache.put(endpoint.url, payload)
    return payload


def fetch_source(name: str, config: Optional[Config] = None, cache: Optional[SourceCache] = None) -> Any:
    """Load and validate one feed."""
    payload = load_source(name, config, cache)
    parsed = PARSERS[name](payload)
    logger.debug(f"Parsed {name}")
    return parsed


@dataclass(frozen=True)
class ECTSources:
    """The four validated result feeds."""
    stats_cons: StatsCons
    stats_referendum: StatsReferendum
    mp_candidates: list[MpCandidate]
    party_overview: list[PartyOverview]


@dataclass(frozen=True)
class FetchResult:
    """Outcome of fetching one feed."""
    name: str
    payload: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# Errors a feed fetch can end with: requests errors and file errors are
# OSError, JSON decode and schema errors are ValueError
FETCH_ERRORS = (OSError, ValueError)


def _worker_count(config: Config) -> int:
    return max(1, min(config.max_workers, MAX_FETCH_WORKERS))


def fetch_sources(config: Optional[Config] = None, cache: Optional[SourceCache] = None) -> ECTSources:
    """
    Fetch and validate the four result feeds concurrently.

    Raises:
        SourceFetchError: If any feed fails to download or validate, or the
            whole fetch exceeds config.pipeline_timeout. Pending fetches are
            cancelled.
    """
    config = config or get_config()
    results: dict[str, Any] = {}

    executor = ThreadPoolExecutor(max_workers=_worker_count(config))
    future_to_name = {
        executor.submit(fetch_source, name, config, cache): name
        for name in RESULT_SOURCES
    }
    try:
        for future in as_completed(future_to_name, timeout=config.pipeline_timeout):
            name = future_to_name[future]
            try:
                results[name] = future.result()
            except FETCH_ERRORS as e:
                raise SourceFetchError(f"{name}: {e}", source=name) from e
    except FuturesTimeout as e:
        pending = sorted(n for f, n in future_to_name.items() if not f.done())
        raise SourceFetchError(
            f"Timed out after {config.pipeline_timeout}s waiting for {', '.join(pending)}"
        ) from e
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    logger.info(f"Fetched {len(results)} ECT feeds")
    return ECTSources(**results)


def fetch_sources_with_status(
    config: Optional[Config] = None,
    cache: Optional[SourceCache] = None,
) -> dict[str, FetchResult]:
    """
    Fetch the four result feeds, reporting each one's outcome separately.

    Never raises for a feed failure; failed feeds carry an error message.
    """
    config = config or get_config()
    results: dict[str, FetchResult] = {}

    executor = ThreadPoolExecutor(max_workers=_worker_count(config))
    future_to_name = {
        executor.submit(fetch_source, name, config, cache): name
        for name in RESULT_SOURCES
    }
    try:
        for future in as_completed(future_to_name, timeout=config.pipeline_timeout):
            name = future_to_name[future]
            try:
                results[name] = FetchResult(name=name, payload=future.result())
            except FETCH_ERRORS as e:
                logger.error(f"Feed {name} failed: {e}")
                results[name] = FetchResult(name=name, error=str(e))
    except FuturesTimeout:
        for future, name in future_to_name.items():
            if name not in results:
                logger.error(f"Feed {name} timed out after {config.pipeline_timeout}s")
                results[name] = FetchResult(name=name, error=f"timed out after {config.pipeline_timeout}s")
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    return {name: results[name] for name in RESULT_SOURCES}


def fetch_registry(config: Optional[Config] = None, cache: Optional[SourceCache] = None) -> list[RegistryRecord]:
    """
    Fetch the constituency registry.

    Raises:
        SourceFetchError: If the registry cannot be fetched or validated
    """
    try:
        records = fetch_source("constituencies", config, cache)
    except FETCH_ERRORS as e:
        raise SourceFetchError(f"constituencies: {e}", source="constituencies") from e
    logger.info(f"Fetched {len(records)} registry records")
    return records


def _json_shape(data: bytes) -> dict:
    parsed = json.loads(data.decode("utf-8"))
    if isinstance(parsed, list):
        return {"json_type": "list", "json_len": len(parsed)}
    if isinstance(parsed, dict):
        return {"json_type": "dict", "json_keys": sorted(parsed.keys())[:20]}
    return {"json_type": type(parsed).__name__}


def snapshot_sources(base_dir: Union[str, Path], config: Optional[Config] = None) -> Path:
    """
    Download every ECT feed into a timestamped snapshot directory.

    Files are written as <name>.json next to a manifest.json (url, size,
    sha256, JSON shape). The snapshot is also copied to
    <base_dir>/ect_snapshot_latest, which can be used as SNAPSHOT_DIR.

    Returns:
        Path of the new snapshot directory
    """
    config = config or get_config()
    base_dir = Path(base_dir)
    ts = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%SZ")
    out_dir = base_dir / f"ect_snapshot_{ts}"
    out_dir.mkdir(parents=True, exist_ok=False)

    manifest: dict = {
        "snapshot_utc": datetime.now(timezone.utc).isoformat(),
        "files": [],
    }

    for name, endpoint in get_endpoints(config).items():
        logger.info(f"Downloading [{name}] {endpoint.url}")
        data = _download(endpoint.url, timeout=config.request_timeout)
        rel = f"{name}.json"
        (out_dir / rel).write_bytes(data)

        entry = {
            "key": name,
            "url": endpoint.url,
            "path": rel,
            "bytes": len(data),
            "sha256": hashlib.sha256(data).hexdigest(),
        }
        entry.update(_json_shape(data))
        manifest["files"].append(entry)

    manifest_path = out_dir / "manifest.json"
    manifest_path.write_text(json.dumps(manifest, ensure_ascii=False, indent=2), encoding="utf-8")

    latest = base_dir / "ect_snapshot_latest"
    if latest.is_symlink() or latest.is_file():
        latest.unlink()
    elif latest.exists():
        shutil.rmtree(latest)
    shutil.copytree(out_dir, latest)

    logger.info(f"Snapshot saved to {out_dir} (latest copy: {latest})")
    return out_dir
