"""
Asset embedding for self-contained exports.

Fetches slide images (remote URLs or local files) and turns them into
base64 data URLs or raw bytes. A failed fetch never fails a render: it is
logged as a warning and reported back to the caller as an empty result.

Where an asset may come from is restricted:
- Local files are read only below ``local_root``; without one, local reads
  are refused
- Remote hosts must be in ``allowed_hosts`` when it is set; otherwise any
  host is accepted except loopback, private and link-local addresses
- Every redirect hop is checked against the same host rules
"""

import base64
import ipaddress
import logging
import mimetypes
import threading
from collections import OrderedDict
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

import httpx

from sprint_export.errors import AssetEmbedError


logger = logging.getLogger(__name__)


DEFAULT_TIMEOUT = 10.0
MAX_ASSET_BYTES = 10 * 1024 * 1024
MAX_CACHE_ENTRIES = 100
MAX_CACHE_BYTES = 50 * 1024 * 1024
MAX_REDIRECTS = 5


@dataclass(frozen=True)
class EmbeddedAsset:
    """A fetched asset."""
    url: str
    content: bytes
    mime_type: str

    @property
    def data_url(self) -> str:
        encoded = base64.b64encode(self.content).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    @property
    def size(self) -> int:
        return len(self.content)


class AssetEmbedder:
    """Fetches and caches assets for embedding.

    The cache is bounded by entry count and total bytes and evicts the least
    recently used asset first.

    Example:
        >>> embedder = AssetEmbedder(allowed_hosts=["cdn.example.com"])
        >>> data_url = await embedder.embed_image("https://cdn.example.com/logo.png")
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_asset_bytes: int = MAX_ASSET_BYTES,
        local_root: Optional[Union[str, Path]] = None,
        allowed_hosts: Optional[Iterable[str]] = None,
        max_cache_entries: int = MAX_CACHE_ENTRIES,
        max_cache_bytes: int = MAX_CACHE_BYTES,
    ):
        """Initialize the embedder.

        Args:
            client: Optional shared AsyncClient (one is created per fetch if omitted)
            timeout: Per-request timeout in seconds
            max_asset_bytes: Largest asset that will be embedded
            local_root: Directory local images may be read from; None refuses local reads
            allowed_hosts: Remote hosts images may be fetched from; None accepts
                any public host, an empty list refuses remote fetches
            max_cache_entries: Most assets kept in memory
            max_cache_bytes: Most asset bytes kept in memory
        """
        self._client = client
        self.timeout = timeout
        self.max_asset_bytes = max_asset_bytes
        self.local_root = Path(local_root).resolve() if local_root else None
        self.allowed_hosts = (
            frozenset(host.strip().lower() for host in allowed_hosts if host.strip())
            if allowed_hosts is not None else None
        )
        self.max_cache_entries = max_cache_entries
        self.max_cache_bytes = max_cache_bytes
        self._assets: "OrderedDict[str, EmbeddedAsset]" = OrderedDict()
        self._cached_bytes = 0
        self._lock = threading.Lock()

    async def fetch(self, url: str) -> EmbeddedAsset:
        """Fetch an asset, using the cache when possible.

        Raises:
            AssetEmbedError: If the asset cannot be loaded or its source is not allowed
        """
        with self._lock:
            cached = self._assets.get(url)
            if cached is not None:
                self._assets.move_to_end(url)
                return cached

        if url.startswith("data:"):
            asset = self._decode_data_url(url)
        elif url.startswith(("http://", "https://")):
            asset = await self._fetch_remote(url)
        else:
            asset = self._read_local(url)

        if asset.size > self.max_asset_bytes:
            raise AssetEmbedError(
                f"Asset too large to embed: {asset.size} bytes", url=url
            )

        self._remember(url, asset)
        logger.debug(f"Embedded image: {url} ({asset.size} bytes)")
        return asset

    async def embed_image(self, url: str) -> str:
        """Return a base64 data URL, or "" if the image cannot be loaded."""
        asset = await self.try_fetch(url)
        return asset.data_url if asset else ""

    async def try_fetch(self, url: str) -> Optional[EmbeddedAsset]:
        """Fetch an asset, logging and returning None on failure."""
        try:
            return await self.fetch(url)
        except AssetEmbedError as e:
            logger.warning(f"Failed to embed image: {url}: {e}")
            return None

    def clear_cache(self) -> None:
        with self._lock:
            self._assets.clear()
            self._cached_bytes = 0
        logger.info("Asset cache cleared")

    def get_cache_stats(self) -> Dict[str, int]:
        with self._lock:
            return {"size": len(self._assets), "total_size": self._cached_bytes}

    def _remember(self, url: str, asset: EmbeddedAsset) -> None:
        if asset.size > self.max_cache_bytes:
            return
        with self._lock:
            previous = self._assets.pop(url, None)
            if previous is not None:
                self._cached_bytes -= previous.size
            self._assets[url] = asset
            self._cached_bytes += asset.size
            while (
                len(self._assets) > self.max_cache_entries
                or self._cached_bytes > self.max_cache_bytes
            ):
                _, evicted = self._assets.popitem(last=False)
                self._cached_bytes -= evicted.size

    # -- remote ---------------------------------------------------------

    def _check_host(self, url: str) -> None:
        try:
            host = (httpx.URL(url).host or "").lower()
        except httpx.InvalidURL as e:
            raise AssetEmbedError(f"Invalid image URL: {e}", url=url, original_error=e)
        if self.allowed_hosts is not None:
            if host not in self.allowed_hosts:
                raise AssetEmbedError(f"Image host not allowed: {host or url}", url=url)
            return
        if _is_internal_host(host):
            raise AssetEmbedError(f"Image host is an internal address: {host}", url=url)

    async def _fetch_remote(self, url: str) -> EmbeddedAsset:
        try:
            if self._client is not None:
                response = await self._get(self._client, url)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await self._get(client, url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise AssetEmbedError(f"Failed to fetch image: {e}", url=url, original_error=e)

        mime_type = response.headers.get("content-type", "").split(";")[0].strip()
        return EmbeddedAsset(url=url, content=response.content, mime_type=mime_type or _guess_type(url))

    async def _get(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        """GET ``url``, following redirects only to hosts that pass the host check."""
        for _ in range(MAX_REDIRECTS + 1):
            self._check_host(url)
            response = await client.get(url, timeout=self.timeout, follow_redirects=False)
            if not response.is_redirect or response.next_request is None:
                return response
            url = str(response.next_request.url)
        raise AssetEmbedError("Too many redirects fetching image", url=url)

    # -- local ----------------------------------------------------------

    def _read_local(self, url: str) -> EmbeddedAsset:
        if self.local_root is None:
            raise AssetEmbedError("Local image files are not allowed", url=url)

        raw = Path(url[len("file://"):] if url.startswith("file://") else url)
        path = (raw if raw.is_absolute() else self.local_root / raw).resolve()
        if not path.is_relative_to(self.local_root):
            raise AssetEmbedError(f"Image is outside {self.local_root}", url=url)

        try:
            content = path.read_bytes()
        except OSError as e:
            raise AssetEmbedError(f"Failed to read image: {e}", url=url, original_error=e)
        return EmbeddedAsset(url=url, content=content, mime_type=_guess_type(str(path)))

    def _decode_data_url(self, url: str) -> EmbeddedAsset:
        header, _, payload = url.partition(",")
        mime_type = header[len("data:"):].split(";")[0] or "application/octet-stream"
        try:
            content = base64.b64decode(payload, validate=True)
        except ValueError as e:
            raise AssetEmbedError(f"Invalid image data URL: {e}", url=url[:64], original_error=e)
        return EmbeddedAsset(url=url, content=content, mime_type=mime_type)


def _is_internal_host(host: str) -> bool:
    if not host or host == "localhost" or host.endswith(".localhost"):
        return True
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return False
    return (
        address.is_private
        or address.is_loopback
        or address.is_link_local
        or address.is_reserved
        or address.is_unspecified
        or address.is_multicast
    )


def _guess_type(name: str) -> str:
    return mimetypes.guess_type(name)[0] or "application/octet-stream"
