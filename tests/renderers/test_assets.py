"""
Tests for AssetEmbedder.

Remote fetches go through an httpx.MockTransport so no network is used.
"""

import base64

import httpx
import pytest

from sprint_export.errors import AssetEmbedError
from sprint_export.renderers.assets import AssetEmbedder


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x01" * 32


class CountingHandler:
    def __init__(self, status_code=200, content=PNG_BYTES, content_type="image/png"):
        self.status_code = status_code
        self.content = content
        self.content_type = content_type
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(
            self.status_code,
            content=self.content,
            headers={"content-type": self.content_type},
        )


class RedirectingHandler(CountingHandler):
    """Redirects the first request to ``location``, then serves the image."""

    def __init__(self, location):
        super().__init__()
        self.location = location

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if not self.requests:
            self.requests.append(request)
            return httpx.Response(302, headers={"location": self.location})
        return super().__call__(request)


def embedder_for(handler, **kwargs) -> AssetEmbedder:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AssetEmbedder(client=client, **kwargs)


@pytest.mark.asyncio
async def test_remote_image_becomes_data_url():
    handler = CountingHandler(content_type="image/png; charset=binary")
    embedder = embedder_for(handler)

    data_url = await embedder.embed_image("https://cdn.example.com/logo.png")

    assert data_url == "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")


@pytest.mark.asyncio
async def test_fetches_are_cached():
    handler = CountingHandler()
    embedder = embedder_for(handler)

    await embedder.fetch("https://cdn.example.com/logo.png")
    await embedder.fetch("https://cdn.example.com/logo.png")

    assert len(handler.requests) == 1
    assert embedder.get_cache_stats() == {"size": 1, "total_size": len(PNG_BYTES)}

    embedder.clear_cache()
    assert embedder.get_cache_stats() == {"size": 0, "total_size": 0}


@pytest.mark.asyncio
async def test_http_error_returns_empty_string():
    embedder = embedder_for(CountingHandler(status_code=500))

    assert await embedder.embed_image("https://cdn.example.com/logo.png") == ""
    with pytest.raises(AssetEmbedError):
        await embedder.fetch("https://cdn.example.com/logo.png")


@pytest.mark.asyncio
async def test_missing_content_type_is_guessed_from_url():
    embedder = embedder_for(CountingHandler(content_type=""))
    asset = await embedder.fetch("https://cdn.example.com/slide.jpg")
    assert asset.mime_type == "image/jpeg"


@pytest.mark.asyncio
async def test_oversized_asset_is_rejected():
    embedder = embedder_for(CountingHandler(), max_asset_bytes=8)

    with pytest.raises(AssetEmbedError, match="too large"):
        await embedder.fetch("https://cdn.example.com/logo.png")
    assert embedder.get_cache_stats()["size"] == 0


@pytest.mark.asyncio
async def test_data_url_is_decoded():
    encoded = base64.b64encode(PNG_BYTES).decode("ascii")
    asset = await AssetEmbedder().fetch(f"data:image/png;base64,{encoded}")
    assert asset.content == PNG_BYTES
    assert asset.mime_type == "image/png"


@pytest.mark.asyncio
async def test_invalid_data_url():
    with pytest.raises(AssetEmbedError, match="Invalid image data URL"):
        await AssetEmbedder().fetch("data:image/png;base64,@@@")


class TestLocalFiles:
    @pytest.mark.asyncio
    async def test_refused_without_local_root(self, tmp_path):
        image = tmp_path / "slide.png"
        image.write_bytes(PNG_BYTES)
        embedder = AssetEmbedder()

        with pytest.raises(AssetEmbedError, match="not allowed"):
            await embedder.fetch(str(image))
        assert await embedder.embed_image(f"file://{image}") == ""

    @pytest.mark.asyncio
    async def test_read_below_local_root(self, tmp_path):
        image = tmp_path / "images" / "slide.png"
        image.parent.mkdir()
        image.write_bytes(PNG_BYTES)
        embedder = AssetEmbedder(local_root=tmp_path)

        asset = await embedder.fetch(str(image))
        assert asset.content == PNG_BYTES
        assert asset.mime_type == "image/png"

        assert (await embedder.fetch(f"file://{image}")).content == PNG_BYTES
        assert (await embedder.fetch("images/slide.png")).content == PNG_BYTES

    @pytest.mark.asyncio
    async def test_paths_outside_local_root_are_refused(self, tmp_path):
        root = tmp_path / "bundle"
        root.mkdir()
        secret = tmp_path / "secret.png"
        secret.write_bytes(b"server secret")
        embedder = AssetEmbedder(local_root=root)

        for url in (str(secret), f"file://{secret}", "../secret.png", "/etc/passwd"):
            with pytest.raises(AssetEmbedError, match="outside"):
                await embedder.fetch(url)

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        assert await AssetEmbedder(local_root=tmp_path).embed_image("slide.png") == ""


class TestRemoteHosts:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("url", [
        "http://127.0.0.1/admin.png",
        "http://localhost:8080/logo.png",
        "http://10.0.0.5/logo.png",
        "http://169.254.169.254/latest/meta-data",
        "http://[::1]/logo.png",
    ])
    async def test_internal_addresses_are_never_requested(self, url):
        handler = CountingHandler()
        embedder = embedder_for(handler)

        with pytest.raises(AssetEmbedError, match="internal address"):
            await embedder.fetch(url)
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_allow_list(self):
        handler = CountingHandler()
        embedder = embedder_for(handler, allowed_hosts=["CDN.example.com"])

        assert (await embedder.fetch("https://cdn.example.com/logo.png")).content == PNG_BYTES
        with pytest.raises(AssetEmbedError, match="not allowed"):
            await embedder.fetch("https://tracker.example.org/pixel.png")
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_empty_allow_list_refuses_every_host(self):
        handler = CountingHandler()
        embedder = embedder_for(handler, allowed_hosts=[])

        assert await embedder.embed_image("https://cdn.example.com/logo.png") == ""
        assert handler.requests == []

    @pytest.mark.asyncio
    async def test_redirect_to_internal_address_is_refused(self):
        handler = RedirectingHandler("http://127.0.0.1/secret")
        embedder = embedder_for(handler)

        with pytest.raises(AssetEmbedError, match="internal address"):
            await embedder.fetch("https://cdn.example.com/logo.png")
        assert len(handler.requests) == 1

    @pytest.mark.asyncio
    async def test_redirect_within_allowed_hosts_is_followed(self):
        handler = RedirectingHandler("https://static.example.com/logo.png")
        embedder = embedder_for(handler, allowed_hosts=["cdn.example.com", "static.example.com"])

        asset = await embedder.fetch("https://cdn.example.com/logo.png")

        assert asset.content == PNG_BYTES
        assert [str(request.url) for request in handler.requests] == [
            "https://cdn.example.com/logo.png",
            "https://static.example.com/logo.png",
        ]


class TestCacheBounds:
    @pytest.mark.asyncio
    async def test_entry_limit_evicts_least_recently_used(self):
        handler = CountingHandler()
        embedder = embedder_for(handler, max_cache_entries=2)

        await embedder.fetch("https://cdn.example.com/a.png")
        await embedder.fetch("https://cdn.example.com/b.png")
        await embedder.fetch("https://cdn.example.com/a.png")
        await embedder.fetch("https://cdn.example.com/c.png")

        assert embedder.get_cache_stats() == {"size": 2, "total_size": 2 * len(PNG_BYTES)}
        await embedder.fetch("https://cdn.example.com/a.png")
        assert len(handler.requests) == 3
        await embedder.fetch("https://cdn.example.com/b.png")
        assert len(handler.requests) == 4

    @pytest.mark.asyncio
    async def test_byte_limit(self):
        embedder = embedder_for(CountingHandler(), max_cache_bytes=len(PNG_BYTES) * 3)

        for index in range(10):
            await embedder.fetch(f"https://cdn.example.com/{index}.png")

        stats = embedder.get_cache_stats()
        assert stats["size"] == 3
        assert stats["total_size"] <= len(PNG_BYTES) * 3

    @pytest.mark.asyncio
    async def test_asset_larger_than_cache_is_served_but_not_kept(self):
        embedder = embedder_for(CountingHandler(), max_cache_bytes=8)

        asset = await embedder.fetch("https://cdn.example.com/logo.png")

        assert asset.content == PNG_BYTES
        assert embedder.get_cache_stats() == {"size": 0, "total_size": 0}
