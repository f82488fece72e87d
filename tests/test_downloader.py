"""Tests for routecrawl.utils.downloader."""

import io
import threading

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from routecrawl.crawler.errors import DownloadError
from routecrawl.utils.config import DownloadConfig
from routecrawl.utils.downloader import ContentDownloader, _ThreadedWriter

PAYLOAD = b"0123456789" * 100


def _app() -> web.Application:
    async def image(request: web.Request) -> web.Response:
        return web.Response(body=PAYLOAD, content_type="image/png")

    async def chunked(request: web.Request) -> web.StreamResponse:
        response = web.StreamResponse()
        response.enable_chunked_encoding()
        await response.prepare(request)
        await response.write(b"abc")
        await response.write_eof()
        return response

    async def missing(request: web.Request) -> web.Response:
        return web.Response(status=404)

    app = web.Application()
    app.router.add_get("/img/logo.png", image)
    app.router.add_get("/", image)
    app.router.add_get("/stream", chunked)
    app.router.add_get("/missing.png", missing)
    return app


class _AsyncWriter:
    def __init__(self) -> None:
        self.chunks = []

    async def write(self, chunk: bytes) -> None:
        self.chunks.append(chunk)


class _FullDisk:
    def write(self, chunk: bytes) -> None:
        raise OSError("No space left on device")


@pytest.mark.asyncio
async def test_download_paths(tmp_path) -> None:
    server = TestServer(_app())
    await server.start_server()
    try:
        async with aiohttp.ClientSession() as session:
            downloader = ContentDownloader(session, save_path=str(tmp_path / "images"),
                                           show_progress=False, chunk_size=128)

            buffer = io.BytesIO()
            written = await downloader.download(str(server.make_url("/img/logo.png")), buffer)
            assert written == len(PAYLOAD)
            assert buffer.getvalue() == PAYLOAD

            writer = _AsyncWriter()
            await downloader.download(str(server.make_url("/img/logo.png")), writer)
            assert b"".join(writer.chunks) == PAYLOAD

            with pytest.raises(DownloadError, match="content length"):
                await downloader.download(str(server.make_url("/stream")), io.BytesIO())

            with pytest.raises(DownloadError, match="HTTP 404"):
                await downloader.download(str(server.make_url("/missing.png")), io.BytesIO())

            with pytest.raises(DownloadError, match="writing"):
                await downloader.download(str(server.make_url("/img/logo.png")), _FullDisk())

            target = await downloader.save(str(server.make_url("/img/logo.png")))
            assert target == tmp_path / "images" / "logo.png"
            assert target.read_bytes() == PAYLOAD

            target = await downloader.save(str(server.make_url("/")))
            assert target.name == "index"
    finally:
        await server.close()


@pytest.mark.asyncio
async def test_unreachable_host() -> None:
    async with aiohttp.ClientSession() as session:
        downloader = ContentDownloader(session, show_progress=False)

        with pytest.raises(DownloadError, match="Failed to GET"):
            await downloader.download("http://127.0.0.1:1/file.png", io.BytesIO())


@pytest.mark.asyncio
async def test_save_requires_save_path() -> None:
    async with aiohttp.ClientSession() as session:
        downloader = ContentDownloader(session, show_progress=False)

        with pytest.raises(DownloadError, match="No save path"):
            await downloader.save("http://127.0.0.1/file.png")


@pytest.mark.asyncio
async def test_wants_and_from_config() -> None:
    async with aiohttp.ClientSession() as session:
        downloader = ContentDownloader.from_config(
            session, DownloadConfig(allowed_extensions=[".PNG", ".jpg"]), show_progress=False
        )

    assert downloader.wants("https://h.example/a/logo.png")
    assert downloader.wants("https://h.example/photo.JPG?size=large")
    assert not downloader.wants("https://h.example/page.html")
    assert downloader.save_path is None


class _ThreadRecordingFile:
    def __init__(self) -> None:
        self.threads = []
        self.data = b""

    def write(self, chunk: bytes) -> int:
        self.threads.append(threading.get_ident())
        self.data += chunk
        return len(chunk)


@pytest.mark.asyncio
async def test_file_writes_run_off_the_event_loop_thread() -> None:
    file = _ThreadRecordingFile()
    writer = _ThreadedWriter(file)

    await writer.write(b"abc")
    await writer.write(b"def")

    assert file.data == b"abcdef"
    assert threading.get_ident() not in file.threads
