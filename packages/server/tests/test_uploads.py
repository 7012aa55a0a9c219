"""Asset uploader tests against the mock asset host."""

from __future__ import annotations

import httpx
import pytest
from httpx import ASGITransport

from magic_cards_server.core.errors import UploadError, ValidationFailure
from magic_cards_server.core.metrics import MetricsCollector
from magic_cards_server.core.uploads import (
    DESIGN_FILE_EXTENSIONS,
    IMAGE_EXTENSIONS,
    AssetUploader,
    UploadedFile,
    upload_batch,
    validate_upload,
)

from .mock_servers import AssetHostState, create_asset_host_app


@pytest.fixture
def host() -> AssetHostState:
    return AssetHostState()


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture
def uploader(host, metrics) -> AssetUploader:
    return AssetUploader(
        "http://assets.test",
        "demo",
        "Magic Cards",
        transport=ASGITransport(app=create_asset_host_app(host)),
        metrics=metrics,
    )


async def test_image_uses_image_resource(uploader, host):
    url = await uploader.upload(UploadedFile("face.png", b"png", "image/png"))
    assert url == "https://res.test/demo/image/upload/face.png"
    assert host.uploads == [("image", "face.png", "Magic Cards")]


async def test_design_file_uses_raw_resource(uploader, host):
    await uploader.upload(UploadedFile("final.ai", b"ai", "application/postscript"))
    assert host.uploads[0][0] == "raw"


async def test_falls_back_to_auto(uploader, host):
    host.failing_resources.add("raw")
    url = await uploader.upload(UploadedFile("final.psd", b"psd"))
    assert "/auto/upload/" in url


async def test_remote_error_message_surfaced(uploader, host, metrics):
    host.failing_resources.update({"raw", "auto"})
    with pytest.raises(UploadError) as excinfo:
        await uploader.upload(UploadedFile("final.psd", b"psd"))
    assert excinfo.value.message == "Invalid auto file"
    assert metrics.get("upload_errors_total") == 1


def test_validate_size_suggests_link():
    big = UploadedFile("huge.pdf", b"x" * 11, "application/pdf")
    with pytest.raises(ValidationFailure) as excinfo:
        validate_upload(big, DESIGN_FILE_EXTENSIONS, max_bytes=10)
    assert "Paste a link" in excinfo.value.message


def test_validate_extension_case_insensitive():
    validate_upload(UploadedFile("LOGO.PNG", b"x"), IMAGE_EXTENSIONS)
    with pytest.raises(ValidationFailure):
        validate_upload(UploadedFile("logo.ai", b"x"), IMAGE_EXTENSIONS)


async def test_batch_without_uploader():
    with pytest.raises(UploadError):
        await upload_batch(None, [UploadedFile("a.pdf", b"x")], DESIGN_FILE_EXTENSIONS)


async def test_batch_with_no_files(uploader):
    with pytest.raises(ValidationFailure):
        await upload_batch(uploader, [], DESIGN_FILE_EXTENSIONS)


async def test_batch_returns_attachments_in_order(uploader):
    files = [UploadedFile("a.pdf", b"1"), UploadedFile("b.png", b"22", "image/png")]
    attachments = await upload_batch(uploader, files, DESIGN_FILE_EXTENSIONS)
    assert [a.filename for a in attachments] == ["a.pdf", "b.png"]
    assert attachments[1].size == 2
    assert attachments[1].id is None


def _host_replying(response: httpx.Response) -> AssetUploader:
    return AssetUploader(
        "http://assets.test",
        "demo",
        "Magic Cards",
        transport=httpx.MockTransport(lambda request: response),
        metrics=MetricsCollector(),
    )


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={}),
        httpx.Response(200, json={"secure_url": None}),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, text="stored"),
    ],
)
async def test_success_without_url_is_upload_error(response):
    uploader = _host_replying(response)
    with pytest.raises(UploadError) as excinfo:
        await uploader.upload(UploadedFile("final.ai", b"ai"))
    assert "returned no URL" in excinfo.value.message
    assert uploader._metrics.get("upload_errors_total") == 1
