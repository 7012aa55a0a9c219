"""
Asset uploads to the third-party host (Cloudinary-compatible unsigned preset).

``AssetUploader.upload`` returns the public URL of the stored file.
``upload_batch`` validates a group of files, uploads them one at a time and
returns attachment records; any failure fails the whole group.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

import httpx
import structlog

from magic_cards_shared.schemas.common import Attachment

from .errors import UploadError, ValidationFailure
from .metrics import MetricsCollector

log = structlog.get_logger()

MAX_FILE_BYTES = 5 * 1024 * 1024

DESIGN_FILE_EXTENSIONS = frozenset({
    ".pdf", ".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg",
    ".ai", ".psd", ".sketch", ".fig", ".eps", ".indd", ".tiff", ".tif",
})

IMAGE_EXTENSIONS = frozenset({".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg"})


@dataclass
class UploadedFile:
    filename: str
    content: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        return os.path.splitext(self.filename)[1].lower()


def validate_upload(
    file: UploadedFile,
    allowed_extensions: frozenset[str],
    max_bytes: int = MAX_FILE_BYTES,
) -> None:
    if file.size > max_bytes:
        limit_mb = max_bytes // (1024 * 1024)
        raise ValidationFailure(
            f'File "{file.filename}" is too large. Maximum size is {limit_mb}MB. '
            "Paste a link to the file instead."
        )
    if file.extension not in allowed_extensions:
        if allowed_extensions == IMAGE_EXTENSIONS:
            hint = "Please use image files."
        else:
            hint = "Please use AI, PSD, PDF, or image files."
        raise ValidationFailure(f'File "{file.filename}" is not a supported format. {hint}')


class AssetUploader:
    """Uploads files to ``{base_url}/{cloud_name}/{resource}/upload``."""

    def __init__(
        self,
        base_url: str,
        cloud_name: str,
        upload_preset: str,
        timeout: int = 120,
        transport: httpx.AsyncBaseTransport | None = None,
        metrics: MetricsCollector | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._cloud_name = cloud_name
        self._upload_preset = upload_preset
        self._timeout = timeout
        self._transport = transport
        self._metrics = metrics

    async def _post(
        self, client: httpx.AsyncClient, resource: str, file: UploadedFile
    ) -> httpx.Response:
        return await client.post(
            f"{self._base_url}/{self._cloud_name}/{resource}/upload",
            data={"upload_preset": self._upload_preset},
            files={"file": (file.filename, file.content, file.content_type)},
        )

    async def upload(self, file: UploadedFile) -> str:
        """Upload one file and return its public URL."""
        primary = "image" if file.content_type.startswith("image/") else "raw"
        if self._metrics:
            self._metrics.inc("uploads_total")

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self._timeout), transport=self._transport
            ) as client:
                resp = await self._post(client, primary, file)
                if not resp.is_success:
                    log.warning(
                        "upload.primary_failed",
                        resource=primary,
                        status=resp.status_code,
                        filename=file.filename,
                    )
                    resp = await self._post(client, "auto", file)
        except httpx.TimeoutException as exc:
            self._count_error()
            log.error("upload.timeout", filename=file.filename)
            raise UploadError(f'Upload of "{file.filename}" timed out') from exc
        except httpx.TransportError as exc:
            self._count_error()
            log.error("upload.unreachable", filename=file.filename, error=str(exc))
            raise UploadError("Asset host unreachable") from exc

        if not resp.is_success:
            self._count_error()
            message = "Failed to upload file"
            try:
                message = resp.json().get("error", {}).get("message") or message
            except ValueError:
                pass
            log.error("upload.failed", status=resp.status_code, filename=file.filename)
            raise UploadError(message)

        try:
            url = resp.json().get("secure_url")
        except (ValueError, AttributeError):
            url = None
        if not isinstance(url, str) or not url:
            self._count_error()
            log.error("upload.no_url", status=resp.status_code, filename=file.filename)
            raise UploadError(f'Asset host returned no URL for "{file.filename}"')
        log.info("upload.succeeded", filename=file.filename, url=url)
        return url

    def _count_error(self) -> None:
        if self._metrics:
            self._metrics.inc("upload_errors_total")


async def upload_batch(
    uploader: AssetUploader | None,
    files: list[UploadedFile],
    allowed_extensions: frozenset[str],
    max_bytes: int = MAX_FILE_BYTES,
) -> list[Attachment]:
    """Validate every file, then upload sequentially. All or nothing."""
    if not files:
        raise ValidationFailure("No files selected")
    for file in files:
        validate_upload(file, allowed_extensions, max_bytes)
    if uploader is None:
        raise UploadError("Asset uploads are not configured")

    uploaded = []
    for file in files:
        try:
            url = await uploader.upload(file)
        except UploadError as exc:
            raise UploadError(f'Failed to upload "{file.filename}": {exc.message}') from exc
        uploaded.append(
            Attachment(url=url, filename=file.filename, size=file.size, type=file.content_type)
        )
    return uploaded
