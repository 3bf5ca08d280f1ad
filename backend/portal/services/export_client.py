"""Client for the export/summary service that renders request artifacts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

import httpx

from portal.core.config import settings
from portal.core.errors import ExportFailed
from portal.core.logging import get_logger

logger = get_logger(__name__)

ExportFormat = Literal["csv", "summary"]


@dataclass(frozen=True)
class ExportArtifact:
    """Artifact returned by the export service."""

    request_id: str
    export_format: ExportFormat
    content: bytes
    media_type: str

    @property
    def filename(self) -> str:
        extension = "csv" if self.export_format == "csv" else "txt"
        return f"{self.request_id}_{self.export_format}.{extension}"

    def text(self) -> str:
        return self.content.decode("utf-8")


class ExportClient:
    """Fetch CSV exports and generated summaries for a single request.

    The export service only reads request data; nothing here touches the
    request store.
    """

    def __init__(
        self,
        *,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.export_base_url).rstrip("/")
        self.timeout_seconds = float(
            timeout_seconds if timeout_seconds is not None else settings.remote_timeout_seconds
        )
        self.transport = transport

    async def export(self, request_id: str, export_format: ExportFormat = "csv") -> ExportArtifact:
        path = f"/api/requests/{request_id}/export/{export_format}"
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout_seconds,
                transport=self.transport,
            ) as client:
                response = await client.get(path)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning(
                "request.export.failed",
                extra={"request_id": request_id, "format": export_format, "error": str(exc)},
            )
            raise ExportFailed(f"Export of {request_id} as {export_format} failed: {exc}") from exc

        media_type = response.headers.get("content-type", "application/octet-stream")
        logger.info(
            "request.export.completed",
            extra={"request_id": request_id, "format": export_format, "bytes": len(response.content)},
        )
        return ExportArtifact(
            request_id=request_id,
            export_format=export_format,
            content=response.content,
            media_type=media_type.split(";")[0].strip(),
        )

    async def export_csv(self, request_id: str) -> ExportArtifact:
        return await self.export(request_id, "csv")

    async def summarize(self, request_id: str) -> str:
        """Return the generated plain-text summary for a request."""
        return (await self.export(request_id, "summary")).text()
