"""
PDF Rasterizer

Renders the first page of a PDF to PNG bytes for vision analysis.
"""

import asyncio
import io
import logging
from typing import Optional

from pdf2image import convert_from_bytes, convert_from_path

logger = logging.getLogger(__name__)


class RasterizationError(RuntimeError):
    """The PDF could not be rendered"""


class PdfRasterizer:
    """First-page PDF rasterizer backed by pdf2image (poppler)"""

    def __init__(self, dpi: int = 200):
        """
        Args:
            dpi: Render density (default: 200)
        """
        self.dpi = dpi

    async def first_page(self, path: Optional[str] = None, data: Optional[bytes] = None) -> bytes:
        """
        Render the first page of a PDF file or PDF bytes

        Returns:
            PNG image bytes
        """
        return await asyncio.to_thread(self._render_first_page, path, data)

    def _render_first_page(self, path: Optional[str], data: Optional[bytes]) -> bytes:
        if path is None and data is None:
            raise RasterizationError("No PDF path or bytes given")

        try:
            if data is not None:
                images = convert_from_bytes(data, dpi=self.dpi, first_page=1, last_page=1)
            else:
                images = convert_from_path(path, dpi=self.dpi, first_page=1, last_page=1)
        except Exception as e:
            raise RasterizationError(f"Failed to rasterize PDF: {e}") from e

        if not images:
            raise RasterizationError("PDF has no pages")

        buffer = io.BytesIO()
        images[0].save(buffer, format='PNG')
        logger.info(f"📄 Rasterized first PDF page at {self.dpi} dpi ({buffer.tell()} bytes)")
        return buffer.getvalue()
