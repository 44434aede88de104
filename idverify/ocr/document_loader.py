"""Load scanned ID documents as page images ready for OCR.

Accepts image files, PDF files, or raw bytes of either. PDF pages are
rendered with pdf2image at the configured resolution.
"""

import io
from pathlib import Path

from pdf2image import convert_from_bytes, convert_from_path
from PIL import Image

from idverify.utils.logger import get_logger

logger = get_logger(__name__)

_PDF_MAGIC = b"%PDF"

DocumentSource = str | Path | bytes


def _open_image(fp: Path | io.BytesIO) -> Image.Image:
    """Decode an image fully and release the underlying file."""
    with Image.open(fp) as img:
        img.load()
        return img.copy()


def is_pdf(source: DocumentSource) -> bool:
    """Return whether the source looks like a PDF by magic bytes or suffix."""
    if isinstance(source, bytes):
        return source[:4] == _PDF_MAGIC
    return Path(source).suffix.lower() == ".pdf"


class DocumentLoader:
    """Turns a document source into a list of Pillow page images.

    Args:
        dpi: Resolution used when rendering PDF pages.
    """

    def __init__(self, dpi: int = 300) -> None:
        self.dpi = dpi

    def load_pages(self, source: DocumentSource) -> list[Image.Image]:
        """Load every page of the document.

        Args:
            source: Path to an image or PDF, or the raw file bytes.

        Returns:
            Page images in document order.

        Raises:
            FileNotFoundError: If a path is given and the file does not exist.
        """
        if isinstance(source, bytes):
            if is_pdf(source):
                pages = convert_from_bytes(source, dpi=self.dpi)
            else:
                pages = [_open_image(io.BytesIO(source))]
        else:
            path = Path(source)
            if not path.exists():
                raise FileNotFoundError(f"Document not found: {path}")
            if is_pdf(path):
                pages = convert_from_path(str(path), dpi=self.dpi)
            else:
                pages = [_open_image(path)]

        logger.debug("Loaded %d page(s) for OCR", len(pages))
        return pages
