"""Page count estimation for intake-time Bates allocation.

The estimate decides how many Bates numbers an upload consumes, so a wrong
estimate leaves gaps or under-numbers pages. The file-size heuristic is
approximate in both directions: compressed PDFs are under-counted, large images
and spreadsheets are over-counted. PdfPageCounter reads the real page count
when the file content is at hand.
"""

import io

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from discoverease_bates.observability import get_logger

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE_HEURISTIC_BYTES = 50_000

_PDF_MIME_TYPES = frozenset({"application/pdf", "application/x-pdf"})
# Multi-page TIFF is common for scanned productions, so it is not treated as one page.
_SINGLE_PAGE_MIME_PREFIXES = ("image/png", "image/jpeg", "image/gif", "image/webp", "image/bmp")


class FileSizePageEstimator:
    """Estimates pages as file size divided by a fixed bytes-per-page constant.

    Args:
        page_size_bytes: Assumed bytes per page.
    """

    def __init__(self, page_size_bytes: int = DEFAULT_PAGE_SIZE_HEURISTIC_BYTES) -> None:
        if page_size_bytes < 1:
            raise ValueError("page_size_bytes must be positive")
        self._page_size_bytes = page_size_bytes

    def estimate(self, file_size: int | None, mime_type: str | None = None, content: bytes | None = None) -> int:
        """Return max(1, file_size // page_size_bytes)."""
        return max(1, (file_size or 0) // self._page_size_bytes)


class PdfPageCounter:
    """Counts real PDF pages, with the file-size heuristic as fallback.

    Single-image formats count as one page. Anything else, or a PDF that
    cannot be parsed, uses the fallback estimator.

    Args:
        fallback: Estimator used when no exact count is possible.
    """

    def __init__(self, fallback: FileSizePageEstimator | None = None) -> None:
        self._fallback = fallback or FileSizePageEstimator()

    def estimate(self, file_size: int | None, mime_type: str | None = None, content: bytes | None = None) -> int:
        normalized = (mime_type or "").split(";")[0].strip().lower()

        if normalized.startswith(_SINGLE_PAGE_MIME_PREFIXES):
            return 1

        if content is not None and (normalized in _PDF_MIME_TYPES or content.startswith(b"%PDF")):
            try:
                page_count = len(PdfReader(io.BytesIO(content)).pages)
            except PyPdfError as exc:
                logger.warning("PDF page count failed, using size heuristic", error=str(exc))
            else:
                if page_count > 0:
                    return page_count

        return self._fallback.estimate(file_size, mime_type, content)


def build_page_estimator(strategy: str, page_size_bytes: int) -> FileSizePageEstimator | PdfPageCounter:
    """Build the estimator named by the page_count_strategy setting.

    Args:
        strategy: "heuristic" or "pdf".
        page_size_bytes: Bytes-per-page constant for the size heuristic.

    Returns:
        Configured estimator.

    Raises:
        ValueError: If the strategy name is unknown.
    """
    heuristic = FileSizePageEstimator(page_size_bytes)
    if strategy == "heuristic":
        return heuristic
    if strategy == "pdf":
        return PdfPageCounter(fallback=heuristic)
    raise ValueError(f"Unknown page count strategy: {strategy!r}")
