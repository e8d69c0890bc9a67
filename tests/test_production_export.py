"""Unit tests for production download sizing and manifest rendering."""

import csv
import io
import uuid

import pytest

from discoverease_bates.adapters.production_export import (
    MANIFEST_HEADERS,
    build_manifest_csv,
    compute_download_info,
    format_bytes,
)
from discoverease_bates.core.models import Document, ProductionDocument


def make_pair(
    bates_number: str | None, file_size: int, is_privileged: bool = False, name: str = "doc.pdf"
) -> tuple[ProductionDocument, Document]:
    document = Document(
        id=uuid.uuid4(), name=name, original_name=name, file_size=file_size, mime_type="application/pdf"
    )
    entry = ProductionDocument(document_id=document.id, bates_number=bates_number, is_privileged=is_privileged)
    return entry, document


@pytest.mark.parametrize(
    ("size", "expected"),
    [(0, "0 Bytes"), (512, "512 Bytes"), (1536, "1.5 KB"), (5 * 1024 * 1024, "5 MB"), (2 * 1024**3, "2 GB")],
)
def test_format_bytes(size: int, expected: str) -> None:
    assert format_bytes(size) == expected


class TestComputeDownloadInfo:
    def test_small_production_downloads_without_warning(self) -> None:
        info = compute_download_info([make_pair("P-000001", 100), make_pair("P-000002", 200)], 1_000, 500)

        assert info.document_count == 2
        assert info.total_size == 300
        assert info.can_download is True
        assert info.show_warning is False
        assert info.warning_message is None
        assert info.parts_needed is None

    def test_large_production_warns(self) -> None:
        info = compute_download_info([make_pair("P-000001", 600)], 1_000, 500)

        assert info.can_download is True
        assert info.show_warning is True
        assert info.warning_message is not None

    def test_oversized_production_needs_parts(self) -> None:
        info = compute_download_info([make_pair("P-000001", 1_500), make_pair("P-000002", 1_000)], 1_000, 500)

        assert info.exceeds_limit is True
        assert info.can_download is False
        assert info.parts_needed == 3
        assert info.max_download_size == 1_000


def test_manifest_omits_privileged_entries() -> None:
    entries = [
        make_pair("PROD-000001", 10, name="a.pdf"),
        make_pair("PROD-000002", 20, is_privileged=True, name="secret.pdf"),
        make_pair("PROD-000003", 30, name="c, final.pdf"),
    ]

    rows = list(csv.reader(io.StringIO(build_manifest_csv(entries))))

    assert rows[0] == list(MANIFEST_HEADERS)
    assert [row[0] for row in rows[1:]] == ["PROD-000001", "PROD-000003"]
    assert rows[2][1] == "c, final.pdf"
