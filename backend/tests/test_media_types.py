"""Tests for the upload allow-list and display helpers."""
import pytest

from app.core.errors import UnsupportedFormat
from app.services.media_types import (
    aspect_ratio,
    classify_upload,
    format_file_size,
    probe_image,
)
from conftest import make_png


class TestClassifyUpload:

    def test_image_types_are_image_resources(self):
        info = classify_upload("image/png")
        assert info.resource_type == "image"
        assert info.extension == "png"
        assert info.is_image

    def test_documents_are_raw_resources(self):
        assert classify_upload("application/pdf").resource_type == "raw"
        docx = classify_upload(
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
        )
        assert docx.resource_type == "raw"
        assert docx.extension == "docx"
        assert classify_upload("application/vnd.ms-powerpoint").extension == "ppt"
        assert classify_upload("text/plain").extension == "txt"

    def test_parameters_and_case_ignored(self):
        assert classify_upload("Text/Plain; charset=utf-8").content_type == "text/plain"

    @pytest.mark.parametrize("content_type", [
        "application/zip", "video/mp4", "image/svg+xml", "", None,
    ])
    def test_unknown_types_rejected(self, content_type):
        with pytest.raises(UnsupportedFormat):
            classify_upload(content_type)


class TestProbeImage:

    def test_reads_dimensions_and_format(self):
        assert probe_image(make_png(64, 48)) == (64, 48, "png")

    def test_garbage_is_unsupported(self):
        with pytest.raises(UnsupportedFormat):
            probe_image(b"not an image")


class TestFormatFileSize:

    def test_zero(self):
        assert format_file_size(0) == "0 Bytes"

    def test_bytes(self):
        assert format_file_size(512) == "512 Bytes"

    def test_kilobytes_drop_trailing_zeros(self):
        assert format_file_size(1024) == "1 KB"
        assert format_file_size(1536) == "1.5 KB"

    def test_megabytes(self):
        assert format_file_size(2 * 1024 * 1024) == "2 MB"

    def test_gigabytes_cap(self):
        assert format_file_size(3 * 1024 ** 4) == "3072 GB"


def test_aspect_ratio():
    assert aspect_ratio(1920, 1080) == 1.78
    assert aspect_ratio(None, 100) is None
    assert aspect_ratio(100, 0) is None
