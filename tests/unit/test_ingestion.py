"""Unit tests for upload ingestion and its metadata helpers."""

import re

import pytest

from curator.core.errors import InvalidArgument, PayloadTooLarge, StorageFailure
from curator.core.ingestion import (
    FileMetadata,
    IngestionPipeline,
    default_title,
    format_file_size,
    generate_storage_filename,
    parse_tags,
    resolve_title,
)

# ============================================================================
# Helpers
# ============================================================================


class TestParseTags:
    """Tests for parse_tags."""

    def test_json_string(self):
        assert parse_tags('["sunset", "beach"]') == ["sunset", "beach"]

    def test_sequence_passes_through(self):
        assert parse_tags(["a", "b"]) == ["a", "b"]

    def test_tuple_passes_through(self):
        assert parse_tags(("a",)) == ["a"]

    @pytest.mark.parametrize("raw", [None, "", "   ", "not json", "{", '{"a": 1}', '"solo"', "42"])
    def test_malformed_degrades_to_empty(self, raw):
        assert parse_tags(raw) == []

    def test_drops_non_strings_and_blanks(self):
        assert parse_tags('["ok", 3, null, "  ", " spaced "]') == ["ok", "spaced"]

    def test_keeps_order_and_duplicates(self):
        assert parse_tags(["b", "a", "b"]) == ["b", "a", "b"]


class TestTitles:
    """Tests for default_title and resolve_title."""

    def test_strips_extension(self):
        assert default_title("sunset.jpg") == "sunset"

    def test_separators_become_spaces(self):
        assert default_title("summer_beach-trip.jpg") == "summer beach trip"

    def test_only_last_extension_removed(self):
        assert default_title("archive.tar.png") == "archive tar"

    def test_empty_name_falls_back(self):
        assert default_title("") == "Untitled"

    def test_given_title_wins(self):
        assert resolve_title("  Sunset  ", "x.png") == "Sunset"

    def test_blank_title_uses_filename(self):
        assert resolve_title("", "my_photo.png") == "my photo"
        assert resolve_title(None, "my_photo.png") == "my photo"


class TestFormatFileSize:
    """Tests for format_file_size."""

    @pytest.mark.parametrize(
        "num_bytes, expected",
        [
            (0, "0 Bytes"),
            (1, "1 Bytes"),
            (1023, "1023 Bytes"),
            (1024, "1 KB"),
            (1536, "1.5 KB"),
            (1234567, "1.18 MB"),
            (10 * 1024 * 1024, "10 MB"),
            (3 * 1024**3, "3 GB"),
            (2048 * 1024**3, "2048 GB"),
        ],
    )
    def test_formatting(self, num_bytes, expected):
        assert format_file_size(num_bytes) == expected


class TestStorageFilename:
    """Tests for generate_storage_filename."""

    def test_format(self):
        name = generate_storage_filename("Holiday Pic.JPG")
        assert re.fullmatch(r"image-\d+-\d+\.JPG", name)

    def test_without_extension(self):
        assert re.fullmatch(r"image-\d+-\d+", generate_storage_filename("noext"))

    def test_names_differ(self):
        names = {generate_storage_filename("a.png") for _ in range(20)}
        assert len(names) > 1

    def test_directory_components_not_kept(self):
        assert "/" not in generate_storage_filename("../../etc/passwd.png")


# ============================================================================
# Pipeline
# ============================================================================


class TestIngest:
    """Tests for IngestionPipeline.ingest."""

    def test_single_upload_creates_pending_record(self, pipeline, make_upload, temp_dir, fixed_date):
        record = pipeline.ingest_one(make_upload(), "Alice", title="Sunset")

        assert record.id == 1
        assert record.status == "pending"
        assert record.title == "Sunset"
        assert record.tags == []
        assert record.uploaded_by == "Alice"
        assert record.upload_date == fixed_date
        assert record.original_name == "sunset.png"
        assert record.mime_type == "image/png"
        assert record.dimensions == "1920x1080"
        assert record.file_size == "72 Bytes"
        assert record.url == f"/uploads/{record.filename}"
        assert (temp_dir / "uploads" / record.filename).read_bytes() == make_upload().data

    def test_title_defaults_from_filename(self, pipeline, make_upload):
        record = pipeline.ingest_one(make_upload(name="beach_day.png"), "Alice")
        assert record.title == "beach day"

    def test_tags_json_string(self, pipeline, make_upload):
        record = pipeline.ingest_one(make_upload(), "Alice", tags='["sky", "sun"]')
        assert record.tags == ["sky", "sun"]

    def test_bad_tags_do_not_fail_batch(self, pipeline, make_upload):
        records = pipeline.ingest(
            [make_upload(name="a.png"), make_upload(name="b.png")],
            "Alice",
            [FileMetadata(tags="[broken"), FileMetadata(tags='["ok"]')],
        )
        assert [r.tags for r in records] == [[], ["ok"]]

    def test_batch_keeps_order_and_ids(self, pipeline, make_upload):
        records = pipeline.ingest(
            [make_upload(name=f"{n}.png") for n in ("one", "two", "three")],
            "Alice",
            [FileMetadata(title="First")],
        )
        assert [r.id for r in records] == [1, 2, 3]
        assert [r.title for r in records] == ["First", "two", "three"]

    def test_no_files(self, pipeline):
        with pytest.raises(InvalidArgument, match="No files"):
            pipeline.ingest([], "Alice")

    def test_too_many_files(self, pipeline, make_upload):
        with pytest.raises(InvalidArgument, match="At most 3"):
            pipeline.ingest([make_upload() for _ in range(4)], "Alice")

    @pytest.mark.parametrize("uploader", [None, "", "  "])
    def test_uploader_required(self, pipeline, make_upload, uploader):
        with pytest.raises(InvalidArgument, match="uploadedBy"):
            pipeline.ingest_one(make_upload(), uploader, title="")

    def test_non_image_rejected(self, pipeline, make_upload):
        with pytest.raises(InvalidArgument, match="Only image files"):
            pipeline.ingest_one(make_upload(name="notes.txt", content_type="text/plain"), "Alice")

    def test_oversized_rejected(self, pipeline, make_upload):
        with pytest.raises(PayloadTooLarge):
            pipeline.ingest_one(make_upload(data=b"x" * 1025), "Alice")

    def test_size_at_limit_accepted(self, pipeline, make_upload):
        record = pipeline.ingest_one(make_upload(data=b"x" * 1024), "Alice")
        assert record.file_size == "1 KB"

    def test_invalid_file_rejects_whole_batch(self, pipeline, make_upload, memory_store, temp_dir):
        with pytest.raises(InvalidArgument):
            pipeline.ingest(
                [make_upload(), make_upload(name="doc.pdf", content_type="application/pdf")],
                "Alice",
            )
        assert memory_store.list() == []
        assert not (temp_dir / "uploads").exists()

    def test_write_failure_is_fatal_and_cleans_up(
        self, memory_store, make_upload, temp_dir, monkeypatch
    ):
        uploads = temp_dir / "uploads"
        pipeline = IngestionPipeline(memory_store, uploads)
        written = []
        original_write = type(uploads).write_bytes

        def flaky_write(path, data):
            if written:
                raise OSError("disk full")
            written.append(path)
            return original_write(path, data)

        monkeypatch.setattr(type(uploads), "write_bytes", flaky_write)

        with pytest.raises(StorageFailure):
            pipeline.ingest([make_upload(name="a.png"), make_upload(name="b.png")], "Alice")

        assert memory_store.list() == []
        assert not written[0].exists()
