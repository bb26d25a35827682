import pytest

from uniroute.endpoints import AUDIO_FORMATS
from uniroute.errors import (
    EmptyFileError,
    FileMissingError,
    FileTooLargeError,
    NotAFileError,
    UnsupportedFormatError,
)
from uniroute.multipart import MultipartRequestBuilder, inspect_file
from uniroute.types import FilePart

MB = 1024 * 1024

def test_missing_file(tmp_path):
    with pytest.raises(FileMissingError):
        MultipartRequestBuilder().add_file("file", str(tmp_path / "nope.mp3"), category="audio")

def test_directory_is_not_a_file(tmp_path):
    d = tmp_path / "dir.mp3"
    d.mkdir()
    with pytest.raises(NotAFileError):
        MultipartRequestBuilder().add_file("file", str(d), category="audio")

def test_empty_file(write_file):
    p = write_file("empty.mp3", b"")
    with pytest.raises(EmptyFileError):
        MultipartRequestBuilder().add_file("file", str(p), category="audio")

def test_oversized_file_reports_megabytes(write_file):
    p = write_file("big.mp3", b"\x00" * int(1.5 * MB))
    with pytest.raises(FileTooLargeError) as ei:
        MultipartRequestBuilder(max_file_size=MB).add_file("file", str(p), category="audio")
    assert "1.5MB" in str(ei.value)
    assert "1.0MB" in str(ei.value)
    assert ei.value.size == int(1.5 * MB)

def test_unsupported_extension_lists_supported(write_file):
    p = write_file("clip.ogg")
    with pytest.raises(UnsupportedFormatError) as ei:
        MultipartRequestBuilder().add_file("file", str(p), category="audio")
    msg = str(ei.value)
    assert "unsupported audio format: ogg" in msg
    assert "Supported formats: " + ", ".join(AUDIO_FORMATS) in msg

def test_error_classes_are_distinct():
    classes = {FileMissingError, NotAFileError, EmptyFileError, FileTooLargeError, UnsupportedFormatError}
    assert len(classes) == 5

@pytest.mark.parametrize("ext", AUDIO_FORMATS)
def test_every_audio_extension_is_accepted(write_file, ext):
    p = write_file(f"clip.{ext.upper()}")
    parts = MultipartRequestBuilder().add_file("file", str(p), category="audio").build()
    assert isinstance(parts["file"], FilePart)

def test_uncategorized_file_skips_extension_check(write_file):
    p = write_file("notes.xyz")
    parts = MultipartRequestBuilder().add_file("file", str(p)).build()
    assert parts["file"].filename == "notes.xyz"

def test_custom_allowed_formats(write_file):
    p = write_file("clip.ogg")
    b = MultipartRequestBuilder().set_allowed_formats("audio", ["OGG"])
    b.add_file("file", str(p), category="audio")
    assert b.total_request_size() == p.stat().st_size

def test_file_part_metadata(write_file):
    p = write_file("x.png", b"12345")
    part = MultipartRequestBuilder().add_file("image", str(p), category="image").build()["image"]
    assert part.size == 5
    assert part.filename == "x.png"
    assert part.content_type == "image/png"
    assert part.category == "image"

def test_named_file_object(write_file):
    p = write_file("x.wav", b"abc")
    with open(p, "rb") as fh:
        parts = MultipartRequestBuilder().add_file("file", fh, filename="upload.wav", category="audio").build()
    assert parts["file"].path == p
    assert parts["file"].filename == "upload.wav"

def test_unnamed_object_is_rejected():
    with pytest.raises(TypeError):
        inspect_file(object(), "file", MB)

def test_totals_replace_and_clear(write_file):
    a = write_file("a.mp3", b"aaaa")
    b = write_file("b.mp3", b"bb")
    builder = MultipartRequestBuilder()
    builder.add_file("file", str(a), category="audio").add_field("model", "whisper-1")
    assert builder.total_request_size() == 4

    builder.add_file("file", str(b), category="audio")
    assert builder.total_request_size() == 2

    builder.add_field("file", "plain")
    assert builder.total_request_size() == 0

    builder.clear()
    assert builder.build() == {}

def test_build_is_repeatable(write_file):
    p = write_file("a.mp3")
    builder = MultipartRequestBuilder().add_file("file", str(p), category="audio").add_field("temperature", 0)
    first = builder.build()
    first["extra"] = 1
    assert builder.build() == {"file": first["file"], "temperature": 0}

def test_negative_max_size_rejected():
    with pytest.raises(ValueError):
        MultipartRequestBuilder().set_max_file_size(-1)
