"""
ctfilefs.fileinfo 单元测试：API 响应映射与文件名 / 大小 / 校验和辅助函数。
"""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from ctfilefs import Visibility
from ctfilefs import fileinfo

from tests.config import ISO_2022, TS_2022


def test_from_api_response() -> None:
    data = {
        "id": "f1",
        "name": "document.pdf",
        "size": 2048,
        "updated_at": ISO_2022,
        "is_public": True,
        "checksum": "abc123",
        "download_count": 10,
    }
    attrs = fileinfo.from_api_response(data, "/docs/document.pdf")
    assert attrs.path == "/docs/document.pdf"
    assert attrs.file_size == 2048
    assert attrs.mime_type == "application/pdf"
    assert attrs.visibility is Visibility.PUBLIC
    assert attrs.last_modified == TS_2022
    assert attrs.extra_metadata == {"id": "f1", "checksum": "abc123", "download_count": 10}


def test_from_api_response_minimal() -> None:
    attrs = fileinfo.from_api_response({"id": "f1"}, "/a.bin")
    assert attrs.file_size is None
    assert attrs.last_modified is None
    assert attrs.visibility is Visibility.PRIVATE
    assert attrs.mime_type == "application/octet-stream"
    assert attrs.extra_metadata == {"id": "f1"}


def test_from_api_response_visibility_and_time_fallbacks() -> None:
    attrs = fileinfo.from_api_response({"visibility": "public", "created_at": TS_2022}, "/x.txt")
    assert attrs.visibility is Visibility.PUBLIC
    assert attrs.last_modified == TS_2022
    # is_public 优先
    attrs = fileinfo.from_api_response({"visibility": "public", "is_public": False}, "/x.txt")
    assert attrs.visibility is Visibility.PRIVATE


def test_from_api_response_explicit_mime_type() -> None:
    attrs = fileinfo.from_api_response({"mime_type": "text/markdown"}, "/notes.txt")
    assert attrs.mime_type == "text/markdown"


def test_from_directory_response() -> None:
    data = {"id": "d1", "name": "docs", "updated_at": TS_2022, "is_public": False, "file_count": 5, "folder_count": 2}
    attrs = fileinfo.from_directory_response(data, "/docs")
    assert attrs.path == "/docs"
    assert attrs.visibility is Visibility.PRIVATE
    assert attrs.last_modified == TS_2022
    assert attrs.extra_metadata == {"id": "d1", "file_count": 5, "folder_count": 2}


def test_calculate_checksum() -> None:
    content = "Hello, World!"
    assert fileinfo.calculate_checksum(content) == hashlib.md5(content.encode()).hexdigest()
    assert fileinfo.calculate_checksum(content, "sha1") == hashlib.sha1(content.encode()).hexdigest()
    assert fileinfo.calculate_checksum(b"\x00\x01", "sha256") == hashlib.sha256(b"\x00\x01").hexdigest()


def test_calculate_file_checksum(tmp_path: Path) -> None:
    target = tmp_path / "data.bin"
    payload = b"x" * (fileinfo.CHECKSUM_CHUNK_SIZE + 17)
    target.write_bytes(payload)
    assert fileinfo.calculate_file_checksum(target) == hashlib.md5(payload).hexdigest()
    assert fileinfo.calculate_file_checksum(str(target), "sha1") == hashlib.sha1(payload).hexdigest()


def test_calculate_file_checksum_missing(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        fileinfo.calculate_file_checksum(tmp_path / "missing.bin")


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("document.pdf", "application/pdf"),
        ("image.jpg", "image/jpeg"),
        ("image.JPEG", "image/jpeg"),
        ("video.mp4", "video/mp4"),
        ("archive.zip", "application/zip"),
        ("unknown.xyz", "application/octet-stream"),
        ("README", "application/octet-stream"),
    ],
)
def test_get_mime_type(name: str, expected: str) -> None:
    assert fileinfo.get_mime_type(name) == expected


def test_extension_helpers() -> None:
    assert fileinfo.get_extension("document.pdf") == "pdf"
    assert fileinfo.get_extension("a/b/Photo.JPG") == "jpg"
    assert fileinfo.get_extension("archive.tar.gz") == "gz"
    assert fileinfo.get_extension("README") == ""
    assert fileinfo.get_extension(".bashrc") == ""

    assert fileinfo.get_filename("/path/to/document.pdf") == "document.pdf"
    assert fileinfo.get_filename("document.pdf") == "document.pdf"
    assert fileinfo.get_filename("C:\\dir\\file.txt") == "file.txt"

    assert fileinfo.get_basename("/path/to/document.pdf") == "document"
    assert fileinfo.get_basename("archive.tar.gz") == "archive.tar"
    assert fileinfo.get_basename("README") == "README"


def test_classification() -> None:
    assert fileinfo.is_image("photo.jpg")
    assert fileinfo.is_image("icon.PNG")
    assert not fileinfo.is_image("doc.pdf")

    assert fileinfo.is_video("clip.mp4")
    assert fileinfo.is_video("movie.mkv")
    assert not fileinfo.is_video("song.mp3")

    assert fileinfo.is_audio("song.mp3")
    assert fileinfo.is_audio("track.flac")
    assert not fileinfo.is_audio("clip.mp4")


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (0, "0 B"),
        (512, "512 B"),
        (1023, "1023 B"),
        (1024, "1 KB"),
        (1536, "1.5 KB"),
        (1024 * 1024, "1 MB"),
        (1024**3, "1 GB"),
        (1024**4, "1 TB"),
        (1024**5, "1024 TB"),
        (1024 * 1024 - 1, "1 MB"),
        (1024**3 - 1, "1 GB"),
        (1024 * 1024 - 1024, "1023 KB"),
    ],
)
def test_format_file_size(size: int, expected: str) -> None:
    assert fileinfo.format_file_size(size) == expected


def test_format_file_size_negative() -> None:
    with pytest.raises(ValueError):
        fileinfo.format_file_size(-1)


@pytest.mark.parametrize("name", ["document.pdf", "my file.txt", "file-name_123.jpg", "console.log"])
def test_is_valid_filename_accepts(name: str) -> None:
    assert fileinfo.is_valid_filename(name)


@pytest.mark.parametrize(
    "name",
    ["", "a" * 256, "file/name.txt", "file\\name.txt", "file:name.txt", "file*.txt", 'a"b', "a?b", "a<b", "a>b", "a|b", "CON", "CON.txt", "con.txt", "LPT1.log"],
)
def test_is_valid_filename_rejects(name: str) -> None:
    assert not fileinfo.is_valid_filename(name)


def test_calculate_checksum_unknown_algorithm() -> None:
    with pytest.raises(ValueError):
        fileinfo.calculate_checksum("x", "no-such-digest")


@pytest.mark.parametrize("flag", ["0", "false", "False", "no", "off", 0, False])
def test_is_public_string_flags_parsed(flag) -> None:
    """is_public 为字符串 "0" / "false" 等时按私有处理，与 metadata.extract_visibility 一致。"""
    assert fileinfo.from_api_response({"is_public": flag}, "/a.txt").visibility is Visibility.PRIVATE
    assert fileinfo.from_directory_response({"is_public": flag}, "/d").visibility is Visibility.PRIVATE


@pytest.mark.parametrize("flag", ["1", "true", "TRUE", 1, True])
def test_is_public_truthy_flags(flag) -> None:
    assert fileinfo.from_api_response({"is_public": flag}, "/a.txt").visibility is Visibility.PUBLIC
    assert fileinfo.from_directory_response({"is_public": flag}, "/d").visibility is Visibility.PUBLIC
