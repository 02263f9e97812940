"""
ctFile API 响应 -> 规范属性，以及文件名 / 类型 / 大小 / 校验和等辅助函数。

与 metadata 模块的区别：这里的输入是 ctFile 接口返回的 data 对象（id, name, size,
updated_at, is_public, checksum, download_count, file_count, folder_count ...），
path 由调用方给出。
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any

from ctfilefs import mime
from ctfilefs.metadata import parse_bool, parse_timestamp
from ctfilefs.models import ApiResponse, DirectoryAttributes, FileAttributes, Visibility
from ctfilefs.paths import is_reserved_name

CHECKSUM_CHUNK_SIZE = 1024 * 1024  # 1 MiB

INVALID_FILENAME_CHARS = frozenset('/\\:*?"<>|')

MAX_FILENAME_LENGTH = 255

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def _visibility(data: ApiResponse) -> Visibility:
    # is_public 优先于 visibility 字符串
    if data.get("is_public") is not None:
        return Visibility.PUBLIC if parse_bool(data["is_public"]) else Visibility.PRIVATE
    if data.get("visibility") is not None:
        return Visibility.PUBLIC if str(data["visibility"]).lower() == "public" else Visibility.PRIVATE
    return Visibility.PRIVATE


def _last_modified(data: ApiResponse) -> int | None:
    for field in ("updated_at", "created_at"):
        parsed = parse_timestamp(data.get(field))
        if parsed is not None:
            return parsed
    return None


def _optional_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def from_api_response(data: ApiResponse, path: str) -> FileAttributes:
    """文件信息响应 -> FileAttributes；extra_metadata 原样携带 id / checksum / download_count。"""
    extra: dict[str, Any] = {}
    for key in ("id", "checksum", "download_count"):
        if data.get(key) is not None:
            extra[key] = data[key]
    mime_type = data.get("mime_type")
    return FileAttributes(
        path=path,
        file_size=_optional_int(data.get("size")),
        visibility=_visibility(data),
        last_modified=_last_modified(data),
        mime_type=mime_type if isinstance(mime_type, str) and mime_type else get_mime_type(path),
        extra_metadata=extra,
    )


def from_directory_response(data: ApiResponse, path: str) -> DirectoryAttributes:
    """目录信息响应 -> DirectoryAttributes；extra_metadata 携带 id / file_count / folder_count。"""
    extra: dict[str, Any] = {}
    for key in ("id", "file_count", "folder_count"):
        if data.get(key) is not None:
            extra[key] = data[key]
    return DirectoryAttributes(
        path=path,
        visibility=_visibility(data),
        last_modified=_last_modified(data),
        extra_metadata=extra,
    )


def calculate_checksum(content: bytes | str, algorithm: str = "md5") -> str:
    """内容摘要（十六进制）。algorithm 为 hashlib 支持的名称，如 md5、sha1、sha256。"""
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.new(algorithm, content).hexdigest()


def calculate_file_checksum(file_path: str | Path, algorithm: str = "md5") -> str:
    """按块读取本地文件计算摘要，不整文件读入内存。"""
    file_path = Path(file_path)
    if not file_path.is_file():
        raise FileNotFoundError(f"file not found: {file_path}")
    digest = hashlib.new(algorithm)
    with file_path.open("rb") as fp:
        while True:
            chunk = fp.read(CHECKSUM_CHUNK_SIZE)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()


def get_mime_type(filename: str) -> str:
    return mime.lookup(mime.extension_of(filename)) or mime.DEFAULT_MIME_TYPE


def get_extension(path: str) -> str:
    """扩展名（小写，不含点），如 a/b/Photo.JPG -> jpg。"""
    return mime.extension_of(path)


def get_filename(path: str) -> str:
    """最后一段（含扩展名）。"""
    return path.replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]


def get_basename(path: str) -> str:
    """最后一段去掉扩展名，如 a/archive.tar.gz -> archive.tar。"""
    filename = get_filename(path)
    ext = mime.extension_of(filename)
    return filename[: -(len(ext) + 1)] if ext else filename


def is_image(filename: str) -> bool:
    return get_extension(filename) in mime.IMAGE_EXTENSIONS


def is_video(filename: str) -> bool:
    return get_extension(filename) in mime.VIDEO_EXTENSIONS


def is_audio(filename: str) -> bool:
    return get_extension(filename) in mime.AUDIO_EXTENSIONS


def format_file_size(size: int) -> str:
    """
    人类可读大小（1024 进制，B/KB/MB/GB/TB）。

    整数值不带小数（1024 -> "1 KB"），否则保留一位（1536 -> "1.5 KB"）。
    """
    if size < 0:
        raise ValueError(f"size must be non-negative: {size}")
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    text = f"{value:.1f}"
    # 舍入后进位到 1024 时换用更大的单位，如 1048575 -> "1 MB"
    if float(text) >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
        text = f"{value:.1f}"
    if text.endswith(".0"):
        text = text[:-2]
    return f"{text} {SIZE_UNITS[unit]}"


def is_valid_filename(name: str) -> bool:
    """单个文件名是否合法：非空、不超过 255 字符、不含 / \\ : * ? " < > |、不是保留设备名。"""
    if not name or len(name) > MAX_FILENAME_LENGTH:
        return False
    if any(ch in INVALID_FILENAME_CHARS for ch in name):
        return False
    return not is_reserved_name(name)
