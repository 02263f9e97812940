"""
通用元数据记录 -> 规范属性（FileAttributes / DirectoryAttributes）。

远端不同接口对同一概念使用不同字段名，这里用显式、有序的别名表处理，不做动态探测：
- MIME：mime_type > mimetype > content_type > path 扩展名 > name 扩展名 > application/octet-stream
- 可见性：visibility > permissions / mode（其他用户可读位 0o004）> public / is_public > private > private
- 修改时间：TIMESTAMP_FIELDS 中第一个存在的字段；整数或可解析的日期字符串
无法识别的值一律回落到默认值（None 或 private），不抛异常。
"""

from __future__ import annotations

import datetime
import re
from dataclasses import replace
from email.utils import parsedate_to_datetime
from typing import Any

from ctfilefs import mime
from ctfilefs.models import DirectoryAttributes, FileAttributes, RawRecord, Visibility

MIME_TYPE_FIELDS = ("mime_type", "mimetype", "content_type")

TIMESTAMP_FIELDS = (
    "timestamp",
    "last_modified",
    "lastmodified",
    "modified",
    "mtime",
    "modification_time",
    "date_modified",
    "updated_at",
)

PERMISSION_FIELDS = ("permissions", "mode")

PUBLIC_FLAG_FIELDS = ("public", "is_public")

# 其他用户可读
WORLD_READABLE = 0o004

DEFAULT_VISIBILITY = Visibility.PRIVATE

_EPOCH_RE = re.compile(r"^-?\d+$")


def parse_timestamp(value: Any) -> int | None:
    """整数原样返回；字符串按 ISO 8601 / RFC 2822 / 纯数字解析为 epoch 秒（无时区按 UTC）。"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, datetime.datetime):
        dt = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if _EPOCH_RE.match(text):
            return int(text)
        dt = _parse_datetime(text)
        if dt is None:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=datetime.timezone.utc)
    return int(dt.timestamp())


def _parse_datetime(text: str) -> datetime.datetime | None:
    iso = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        return datetime.datetime.fromisoformat(iso)
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(text)
    except (TypeError, ValueError, IndexError):
        return None


def _to_size(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        size = int(value)
    except (TypeError, ValueError):
        return None
    return size if size >= 0 else None


def _permission_bits(value: Any) -> int | None:
    """数字或八进制字符串（"644"、"0o644"）-> 整数；无法识别返回 None。"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text.startswith("0o"):
            text = text[2:]
        try:
            return int(text, 8)
        except ValueError:
            return None
    return None


def parse_bool(value: Any) -> bool:
    """布尔标记：字符串 "1"、"true"、"yes"、"on"（大小写不敏感）为真，"0"、"false" 等为假；其它类型按真值判断。"""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def extract_mime_type(record: RawRecord) -> str:
    for field in MIME_TYPE_FIELDS:
        value = record.get(field)
        if isinstance(value, str) and value:
            return value
    for field in ("path", "name"):
        value = record.get(field)
        if isinstance(value, str):
            found = mime.lookup(mime.extension_of(value))
            if found is not None:
                return found
    return mime.DEFAULT_MIME_TYPE


def extract_visibility(record: RawRecord) -> Visibility:
    value = record.get("visibility")
    if isinstance(value, Visibility):
        return value
    if value is not None:
        lowered = str(value).strip().lower()
        if lowered in (Visibility.PUBLIC.value, Visibility.PRIVATE.value):
            return Visibility(lowered)

    for field in PERMISSION_FIELDS:
        bits = _permission_bits(record.get(field))
        if bits is not None:
            return Visibility.PUBLIC if bits & WORLD_READABLE else Visibility.PRIVATE

    for field in PUBLIC_FLAG_FIELDS:
        if record.get(field) is not None:
            return Visibility.PUBLIC if parse_bool(record[field]) else Visibility.PRIVATE
    if record.get("private") is not None:
        return Visibility.PRIVATE if parse_bool(record["private"]) else Visibility.PUBLIC

    return DEFAULT_VISIBILITY


def extract_timestamp(record: RawRecord) -> int | None:
    """按 TIMESTAMP_FIELDS 顺序取第一个可解析的值；都没有返回 None。"""
    for field in TIMESTAMP_FIELDS:
        if record.get(field) is None:
            continue
        parsed = parse_timestamp(record[field])
        if parsed is not None:
            return parsed
    return None


def _extra_metadata(record: RawRecord) -> dict[str, Any]:
    extra: dict[str, Any] = {}
    for key in ("id", *PERMISSION_FIELDS):
        if record.get(key) is not None:
            extra[key] = record[key]
    return extra


def to_file_attributes(record: RawRecord) -> FileAttributes:
    return FileAttributes(
        path=str(record.get("path") or ""),
        file_size=_to_size(record.get("size")),
        visibility=extract_visibility(record),
        last_modified=extract_timestamp(record),
        mime_type=extract_mime_type(record),
        extra_metadata=_extra_metadata(record),
    )


def to_directory_attributes(record: RawRecord) -> DirectoryAttributes:
    return DirectoryAttributes(
        path=str(record.get("path") or ""),
        visibility=extract_visibility(record),
        last_modified=extract_timestamp(record),
        extra_metadata=_extra_metadata(record),
    )


def create_minimal_file_attributes(path: str, size: int | None = None) -> FileAttributes:
    """未做元数据请求时使用：只有 path（和 size）。"""
    return FileAttributes(path=path, file_size=size)


def create_minimal_directory_attributes(path: str) -> DirectoryAttributes:
    return DirectoryAttributes(path=path)


def merge_file_attributes(existing: FileAttributes, record: RawRecord) -> FileAttributes:
    """
    用 record 补全 existing 中为 None 的字段，已有值一律保留（先写者优先）。

    返回新对象，existing 不变。
    """
    return replace(
        existing,
        file_size=existing.file_size if existing.file_size is not None else _to_size(record.get("size")),
        visibility=existing.visibility if existing.visibility is not None else extract_visibility(record),
        last_modified=existing.last_modified if existing.last_modified is not None else extract_timestamp(record),
        mime_type=existing.mime_type if existing.mime_type is not None else extract_mime_type(record),
        extra_metadata={**_extra_metadata(record), **existing.extra_metadata},
    )


def merge_directory_attributes(existing: DirectoryAttributes, record: RawRecord) -> DirectoryAttributes:
    return replace(
        existing,
        visibility=existing.visibility if existing.visibility is not None else extract_visibility(record),
        last_modified=existing.last_modified if existing.last_modified is not None else extract_timestamp(record),
        extra_metadata={**_extra_metadata(record), **existing.extra_metadata},
    )
