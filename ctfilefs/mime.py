"""扩展名 -> MIME 类型表及扩展名分类。"""

from __future__ import annotations

DEFAULT_MIME_TYPE = "application/octet-stream"

MIME_TYPES: dict[str, str] = {
    # 文本
    "txt": "text/plain",
    "md": "text/markdown",
    "csv": "text/csv",
    "html": "text/html",
    "htm": "text/html",
    "css": "text/css",
    "js": "application/javascript",
    "json": "application/json",
    "xml": "application/xml",
    # 图片
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "bmp": "image/bmp",
    "webp": "image/webp",
    "svg": "image/svg+xml",
    "ico": "image/x-icon",
    # 文档
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    # 压缩包
    "zip": "application/zip",
    "rar": "application/x-rar-compressed",
    "7z": "application/x-7z-compressed",
    "tar": "application/x-tar",
    "gz": "application/gzip",
    # 音频
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
    "m4a": "audio/mp4",
    "aac": "audio/aac",
    # 视频
    "mp4": "video/mp4",
    "avi": "video/x-msvideo",
    "mov": "video/quicktime",
    "wmv": "video/x-ms-wmv",
    "flv": "video/x-flv",
    "mkv": "video/x-matroska",
    "webm": "video/webm",
}

IMAGE_EXTENSIONS = frozenset(ext for ext, mime in MIME_TYPES.items() if mime.startswith("image/"))
VIDEO_EXTENSIONS = frozenset(ext for ext, mime in MIME_TYPES.items() if mime.startswith("video/"))
AUDIO_EXTENSIONS = frozenset(ext for ext, mime in MIME_TYPES.items() if mime.startswith("audio/"))


def extension_of(name: str) -> str:
    """最后一段路径中最后一个 . 之后的部分（小写）；以 . 开头的隐藏文件无扩展名。"""
    last = name.replace("\\", "/").rsplit("/", 1)[-1]
    stem, dot, ext = last.rpartition(".")
    if not dot or not stem:
        return ""
    return ext.lower()


def lookup(extension: str) -> str | None:
    """按扩展名（不含点，大小写不敏感）查 MIME 类型；未知返回 None。"""
    return MIME_TYPES.get(extension.lower())
