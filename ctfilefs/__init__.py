"""ctFile 云存储的文件系统适配层：路径规范化、路径 -> ID 解析缓存、元数据规范化。"""

from ctfilefs.adapter import CtFileAdapter
from ctfilefs.cache import PathIdCache
from ctfilefs.client import CtFileClient
from ctfilefs.config import CtFileConfig
from ctfilefs.errors import (
    ApiError,
    AuthenticationError,
    ConfigError,
    CtFileError,
    InvalidPathError,
    NotFoundError,
)
from ctfilefs.models import (
    DirectoryAttributes,
    FileAttributes,
    StorageAttributes,
    Visibility,
)

__all__ = [
    "CtFileAdapter",
    "CtFileClient",
    "CtFileConfig",
    "PathIdCache",
    "FileAttributes",
    "DirectoryAttributes",
    "StorageAttributes",
    "Visibility",
    "CtFileError",
    "InvalidPathError",
    "NotFoundError",
    "ApiError",
    "AuthenticationError",
    "ConfigError",
]
