"""
规范属性模型（与 ctFile API 响应形态无关）。

所有文件系统操作返回的都是 FileAttributes / DirectoryAttributes：
- path 必有，且等于解析时使用的规范化路径；
- 其它字段尽力填充，可以为 None；
- extra_metadata 存放远端 id、checksum、下载次数、子项数量、原始权限位等。

远端 ID 约定：f 开头为文件，d 开头为目录，根目录为 d0。
"""

from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from typing import Any, Union

# RawRecord：通用键值记录（由 MetadataMapper 处理），键不保证存在，同一概念可能有多个别名
RawRecord = dict[str, Any]

# ApiResponse：ctFile API 的 data 对象（由 fileinfo 处理），如 id, name, size, updated_at, is_public
ApiResponse = dict[str, Any]

ROOT_ID = "d0"


class Visibility(str, enum.Enum):
    PUBLIC = "public"
    PRIVATE = "private"


@dataclass(frozen=True)
class FileAttributes:
    """文件属性。"""

    path: str
    file_size: int | None = None
    visibility: Visibility | None = None
    last_modified: int | None = None
    mime_type: str | None = None
    extra_metadata: dict[str, Any] = field(default_factory=dict)

    is_file = True
    is_dir = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["type"] = "file"
        data["visibility"] = self.visibility.value if self.visibility else None
        return data


@dataclass(frozen=True)
class DirectoryAttributes:
    """目录属性。"""

    path: str
    visibility: Visibility | None = None
    last_modified: int | None = None
    extra_metadata: dict[str, Any] = field(default_factory=dict)

    is_file = False
    is_dir = True

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["type"] = "dir"
        data["visibility"] = self.visibility.value if self.visibility else None
        return data


StorageAttributes = Union[FileAttributes, DirectoryAttributes]


def is_file_id(remote_id: str) -> bool:
    return str(remote_id).startswith("f")


def is_directory_id(remote_id: str) -> bool:
    return str(remote_id).startswith("d")
