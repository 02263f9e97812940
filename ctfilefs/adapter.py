"""
文件系统操作层：把 ctFile 的文件/目录暴露为统一的路径 + 属性接口。

每个公开方法的第一步都是 paths.require_valid，非法路径直接抛 InvalidPathError，
不会产生任何远端请求。路径 -> ID 通过 PathIdCache 解析；删除、创建等变更操作
完成（或失败）后都会驱逐该路径及其子路径的缓存。
"""

from __future__ import annotations

import logging
from typing import Iterator, Protocol

from ctfilefs import fileinfo
from ctfilefs.cache import PathIdCache
from ctfilefs.errors import CtFileError, NotFoundError
from ctfilefs.metadata import (
    create_minimal_directory_attributes,
    create_minimal_file_attributes,
    extract_mime_type,
    extract_timestamp,
    extract_visibility,
    merge_directory_attributes,
    merge_file_attributes,
    to_directory_attributes,
    to_file_attributes,
)
from ctfilefs.models import (
    DirectoryAttributes,
    FileAttributes,
    RawRecord,
    StorageAttributes,
    is_directory_id,
    is_file_id,
)
from ctfilefs.paths import SEPARATOR, join, require_valid, to_remote_key, validate

logger = logging.getLogger(__name__)

DIRECTORY_TYPES = ("folder", "dir", "directory")


class RemoteClient(Protocol):
    """适配层需要的远端能力（CtFileClient 即为实现）。"""

    def resolve_path_to_id(self, path: str) -> str: ...

    def fetch_metadata(self, remote_id: str) -> RawRecord: ...

    def list_children(self, remote_id: str) -> list[RawRecord]: ...

    def download(self, remote_id: str) -> bytes: ...

    def create_folder(self, name: str, parent_id: str) -> str: ...

    def delete_file(self, remote_id: str) -> None: ...

    def delete_folder(self, folder_id: str) -> None: ...


def _is_directory_record(item: RawRecord) -> bool:
    if str(item.get("type") or "").lower() in DIRECTORY_TYPES:
        return True
    return is_directory_id(str(item.get("id") or ""))


class CtFileAdapter:
    """
    ctFile 文件系统适配器。

    :param client: 远端客户端（resolve_path_to_id / fetch_metadata / list_children 等）
    :param cache: 可选，自定义解析缓存；默认以 client.resolve_path_to_id 为 resolver 新建
    :param cache_missing: 默认缓存是否记住不存在的路径（负缓存）
    """

    def __init__(self, client: RemoteClient, *, cache: PathIdCache | None = None, cache_missing: bool = False):
        self.client = client
        self.cache = cache if cache is not None else PathIdCache(client.resolve_path_to_id, cache_missing=cache_missing)

    def _key(self, path: str) -> str:
        return to_remote_key(require_valid(path))

    def _file_id(self, key: str) -> str:
        remote_id = self.cache.resolve(key)
        if not is_file_id(remote_id):
            raise NotFoundError(f"not a file: {key}", path=key)
        return remote_id

    def _directory_id(self, key: str) -> str:
        remote_id = self.cache.resolve(key)
        if not is_directory_id(remote_id):
            raise NotFoundError(f"not a directory: {key}", path=key)
        return remote_id

    def _record(self, key: str) -> RawRecord:
        remote_id = self.cache.resolve(key)
        return {**self.client.fetch_metadata(remote_id), "path": key, "id": remote_id}

    # ------------------------- 存在性 -------------------------

    def file_exists(self, path: str) -> bool:
        key = self._key(path)
        try:
            return is_file_id(self.cache.resolve(key))
        except NotFoundError:
            return False

    def directory_exists(self, path: str) -> bool:
        key = self._key(path)
        try:
            return is_directory_id(self.cache.resolve(key))
        except NotFoundError:
            return False

    # ------------------------- 属性 -------------------------

    def file_attributes(self, path: str) -> FileAttributes:
        """完整文件属性：以 ctFile 响应为准，缺失字段再用通用别名补全。"""
        key = self._key(path)
        remote_id = self._file_id(key)
        data = self.client.fetch_metadata(remote_id)
        attributes = fileinfo.from_api_response({"id": remote_id, **data}, key)
        return merge_file_attributes(attributes, {**data, "path": key})

    def directory_attributes(self, path: str) -> DirectoryAttributes:
        key = self._key(path)
        remote_id = self._directory_id(key)
        data = self.client.fetch_metadata(remote_id)
        attributes = fileinfo.from_directory_response({"id": remote_id, **data}, key)
        return merge_directory_attributes(attributes, {**data, "path": key})

    def visibility(self, path: str) -> StorageAttributes:
        key = self._key(path)
        record = self._record(key)
        if is_directory_id(record["id"]):
            return DirectoryAttributes(key, visibility=extract_visibility(record))
        return FileAttributes(key, visibility=extract_visibility(record))

    def mime_type(self, path: str) -> FileAttributes:
        key = self._key(path)
        self._file_id(key)
        record = self._record(key)
        return FileAttributes(key, mime_type=extract_mime_type(record))

    def last_modified(self, path: str) -> StorageAttributes:
        key = self._key(path)
        record = self._record(key)
        if is_directory_id(record["id"]):
            return DirectoryAttributes(key, last_modified=extract_timestamp(record))
        return FileAttributes(key, last_modified=extract_timestamp(record))

    def file_size(self, path: str) -> FileAttributes:
        key = self._key(path)
        self._file_id(key)
        return create_minimal_file_attributes(key, to_file_attributes(self._record(key)).file_size)

    # ------------------------- 读取 -------------------------

    def list_contents(self, path: str, deep: bool = False) -> Iterator[StorageAttributes]:
        """
        列出目录内容；deep=True 时递归子目录（先目录本身，再其内容）。

        列表中得到的子项 ID 会预先写入缓存，之后按这些路径访问不再逐段解析。
        """
        key = self._key(path)
        folder_id = self._directory_id(key)
        return self._walk(key, folder_id, deep)

    def _walk(self, key: str, folder_id: str, deep: bool) -> Iterator[StorageAttributes]:
        for item in self.client.list_children(folder_id):
            name = item.get("name")
            remote_id = item.get("id")
            if not isinstance(name, str) or remote_id is None:
                continue
            if SEPARATOR in name or "\\" in name or not validate(name) or name in (".", ".."):
                logger.warning("skipping entry with unusable name %r under %s", name, key)
                continue
            child = join(key, name)
            self.cache.prime(child, str(remote_id))
            record = {**item, "path": child}
            if _is_directory_record(item):
                yield to_directory_attributes(record)
                if deep:
                    yield from self._walk(child, str(remote_id), deep)
            else:
                yield to_file_attributes(record)

    def read(self, path: str) -> bytes:
        key = self._key(path)
        return self.client.download(self._file_id(key))

    # ------------------------- 变更 -------------------------

    def create_directory(self, path: str) -> DirectoryAttributes:
        """逐段创建缺失的目录（已存在则跳过），返回最终目录的最小属性。"""
        key = self._key(path)
        current = SEPARATOR
        current_id = self._directory_id(current)
        for name in [seg for seg in key.split(SEPARATOR) if seg]:
            child = join(current, name)
            try:
                child_id = self.cache.resolve(child)
            except NotFoundError:
                try:
                    child_id = self.client.create_folder(name, current_id)
                finally:
                    self.cache.invalidate(child)
                self.cache.prime(child, child_id)
                logger.debug("created directory %s (%s)", child, child_id)
            else:
                if not is_directory_id(child_id):
                    raise CtFileError(f"cannot create directory, a file exists at {child}")
            current, current_id = child, child_id
        return create_minimal_directory_attributes(key)

    def delete(self, path: str) -> None:
        key = self._key(path)
        remote_id = self._file_id(key)
        try:
            self.client.delete_file(remote_id)
        finally:
            self.cache.invalidate(key)

    def delete_directory(self, path: str) -> None:
        """删除目录及其内容；该路径下的所有缓存条目随之失效。"""
        key = self._key(path)
        if key == SEPARATOR:
            raise CtFileError("refusing to delete the root directory")
        remote_id = self._directory_id(key)
        try:
            self.client.delete_folder(remote_id)
        finally:
            self.cache.invalidate(key)

    def invalidate(self, path: str | None = None) -> None:
        """外部（带外）修改后调用：驱逐 path 及其子路径；None 清空全部。"""
        if path is None:
            self.cache.clear()
            return
        self.cache.invalidate(self._key(path))
