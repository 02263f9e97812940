"""
pytest 配置与共享 fixture。

FakeRemote 是内存中的 ctFile 远端：实现 CtFileAdapter 需要的全部方法，并记录每个方法的调用次数，
用于验证缓存命中、singleflight 合并与失效后的重新解析。
"""

from __future__ import annotations

import copy
import itertools
import threading
from collections import Counter
from typing import Any

import pytest

from ctfilefs import CtFileAdapter, CtFileConfig, NotFoundError
from ctfilefs.models import ROOT_ID

from tests.config import (
    CTFILE_API_BASE_URL,
    CTFILE_APP_ID,
    CTFILE_SESSION,
    FAKE_CONTENT,
    FAKE_TREE,
)


class FakeRemote:
    """内存远端。resolve_gate 非空时，resolve_path_to_id 会等待该 Event（用于并发测试）。"""

    def __init__(self, records: list[dict[str, Any]], content: dict[str, bytes]):
        self.records = {ROOT_ID: {"id": ROOT_ID, "name": ""}}
        self.records.update({r["id"]: copy.deepcopy(r) for r in records})
        self.content = dict(content)
        self.calls: Counter[str] = Counter()
        self.resolve_gate: threading.Event | None = None
        self._lock = threading.Lock()
        self._ids = itertools.count(100)

    def _count(self, name: str) -> None:
        with self._lock:
            self.calls[name] += 1

    def _children(self, parent_id: str) -> list[dict[str, Any]]:
        return [r for r in self.records.values() if r.get("parent_id") == parent_id]

    def resolve_path_to_id(self, path: str) -> str:
        self._count("resolve_path_to_id")
        if self.resolve_gate is not None:
            self.resolve_gate.wait(timeout=5)
        current = ROOT_ID
        for name in [seg for seg in path.split("/") if seg]:
            match = next((r for r in self._children(current) if r["name"] == name), None)
            if match is None:
                raise NotFoundError(f"not found: {path}", path=path)
            current = match["id"]
        return current

    def fetch_metadata(self, remote_id: str) -> dict[str, Any]:
        self._count("fetch_metadata")
        if remote_id not in self.records:
            raise NotFoundError(f"no metadata for {remote_id}")
        return copy.deepcopy(self.records[remote_id])

    def list_children(self, remote_id: str) -> list[dict[str, Any]]:
        self._count("list_children")
        return [copy.deepcopy(r) for r in self._children(remote_id)]

    def download(self, remote_id: str) -> bytes:
        self._count("download")
        if remote_id not in self.content:
            raise NotFoundError(f"no content for {remote_id}")
        return self.content[remote_id]

    def create_folder(self, name: str, parent_id: str) -> str:
        self._count("create_folder")
        new_id = f"d{next(self._ids)}"
        self.records[new_id] = {"id": new_id, "parent_id": parent_id, "name": name}
        return new_id

    def delete_file(self, remote_id: str) -> None:
        self._count("delete_file")
        self.records.pop(remote_id, None)
        self.content.pop(remote_id, None)

    def delete_folder(self, folder_id: str) -> None:
        self._count("delete_folder")
        self._remove_tree(folder_id)

    def _remove_tree(self, folder_id: str) -> None:
        for child in self._children(folder_id):
            if child["id"].startswith("d"):
                self._remove_tree(child["id"])
            else:
                self.records.pop(child["id"], None)
                self.content.pop(child["id"], None)
        self.records.pop(folder_id, None)

    # 带外修改（不经过适配器）
    def rename(self, remote_id: str, new_name: str) -> None:
        self.records[remote_id]["name"] = new_name


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """清除 CTFILE_* 环境变量，并将配置目录指向临时目录，避免污染 ~/.config/ctfilefs。"""
    for name in ("CTFILE_SESSION", "CTFILE_APP_ID", "CTFILE_API_BASE_URL"):
        monkeypatch.delenv(name, raising=False)
    config_dir = tmp_path / "ctfilefs"

    def _config_dir():
        return config_dir

    monkeypatch.setattr("ctfilefs.config._config_dir", _config_dir)


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote(FAKE_TREE, FAKE_CONTENT)


@pytest.fixture
def adapter(remote: FakeRemote) -> CtFileAdapter:
    return CtFileAdapter(remote)


@pytest.fixture
def config() -> CtFileConfig:
    return CtFileConfig(session=CTFILE_SESSION, app_id=CTFILE_APP_ID, api_base_url=CTFILE_API_BASE_URL, page_size=2)
