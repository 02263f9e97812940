"""
路径 -> 远端 ID 解析缓存。

- 命中直接返回；未命中调用 resolver，并在返回前写入缓存；
- 同一路径的并发未命中只触发一次 resolver 调用，其余调用方等待同一结果（singleflight）；
- 没有 TTL：条目一直有效，直到 invalidate 显式驱逐（路径自身及其下所有子路径）；
- 可选负缓存（cache_missing=True）：NotFoundError 也会被记住，驱逐规则与正缓存相同。

内部只有一把短锁保护字典，resolver 在锁外执行，不同路径之间不会互相等待远端请求。
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable

from ctfilefs.errors import NotFoundError
from ctfilefs.paths import ancestors, is_descendant, to_remote_key

logger = logging.getLogger(__name__)

Resolver = Callable[[str], str]


class _Call:
    """一次进行中的解析；leader 完成后 set event，followers 读取 result / error。"""

    def __init__(self) -> None:
        self.done = threading.Event()
        self.result: str | None = None
        self.error: BaseException | None = None
        # 解析期间被 invalidate 时置 True，结果不再写入缓存
        self.detached = False


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0


class PathIdCache:
    """
    规范化路径 -> 远端 ID 的内存缓存。

    :param resolver: 未命中时调用，resolver(path) -> remote_id；不存在时应抛 NotFoundError
    :param cache_missing: 是否缓存 NotFoundError（负缓存）
    """

    def __init__(self, resolver: Resolver, *, cache_missing: bool = False):
        self._resolver = resolver
        self.cache_missing = cache_missing
        self._lock = threading.Lock()
        self._entries: dict[str, str] = {}
        self._missing: set[str] = set()
        self._inflight: dict[str, _Call] = {}
        self.stats = CacheStats()

    def resolve(self, path: str) -> str:
        """返回 path 对应的远端 ID；resolver 的异常原样传播。"""
        key = to_remote_key(path)
        with self._lock:
            if key in self._entries:
                self.stats.hits += 1
                return self._entries[key]
            if key in self._missing:
                self.stats.hits += 1
                raise NotFoundError(f"not found: {key}", path=key)
            call = self._inflight.get(key)
            leader = call is None
            if leader:
                self.stats.misses += 1
                call = _Call()
                self._inflight[key] = call

        if not leader:
            call.done.wait()
            if call.error is not None:
                raise call.error
            return call.result  # type: ignore[return-value]

        logger.debug("cache miss %s", key)
        try:
            remote_id = self._resolver(key)
        except BaseException as e:
            call.error = e
            with self._lock:
                if self._inflight.get(key) is call:
                    del self._inflight[key]
                if isinstance(e, NotFoundError) and self.cache_missing and not call.detached:
                    self._missing.add(key)
            call.done.set()
            raise

        call.result = remote_id
        with self._lock:
            if self._inflight.get(key) is call:
                del self._inflight[key]
            if not call.detached:
                self._entries[key] = remote_id
        call.done.set()
        return remote_id

    def peek(self, path: str) -> str | None:
        """只查缓存，不触发解析。"""
        with self._lock:
            return self._entries.get(to_remote_key(path))

    def prime(self, path: str, remote_id: str) -> bool:
        """写入已知映射（如来自目录列表）；已存在则不覆盖。返回是否写入。"""
        key = to_remote_key(path)
        with self._lock:
            if key in self._entries or key in self._inflight:
                return False
            self._entries[key] = remote_id
            self._missing.discard(key)
            return True

    def invalidate(self, path: str) -> int:
        """
        驱逐 path 及其下所有条目（正、负缓存），以及其祖先的负缓存。

        进行中的同键解析被分离：其结果仍返回给已在等待的调用方，但不会写入缓存。
        返回驱逐的条目数。
        """
        key = to_remote_key(path)
        parents = set(ancestors(key))
        with self._lock:
            stale = [k for k in self._entries if is_descendant(k, key)]
            for k in stale:
                del self._entries[k]
            missing = [k for k in self._missing if k in parents or is_descendant(k, key)]
            self._missing.difference_update(missing)
            for k in [k for k in self._inflight if is_descendant(k, key)]:
                self._inflight.pop(k).detached = True
            count = len(stale) + len(missing)
            self.stats.evictions += count
        if count:
            logger.debug("invalidated %d cache entries under %s", count, key)
        return count

    def clear(self) -> None:
        with self._lock:
            for call in self._inflight.values():
                call.detached = True
            self.stats.evictions += len(self._entries) + len(self._missing)
            self._entries.clear()
            self._missing.clear()
            self._inflight.clear()

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return to_remote_key(path) in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
