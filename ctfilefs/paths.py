"""
路径规范化与校验（安全边界）。

所有外部传入的路径在构造远端请求前都必须经过 validate / require_valid；
normalize 给出稳定的缓存键，使 a//b、a/./b、a/x/../b 命中同一条目。

约定：
- 只使用 / 作为分隔符，\\ 会被转换；
- 绝对路径（/ 或盘符 C:/ 开头）中越过根的 .. 被丢弃，相对路径中多余的 .. 保留在开头；
- 根路径规范化为 "/"，空串规范化为空串。
"""

from __future__ import annotations

import logging
import re

from ctfilefs.errors import InvalidPathError

logger = logging.getLogger(__name__)

SEPARATOR = "/"

# Windows 保留设备名，大小写不敏感，带扩展名同样保留（如 con.txt）
RESERVED_NAMES = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{i}" for i in range(1, 10)]
    + [f"LPT{i}" for i in range(1, 10)]
)

_DRIVE_RE = re.compile(r"^[A-Za-z]:[/\\]")
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")


def _split_anchor(path: str) -> tuple[str, str]:
    """拆出根锚点（""、"/" 或 "C:/"）与其后的部分，已统一为 / 分隔。"""
    path = path.replace("\\", SEPARATOR)
    if _DRIVE_RE.match(path):
        return path[:2] + SEPARATOR, path[3:]
    if path.startswith(SEPARATOR):
        return SEPARATOR, path[1:]
    return "", path


def normalize(path: str) -> str:
    """
    规范化路径：统一分隔符、合并重复分隔符、消去 . 与 ..。

    >>> normalize("//folder///file.txt")
    '/folder/file.txt'
    >>> normalize("../../file.txt")
    '../../file.txt'
    """
    if not path:
        return ""
    anchor, rest = _split_anchor(path)
    parts: list[str] = []
    for segment in rest.split(SEPARATOR):
        if segment in ("", "."):
            continue
        if segment == "..":
            if parts and parts[-1] != "..":
                parts.pop()
            elif not anchor:
                parts.append(segment)
            # 绝对路径：越过根的 .. 直接丢弃
            continue
        parts.append(segment)
    return anchor + SEPARATOR.join(parts)


def _escapes_root(path: str) -> bool:
    """按原始分段逐步行走，任何一步 .. 越过起点即视为越界。"""
    _, rest = _split_anchor(path)
    depth = 0
    for segment in rest.split(SEPARATOR):
        if segment in ("", "."):
            continue
        if segment == "..":
            depth -= 1
            if depth < 0:
                return True
        else:
            depth += 1
    return False


def is_reserved_name(name: str) -> bool:
    """name（去掉第一个 . 之后的部分）是否为保留设备名。"""
    return name.split(".", 1)[0].upper() in RESERVED_NAMES


def validation_error(path: str) -> str | None:
    """返回校验失败原因；合法时返回 None。"""
    if not path:
        return "empty"
    if "\0" in path:
        return "null byte"
    if _CONTROL_RE.search(path):
        return "control character"
    if _escapes_root(path):
        return "traversal"
    if any(is_reserved_name(seg) for seg in normalize(path).split(SEPARATOR) if seg):
        return "reserved name"
    return None


def validate(path: str) -> bool:
    """路径是否可安全用于构造远端请求。"""
    return validation_error(path) is None


def require_valid(path: str) -> str:
    """校验并返回规范化路径；不合法时抛 InvalidPathError（不做任何纠正）。"""
    reason = validation_error(path)
    if reason is not None:
        logger.debug("rejected path %r: %s", path, reason)
        raise InvalidPathError(path, reason)
    return normalize(path)


def is_absolute(path: str) -> bool:
    """以 / 开头，或以盘符 C:/ 、C:\\ 开头。"""
    if not path:
        return False
    return path[0] == SEPARATOR or bool(_DRIVE_RE.match(path))


def join(*parts: str) -> str:
    """用单个分隔符拼接非空部分并规范化；无参数返回空串。"""
    if not parts:
        return ""
    return normalize(SEPARATOR.join(p for p in parts if p))


def dirname(path: str) -> str:
    """父路径。空串、根、无分隔符的路径返回空串；/file.txt 返回 /。"""
    anchor, rest = _split_anchor(normalize(path))
    if not rest:
        return ""
    head, sep, _ = rest.rpartition(SEPARATOR)
    if not sep:
        return anchor
    return anchor + head


def basename(path: str) -> str:
    """最后一段；空串与根返回空串。"""
    _, rest = _split_anchor(normalize(path))
    return rest.rpartition(SEPARATOR)[2]


def to_remote_key(path: str) -> str:
    """
    远端使用的绝对键：规范化后以 / 开头、无末尾 /。

    远端没有盘符，C:/ 锚点按根处理（"a/b" -> "/a/b"，"" -> "/"，"C:/a" -> "/a"，"C:/" -> "/"）。
    """
    _, rest = _split_anchor(normalize(path))
    return SEPARATOR + rest.strip(SEPARATOR)


def ancestors(path: str) -> list[str]:
    """从根开始的所有祖先键（不含自身），如 /a/b/c -> ["/", "/a", "/a/b"]。"""
    key = to_remote_key(path)
    if key == SEPARATOR:
        return []
    segments = key.strip(SEPARATOR).split(SEPARATOR)
    result = [SEPARATOR]
    for i in range(1, len(segments)):
        result.append(SEPARATOR + SEPARATOR.join(segments[:i]))
    return result


def is_descendant(path: str, parent: str) -> bool:
    """path 等于 parent 或位于其下（两者均为远端键）。"""
    if parent == SEPARATOR:
        return True
    return path == parent or path.startswith(parent + SEPARATOR)
