"""
ctFile 适配层异常。

所有异常均继承 CtFileError；InvalidPathError 同时是 ValueError，便于调用方按参数错误处理。
"""

from __future__ import annotations

from typing import Any


class CtFileError(Exception):
    """ctFile 相关异常基类。code 为远端错误码（无则 0），details 为原始错误数据。"""

    def __init__(self, message: str = "", code: int = 0, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}


class InvalidPathError(CtFileError, ValueError):
    """路径未通过校验（空、空字节、控制字符、越界 ..、保留设备名）。"""

    def __init__(self, path: str, reason: str):
        super().__init__(f"invalid path {path!r}: {reason}")
        self.path = path
        self.reason = reason


class NotFoundError(CtFileError):
    """远端不存在该路径或 ID。"""

    def __init__(self, message: str, path: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.path = path


class ApiError(CtFileError):
    """远端 API 返回错误（HTTP >= 400 或响应体 code != 200）。"""

    def __init__(self, message: str, status_code: int = 0, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.status_code = status_code


class AuthenticationError(ApiError):
    """session / app id 无效（HTTP 401/403）。"""


class ConfigError(CtFileError):
    """配置缺失或不合法。"""
