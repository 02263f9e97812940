"""
连接配置：session、app id、API 地址、超时、缓存策略。

本地持久化到 ~/.config/ctfilefs/config.json（CLI 登录一次后复用）；
环境变量 CTFILE_SESSION / CTFILE_APP_ID / CTFILE_API_BASE_URL 优先于文件中的值。
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from ctfilefs.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://rest.ctfile.com/v1"

ENV_OVERRIDES = {
    "session": "CTFILE_SESSION",
    "app_id": "CTFILE_APP_ID",
    "api_base_url": "CTFILE_API_BASE_URL",
}


@dataclass
class CtFileConfig:
    session: str
    app_id: str
    api_base_url: str = DEFAULT_API_BASE_URL
    timeout: float = 30.0
    connect_timeout: float = 10.0
    page_size: int = 100
    cache_missing: bool = False
    verify: bool = True

    def __post_init__(self) -> None:
        self.api_base_url = self.api_base_url.rstrip("/")

    def validate(self) -> None:
        """检查必填项与取值范围，不合法时抛 ConfigError。"""
        if not isinstance(self.session, str) or len(self.session) < 10:
            raise ConfigError("session token must be a string with at least 10 characters")
        if not isinstance(self.app_id, str) or len(self.app_id) < 3:
            raise ConfigError("app id must be a string with at least 3 characters")
        parsed = urlparse(self.api_base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ConfigError(f"api_base_url must be an http(s) URL: {self.api_base_url!r}")
        for name in ("timeout", "connect_timeout", "page_size"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CtFileConfig:
        """忽略未知键；缺少 session / app_id 时抛 ConfigError。"""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        missing = [k for k in ("session", "app_id") if not values.get(k)]
        if missing:
            raise ConfigError(f"missing config keys: {', '.join(missing)}")
        return cls(**values)

    def to_dict(self, *, redact: bool = False) -> dict[str, Any]:
        data = asdict(self)
        if redact:
            data["session"] = _mask(self.session)
        return data


def _mask(secret: str) -> str:
    if len(secret) <= 4:
        return "*" * len(secret)
    return secret[:2] + "*" * (len(secret) - 4) + secret[-2:]


def _config_dir() -> Path:
    """配置目录：~/.config/ctfilefs（所有平台统一）。"""
    return Path.home() / ".config" / "ctfilefs"


def _config_path() -> Path:
    return _config_dir() / "config.json"


def _apply_env(data: dict[str, Any]) -> dict[str, Any]:
    for key, env_name in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            data[key] = value
    return data


def load_config() -> CtFileConfig | None:
    """读取本地配置并叠加环境变量；不存在或无效则返回 None。"""
    p = _config_path()
    data: dict[str, Any] = {}
    if p.exists():
        try:
            loaded = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("ignoring unreadable config %s: %s", p, e)
            loaded = None
        if isinstance(loaded, dict):
            data = loaded
    data = _apply_env(data)
    if not data:
        return None
    try:
        return CtFileConfig.from_dict(data)
    except (ConfigError, TypeError) as e:
        logger.warning("ignoring invalid config: %s", e)
        return None


def save_config(config: CtFileConfig) -> None:
    """保存配置到本地。"""
    p = _config_path()
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(config.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")


def clear_config() -> bool:
    """清除本地配置；存在则删除并返回 True。"""
    p = _config_path()
    if p.exists():
        p.unlink()
        return True
    return False
