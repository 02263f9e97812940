"""
ctFile REST API 客户端（远端协作方）。

认证方式：每个请求携带 myapp-id 与 session 头。
响应为 JSON：{"code": 200, "message": "...", "data": ...}；code != 200 或 HTTP >= 400 视为错误。
远端 ID：f 开头为文件，d 开头为目录，根目录 d0。

核心层只通过三个方法使用本客户端：
- resolve_path_to_id(path) -> remote_id
- fetch_metadata(remote_id) -> RawRecord
- list_children(remote_id) -> list[RawRecord]
不做重试与退避；超时由 httpx 处理，异常原样（或映射为 ctfilefs.errors 中的类型）向上传播。
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import httpx

from ctfilefs.config import CtFileConfig
from ctfilefs.errors import ApiError, AuthenticationError, CtFileError, NotFoundError
from ctfilefs.models import ROOT_ID, RawRecord, is_directory_id
from ctfilefs.paths import SEPARATOR, to_remote_key

logger = logging.getLogger(__name__)

HEADER_APP_ID = "myapp-id"
HEADER_SESSION = "session"


def _parse_code(value: Any) -> int | None:
    """响应体 code 转整数；非数字返回 None。"""
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _error_for(status: int, message: str, payload: dict[str, Any], code: int = 0) -> CtFileError:
    """按 HTTP 状态或 API code 选择异常类型。"""
    if status == 404:
        return NotFoundError(message, code=code, details=payload)
    if status in (401, 403):
        return AuthenticationError(message, status_code=status, code=code, details=payload)
    return ApiError(message, status_code=status, code=code, details=payload)


class CtFileClient:
    """
    ctFile API 客户端。

    示例： CtFileClient(CtFileConfig(session="xxxxxxxxxx", app_id="myapp"))
    """

    def __init__(self, config: CtFileConfig, *, transport: httpx.BaseTransport | None = None):
        """
        :param config: 连接配置（session、app id、API 地址、超时等）
        :param transport: 可选，替换底层 transport（测试时传 httpx.MockTransport）
        """
        self.config = config
        self._transport = transport
        self._client: httpx.Client | None = None

    def _get_client(self) -> httpx.Client:
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                base_url=f"{self.config.api_base_url}/",
                headers={
                    HEADER_APP_ID: self.config.app_id,
                    HEADER_SESSION: self.config.session,
                    "Accept": "application/json",
                },
                timeout=httpx.Timeout(self.config.timeout, connect=self.config.connect_timeout),
                verify=self.config.verify,
                transport=self._transport,
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        """关闭底层 HTTP 客户端。"""
        if self._client and not self._client.is_closed:
            self._client.close()
            self._client = None

    def __enter__(self) -> CtFileClient:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    # ------------------------- 请求与错误映射 -------------------------

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        logger.debug("%s %s %s", method, endpoint, params or "")
        try:
            r = self._get_client().request(method, endpoint.lstrip("/"), params=params, json=json)
        except httpx.TimeoutException as e:
            raise ApiError(f"{method} {endpoint} timed out: {e}") from e
        except httpx.TransportError as e:
            raise ApiError(f"{method} {endpoint} failed: {e}") from e
        return self._handle_response(r, method, endpoint)

    def _handle_response(self, r: httpx.Response, method: str, endpoint: str) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if r.content:
            try:
                decoded = r.json()
            except ValueError as e:
                if r.status_code >= 400:
                    raise _error_for(r.status_code, f"HTTP {r.status_code} error for {method} {endpoint}", {}) from e
                raise ApiError(f"invalid JSON response for {method} {endpoint}", status_code=r.status_code) from e
            if isinstance(decoded, dict):
                payload = decoded
        if r.status_code >= 400:
            message = payload.get("message") or payload.get("error") or f"HTTP {r.status_code} error for {method} {endpoint}"
            raise _error_for(r.status_code, str(message), payload, code=_parse_code(payload.get("code")) or 0)
        raw_code = payload.get("code")
        if raw_code is None:
            return payload
        code = _parse_code(raw_code)
        if code is None:
            raise ApiError(f"invalid response code {raw_code!r} for {method} {endpoint}", status_code=r.status_code, details=payload)
        if code != 200:
            message = payload.get("message") or "unknown error"
            raise _error_for(code, str(message), payload, code=code)
        return payload

    # ------------------------- 文件 / 目录接口 -------------------------

    def get_file_list(self, folder_id: str = ROOT_ID, page: int = 1, page_size: int | None = None) -> dict[str, Any]:
        """
        获取目录下的文件/文件夹列表（单页）。

        :param folder_id: 目录 ID，默认根目录 d0
        :param page: 页码（从 1 开始）
        :param page_size: 每页条数，默认取配置中的 page_size
        :return: 含 data（条目列表）等字段
        """
        return self._request(
            "GET",
            "files/list",
            params={
                "folder_id": folder_id,
                "page": page,
                "page_size": page_size or self.config.page_size,
                "order_by": "name",
                "order_direction": "asc",
            },
        )

    def get_file_info(self, remote_id: str) -> dict[str, Any]:
        """获取文件或目录信息。"""
        return self._request("GET", f"files/{remote_id}")

    def get_download_url(self, remote_id: str) -> str:
        """获取文件的下载直链。"""
        data = self._request("GET", f"files/{remote_id}/download-url").get("data") or {}
        url = data.get("url") or data.get("download_url")
        if not url:
            raise ApiError(f"no download url for {remote_id}")
        return str(url)

    def download(self, remote_id: str, save_to: str | Path | None = None) -> bytes:
        """
        下载文件内容；若提供 save_to 则同时写入该本地路径。

        :param remote_id: 文件 ID
        :param save_to: 本地保存路径
        :return: 文件内容（bytes）
        """
        url = self.get_download_url(remote_id)
        try:
            r = self._get_client().get(url)
        except httpx.TransportError as e:
            raise ApiError(f"download {remote_id} failed: {e}") from e
        if r.status_code >= 400:
            raise _error_for(r.status_code, f"HTTP {r.status_code} downloading {remote_id}", {})
        content = r.content
        if save_to:
            Path(save_to).parent.mkdir(parents=True, exist_ok=True)
            Path(save_to).write_bytes(content)
        return content

    def create_folder(self, name: str, parent_id: str = ROOT_ID) -> str:
        """在 parent_id 下创建文件夹，返回新目录 ID。"""
        data = self._request("POST", "folders/create", json={"name": name, "parent_id": parent_id}).get("data") or {}
        folder_id = data.get("id") or data.get("folder_id")
        if not folder_id:
            raise ApiError(f"create folder {name!r} returned no id")
        return str(folder_id)

    def delete_file(self, remote_id: str) -> None:
        self._request("DELETE", f"files/{remote_id}")

    def delete_folder(self, folder_id: str) -> None:
        self._request("DELETE", f"folders/{folder_id}")

    # ------------------------- 核心层使用的协作接口 -------------------------

    def list_children(self, remote_id: str) -> list[RawRecord]:
        """列出目录的全部子项（自动翻页）。"""
        items: list[RawRecord] = []
        page = 1
        page_size = self.config.page_size
        while True:
            data = self.get_file_list(remote_id, page=page, page_size=page_size).get("data") or []
            items.extend(item for item in data if isinstance(item, dict))
            if len(data) < page_size:
                return items
            page += 1

    def fetch_metadata(self, remote_id: str) -> RawRecord:
        """返回 files/{id} 的 data 对象；没有 data 视为不存在。"""
        data = self.get_file_info(remote_id).get("data")
        if not isinstance(data, dict):
            raise NotFoundError(f"no metadata for {remote_id}")
        return data

    def resolve_path_to_id(self, path: str) -> str:
        """
        从根目录逐段列目录、按名称匹配，得到路径对应的远端 ID。

        :param path: 规范化路径，如 "/docs/a.txt"
        :raises NotFoundError: 任一段不存在，或中间段不是目录
        """
        key = to_remote_key(path)
        current = ROOT_ID
        if key == SEPARATOR:
            return current
        walked = ""
        for name in key.strip(SEPARATOR).split(SEPARATOR):
            if not is_directory_id(current):
                raise NotFoundError(f"not a directory: {walked}", path=key)
            walked = f"{walked}{SEPARATOR}{name}"
            match = next((item for item in self.list_children(current) if item.get("name") == name), None)
            if match is None or match.get("id") is None:
                raise NotFoundError(f"not found: {walked}", path=key)
            current = str(match["id"])
        return current
