import base64
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type, TypeVar
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, ValidationError

from ado_bridge.core.config import settings
from ado_bridge.core.exceptions import DecodeError, TransportError, UpstreamStatusError

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
JSON_PATCH_CONTENT_TYPE = "application/json-patch+json"
# 查询串中保持原样的字符，如 ids=1,2&$expand=all
QUERY_SAFE_CHARS = "$,"

M = TypeVar("M", bound=BaseModel)


def mask_secret(value: str, visible_chars: int = 4) -> str:
    """对 PAT / token 进行脱敏处理，仅显示前几个字符"""
    if not value or len(value) <= visible_chars:
        return "***"
    return f"{value[:visible_chars]}***"


@dataclass(frozen=True)
class Credential:
    organization: str
    project: str
    pat: str

    def __repr__(self) -> str:
        return (
            f"Credential(organization={self.organization!r}, "
            f"project={self.project!r}, pat={mask_secret(self.pat)!r})"
        )


class PatAuth(httpx.Auth):
    """
    Azure DevOps PAT 认证

    Basic 认证的用户名为空，密码为 PAT: base64(":" + PAT)
    """

    def __init__(self, pat: str):
        encoded = base64.b64encode(f":{pat}".encode("utf-8")).decode("ascii")
        self._header = f"Basic {encoded}"

    def auth_flow(self, request: httpx.Request):
        request.headers["Authorization"] = self._header
        yield request


class DevOpsClient:
    """
    Azure DevOps API 异步客户端（会话句柄）

    特性:
    - 固定的 base_url: https://<host>/<organization>/<project>/_apis
    - 自动注入 Basic 认证头
    - 所有请求固定 api-version
    - 不做重试，非 2xx 直接抛出 UpstreamStatusError
    - 每次调用使用独立的连接，带超时
    """

    def __init__(
        self,
        credential: Credential,
        host: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.credential = credential
        self.host = host or settings.AZURE_DEVOPS_HOST
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT
        self.api_version = settings.AZURE_DEVOPS_API_VERSION
        self._auth = PatAuth(credential.pat)
        logger.debug(
            "Initializing DevOpsClient for %s/%s (pat=%s)",
            credential.organization,
            credential.project,
            mask_secret(credential.pat),
        )

    @property
    def organization(self) -> str:
        return self.credential.organization

    @property
    def project(self) -> str:
        return self.credential.project

    @property
    def organization_url(self) -> str:
        return f"https://{self.host}/{self.organization}/_apis"

    @property
    def base_url(self) -> str:
        return f"https://{self.host}/{self.organization}/{self.project}/_apis"

    def work_item_url(self, work_item_id: int) -> str:
        """关系中引用的工作项资源地址"""
        return f"{self.base_url}/wit/workitems/{work_item_id}"

    def _resolve_url(self, path: str) -> str:
        if path.startswith("https://") or path.startswith("http://"):
            return path
        return f"{self.base_url}{path}"

    async def send(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        json: Any = None,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        """
        发送请求

        Args:
            method: HTTP 方法
            path: 相对 base_url 的路径，或完整 URL
            operation: 操作描述，用于错误信息，如 "get work items"
            json: 请求体；list 视为 JSON patch 文档
            params: 查询参数（api-version 自动追加）
            timeout: 本次调用的超时（秒），默认使用客户端配置

        Returns:
            httpx.Response (2xx)

        Raises:
            TransportError: 网络错误或超时
            UpstreamStatusError: 非 2xx 响应
        """
        query: Dict[str, Any] = dict(params or {})
        query["api-version"] = self.api_version
        url = f"{self._resolve_url(path)}?{urlencode(query, safe=QUERY_SAFE_CHARS)}"

        headers = {}
        if json is not None:
            # Update Operation 数组使用 patch 文档类型，查询语句使用普通 JSON
            headers["Content-Type"] = (
                JSON_PATCH_CONTENT_TYPE if isinstance(json, list) else JSON_CONTENT_TYPE
            )

        deadline = timeout if timeout is not None else self.timeout
        logger.debug("Making %s request to %s", method, url)
        if json is not None:
            logger.debug("%s payload: %s", method, json)

        try:
            async with httpx.AsyncClient(
                auth=self._auth,
                timeout=httpx.Timeout(deadline),
                trust_env=False,
            ) as client:
                response = await client.request(
                    method, url, json=json, headers=headers
                )
        except httpx.TimeoutException as e:
            logger.error(
                "%s %s timed out after %.1f seconds: %s", method, url, deadline, e
            )
            raise TransportError(
                f"failed to {operation}: request timed out", operation
            ) from e
        except httpx.RequestError as e:
            logger.error("%s %s failed (network error): %s", method, url, e)
            raise TransportError(f"failed to {operation}: {e}", operation) from e

        logger.debug("Response status: %d from %s", response.status_code, url)

        if not response.is_success:
            logger.error(
                "HTTP error %d from %s: %s",
                response.status_code,
                url,
                response.text[:200],
            )
            raise UpstreamStatusError(operation, response)

        logger.info(
            "Request successful: %s %s -> %d", method, url, response.status_code
        )
        return response

    async def get(self, path: str, *, operation: str, **kwargs) -> httpx.Response:
        return await self.send("GET", path, operation=operation, **kwargs)

    async def post(self, path: str, *, operation: str, **kwargs) -> httpx.Response:
        return await self.send("POST", path, operation=operation, **kwargs)

    async def patch(self, path: str, *, operation: str, **kwargs) -> httpx.Response:
        return await self.send("PATCH", path, operation=operation, **kwargs)

    @staticmethod
    def parse(response: httpx.Response, model: Type[M], operation: str) -> M:
        """将响应体解析为指定模型，失败时抛出 DecodeError"""
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error("Response parsing failed for %s: %s", operation, e)
            raise DecodeError(
                f"failed to {operation}: malformed response body", operation
            ) from e
