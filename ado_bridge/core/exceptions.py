"""
Azure DevOps 适配层异常定义

所有核心操作失败时都抛出 DevOpsError 的子类，不做重试，也不返回部分结果。
HTTP 层根据异常类型决定响应状态码。
"""

from typing import Optional

import httpx


class DevOpsError(Exception):
    """适配层错误基类"""

    def __init__(self, message: str, operation: Optional[str] = None):
        self.message = message
        self.operation = operation
        super().__init__(message)


class TransportError(DevOpsError):
    """网络层错误（连接失败、超时等）"""

    pass


class AuthRejectedError(DevOpsError):
    """凭证无效、组织/项目不存在，或会话 token 无效"""

    pass


class UpstreamStatusError(DevOpsError):
    """上游返回非 2xx 状态码"""

    def __init__(self, operation: str, response: httpx.Response):
        self.status_code = response.status_code
        self.reason = response.reason_phrase
        super().__init__(f"failed to {operation}: {self.status_line}", operation)

    @property
    def status_line(self) -> str:
        return f"{self.status_code} {self.reason}".strip()


class DecodeError(DevOpsError):
    """响应体无法解析"""

    pass


class InvalidInputError(DevOpsError):
    """调用方传入的 id / index 格式错误（由 HTTP 层校验）"""

    pass
