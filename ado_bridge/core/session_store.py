"""
会话存储

token -> DevOpsClient 的进程内映射，不做持久化。
所有读写都在同一把锁内完成，锁不会跨越 await。
"""

import base64
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional

from ado_bridge.core.auth import validate_credentials
from ado_bridge.core.config import settings
from ado_bridge.core.devops_client import Credential, DevOpsClient, mask_secret
from ado_bridge.core.exceptions import AuthRejectedError

logger = logging.getLogger(__name__)

INVALID_TOKEN_MESSAGE = "invalid or expired token"


def generate_token(organization: str, project: str) -> str:
    """由 organization、project、创建时间和随机数生成会话 token"""
    raw = f"{organization}:{project}:{int(time.time())}:{secrets.token_hex(8)}"
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


@dataclass(frozen=True)
class Session:
    client: DevOpsClient
    created_at: float


class SessionStore:
    def __init__(self, ttl: Optional[int] = None, host: Optional[str] = None):
        self.ttl = ttl
        self.host = host
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()
        logger.debug("SessionStore initialized with TTL=%s seconds", ttl)

    async def login(self, organization: str, project: str, pat: str) -> str:
        """
        校验凭证并创建会话

        Returns:
            新会话的 token

        Raises:
            AuthRejectedError: 校验失败，此时不修改存储
        """
        client = DevOpsClient(Credential(organization, project, pat), host=self.host)
        await validate_credentials(client)

        token = generate_token(organization, project)
        with self._lock:
            self._sessions[token] = Session(client=client, created_at=time.time())
            active = len(self._sessions)

        logger.info(
            "Session created for %s/%s: token=%s (active sessions: %d)",
            organization,
            project,
            mask_secret(token),
            active,
        )
        return token

    def resolve(self, token: str) -> DevOpsClient:
        """
        根据 token 查找客户端，不访问上游

        Raises:
            AuthRejectedError: token 不存在、已登出或已过期
        """
        with self._lock:
            session = self._sessions.get(token)
            if session is not None and self._is_expired(session):
                del self._sessions[token]
                logger.info("Session expired: token=%s", mask_secret(token))
                session = None

        if session is None:
            logger.debug("Session lookup failed: token=%s", mask_secret(token))
            raise AuthRejectedError(INVALID_TOKEN_MESSAGE)
        return session.client

    def logout(self, token: str) -> None:
        with self._lock:
            removed = self._sessions.pop(token, None)

        if removed is not None:
            logger.info("Session removed: token=%s", mask_secret(token))
        else:
            logger.debug("Logout for unknown token: %s", mask_secret(token))

    def _is_expired(self, session: Session) -> bool:
        if self.ttl is None:
            return False
        return time.time() > session.created_at + self.ttl

    @property
    def active_sessions(self) -> int:
        with self._lock:
            return len(self._sessions)

    def clear(self) -> None:
        with self._lock:
            count = len(self._sessions)
            self._sessions.clear()
        logger.info("Session store cleared: removed %d sessions", count)


def create_session_store() -> SessionStore:
    return SessionStore(ttl=settings.SESSION_TTL_SECONDS)
