import logging
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Upstream
    AZURE_DEVOPS_HOST: str = "dev.azure.com"
    AZURE_DEVOPS_API_VERSION: str = "6.0"
    HTTP_TIMEOUT: float = 30.0  # 单次上游请求超时（秒）

    # 列表查询允许的工作项类型
    WORK_ITEM_TYPES: List[str] = [
        "Product Backlog Item",
        "User Story",
        "Bug",
        "Epic",
        "Feature",
    ]

    # 会话过期时间（秒），不设置则仅在 logout 时失效
    SESSION_TTL_SECONDS: Optional[int] = None

    # HTTP server
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://frontend:3000"]

    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "log"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    def get_log_level(self) -> int:
        """将 LOG_LEVEL 转换为 logging 级别，无法识别时回退到 INFO"""
        level = logging.getLevelName(self.LOG_LEVEL.upper())
        return level if isinstance(level, int) else logging.INFO


settings = Settings()
