"""
Azure DevOps API 层 - 原子能力封装

所有 API 类都接收一个已认证的 DevOpsClient（会话句柄）。

使用示例:
    from ado_bridge.providers.azure_devops.api import WorkItemAPI

    client = session_store.resolve(token)
    items = await WorkItemAPI(client).list_work_items()
"""

from .work_item import WorkItemAPI
from .relation import RelationAPI
from .area_path import AreaPathAPI

__all__ = [
    "WorkItemAPI",
    "RelationAPI",
    "AreaPathAPI",
]
