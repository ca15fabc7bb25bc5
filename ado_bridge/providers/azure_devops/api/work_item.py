"""
WorkItemAPI - 工作项原子能力层
负责工作项查询、创建、更新的接口封装

对应 Azure DevOps REST API (api-version 6.0):
- Wiql > Query By Wiql: POST {project}/_apis/wit/wiql
- Work Items > List: GET {project}/_apis/wit/workitems?ids=...
- Work Items > Get Work Item: GET {project}/_apis/wit/workitems/{id}
- Work Items > Create: POST {project}/_apis/wit/workitems/${type}
- Work Items > Update: PATCH {project}/_apis/wit/workitems/{id}
"""

import logging
from typing import Dict, List, Optional, Sequence

from pydantic import JsonValue

from ado_bridge.core.config import settings
from ado_bridge.core.devops_client import DevOpsClient
from ado_bridge.schemas.devops import (
    UpdateOperation,
    WiqlResult,
    WorkItem,
    WorkItemBatch,
    to_patch_document,
)

logger = logging.getLogger(__name__)


def _quote_wiql(value: str) -> str:
    """WIQL 字符串字面量，单引号需要双写转义"""
    return "'" + value.replace("'", "''") + "'"


def build_wiql_query(project: str, work_item_types: Sequence[str]) -> str:
    types = ", ".join(_quote_wiql(t) for t in work_item_types)
    return (
        "SELECT [System.Id] FROM WorkItems "
        f"WHERE [System.TeamProject] = {_quote_wiql(project)} "
        f"AND [System.WorkItemType] IN ({types}) "
        "ORDER BY [System.Id]"
    )


def build_create_operations(fields: Dict[str, JsonValue]) -> List[UpdateOperation]:
    # 按字段名排序，保证生成的 patch 文档顺序稳定
    return [
        UpdateOperation(op="add", path=f"/fields/{name}", value=fields[name])
        for name in sorted(fields)
    ]


class WorkItemAPI:
    """
    Azure DevOps 工作项 API 封装

    职责: 把高层操作翻译为上游的查询 / patch 协议，并返回扁平化结果
    """

    def __init__(
        self,
        client: DevOpsClient,
        work_item_types: Optional[Sequence[str]] = None,
    ):
        self.client = client
        self.work_item_types = list(work_item_types or settings.WORK_ITEM_TYPES)

    async def list_work_items(self) -> List[WorkItem]:
        """
        获取项目下的工作项列表（两阶段）

        1. WIQL 查询匹配的工作项 ID（按 ID 升序）
        2. 批量获取完整字段 ($expand=all)

        没有匹配的 ID 时直接返回空列表，不发起第二阶段请求
        （上游批量接口不接受空的 ids）。任一阶段失败整体失败。

        Returns:
            工作项列表，保持上游返回顺序

        Raises:
            DevOpsError: 任一阶段失败
        """
        query = build_wiql_query(self.client.project, self.work_item_types)
        logger.debug("Querying work item ids: project=%s", self.client.project)

        resp = await self.client.post(
            "/wit/wiql", operation="get work items", json={"query": query}
        )
        wiql = DevOpsClient.parse(resp, WiqlResult, "get work items")

        if not wiql.work_items:
            logger.info("No work items matched in project %s", self.client.project)
            return []

        ids = ",".join(str(ref.id) for ref in wiql.work_items)
        logger.debug("Fetching details for %d work items", len(wiql.work_items))

        resp = await self.client.get(
            "/wit/workitems",
            operation="get work item details",
            params={"ids": ids, "$expand": "all"},
        )
        batch = DevOpsClient.parse(resp, WorkItemBatch, "get work item details")

        logger.info("Retrieved %d work items", len(batch.value))
        return batch.value

    async def update_work_item(
        self, work_item_id: int, updates: List[UpdateOperation]
    ) -> None:
        """
        更新工作项

        所有操作作为一个 JSON patch 文档一次提交，部分应用由上游负责。

        Args:
            work_item_id: 工作项 ID
            updates: 更新操作列表
        """
        logger.info(
            "Updating work item %d with %d operations", work_item_id, len(updates)
        )
        await self.client.patch(
            f"/wit/workitems/{work_item_id}",
            operation="update work item",
            json=to_patch_document(updates),
        )

    async def create_work_item(
        self, work_item_type: str, fields: Dict[str, JsonValue]
    ) -> WorkItem:
        """
        创建工作项

        每个字段生成一个 add 操作（path=/fields/<name>），POST 到类型对应的创建接口。

        Args:
            work_item_type: 工作项类型，如 "Bug"
            fields: 字段名到字段值的映射，如 {"System.Title": "..."}

        Returns:
            上游创建的工作项（包含新 ID）
        """
        operations = build_create_operations(fields)
        logger.info(
            "Creating work item: type=%s, fields=%s",
            work_item_type,
            [op.path for op in operations],
        )

        resp = await self.client.post(
            f"/wit/workitems/${work_item_type}",
            operation="create work item",
            json=to_patch_document(operations),
        )
        work_item = DevOpsClient.parse(resp, WorkItem, "create work item")

        logger.info("Work item created: id=%d", work_item.id)
        return work_item

    async def get_work_item_with_relations(self, work_item_id: int) -> WorkItem:
        """获取单个工作项，包含 relations"""
        logger.debug("Getting work item %d with relations", work_item_id)
        resp = await self.client.get(
            f"/wit/workitems/{work_item_id}",
            operation="get work item",
            params={"$expand": "relations"},
        )
        return DevOpsClient.parse(resp, WorkItem, "get work item")
