"""
RelationAPI - 工作项关系原子能力层

上游把关系存为有序列表，删除时只能按位置 (index) 寻址。
"""

import logging

from ado_bridge.core.devops_client import DevOpsClient
from ado_bridge.schemas.devops import (
    UpdateOperation,
    WorkItemRelation,
    to_patch_document,
)

logger = logging.getLogger(__name__)


class RelationAPI:
    def __init__(self, client: DevOpsClient):
        self.client = client

    def build_add_operation(self, parent_id: int, rel_type: str) -> UpdateOperation:
        return UpdateOperation(
            op="add",
            path="/relations/-",
            value=WorkItemRelation(
                rel=rel_type, url=self.client.work_item_url(parent_id)
            ),
        )

    async def add_relation(self, child_id: int, parent_id: int, rel_type: str) -> None:
        """
        给 child 追加一条指向 parent 的关系

        API: PATCH {project}/_apis/wit/workitems/{child_id}
        操作: add /relations/- (追加到末尾)

        Args:
            child_id: 被修改的工作项 ID
            parent_id: 关系目标工作项 ID
            rel_type: 关系类型，如 System.LinkTypes.Hierarchy-Reverse
        """
        logger.info(
            "Adding relation: %d -> %d (rel=%s)", child_id, parent_id, rel_type
        )
        await self.client.patch(
            f"/wit/workitems/{child_id}",
            operation="add work item relation",
            json=to_patch_document([self.build_add_operation(parent_id, rel_type)]),
        )

    async def remove_relation(self, work_item_id: int, index: int) -> None:
        """
        删除工作项的第 index 条关系

        API: PATCH {project}/_apis/wit/workitems/{work_item_id}
        操作: remove /relations/{index}

        注意: index 必须是调用时关系列表中的当前位置。这里不会重新拉取校验，
        调用方需要在删除前刚刚读取过关系列表。越界的 index 由上游拒绝
        （UpstreamStatusError），本地不做检查。
        """
        logger.info("Removing relation %d from work item %d", index, work_item_id)
        await self.client.patch(
            f"/wit/workitems/{work_item_id}",
            operation="remove work item relation",
            json=to_patch_document(
                [UpdateOperation(op="remove", path=f"/relations/{index}")]
            ),
        )
