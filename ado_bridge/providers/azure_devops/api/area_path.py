"""
AreaPathAPI - 区域路径原子能力层

API: GET {project}/_apis/wit/classificationnodes/Areas?$depth=10
"""

import logging
from typing import List, Union

from ado_bridge.core.devops_client import DevOpsClient
from ado_bridge.schemas.devops import (
    AreaChildNode,
    AreaLeafNode,
    AreaPath,
    ClassificationNode,
)

logger = logging.getLogger(__name__)

AREA_PATH_SEPARATOR = "\\"
# 只展开根节点、子节点、孙节点三层
MAX_AREA_DEPTH = 3


AreaNode = Union[ClassificationNode, AreaChildNode, AreaLeafNode]


def flatten_area_paths(root: ClassificationNode) -> List[AreaPath]:
    """
    将区域树展开为 {name, path} 列表

    path 由祖先节点名称用反斜杠拼接而成（不使用上游返回的 path）。
    深度优先，保持上游子节点顺序；第三层以下的节点不解码，直接丢弃。
    """
    area_paths: List[AreaPath] = []

    def visit(node: AreaNode, parent_path: str, depth: int) -> None:
        path = (
            f"{parent_path}{AREA_PATH_SEPARATOR}{node.name}" if parent_path else node.name
        )
        area_paths.append(AreaPath(name=node.name, path=path))
        if depth >= MAX_AREA_DEPTH:
            return
        for child in node.children or []:
            visit(child, path, depth + 1)

    visit(root, "", 1)
    return area_paths


class AreaPathAPI:
    def __init__(self, client: DevOpsClient):
        self.client = client

    async def list_area_paths(self) -> List[AreaPath]:
        """获取项目的区域路径（扁平列表）"""
        resp = await self.client.get(
            "/wit/classificationnodes/Areas",
            operation="get area paths",
            params={"$depth": 10},
        )
        root = DevOpsClient.parse(resp, ClassificationNode, "get area paths")

        area_paths = flatten_area_paths(root)
        logger.info("Retrieved %d area paths", len(area_paths))
        return area_paths
