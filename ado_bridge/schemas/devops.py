from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, JsonValue


PatchOp = Literal["add", "remove", "replace", "move", "copy", "test"]


class WorkItemRelation(BaseModel):
    rel: str
    url: str
    attributes: Optional[Dict[str, JsonValue]] = None


class WorkItem(BaseModel):
    id: int
    fields: Dict[str, JsonValue] = Field(default_factory=dict)
    # Only present when relations are explicitly expanded
    relations: Optional[List[WorkItemRelation]] = None

    # Allow extra fields (rev, url, _links ...) to pass through untouched
    model_config = ConfigDict(extra="allow")

    def to_response(self) -> Dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True)
        if self.relations is None:
            data.pop("relations", None)
        else:
            data["relations"] = [
                relation.model_dump(mode="json", exclude_none=True)
                for relation in self.relations
            ]
        return data


class UpdateOperation(BaseModel):
    """A single JSON patch instruction against a work item."""

    op: PatchOp
    path: str
    value: Any = None
    from_: Optional[str] = Field(default=None, alias="from")

    model_config = ConfigDict(populate_by_name=True)

    def to_patch(self) -> Dict[str, Any]:
        """
        序列化为上游 JSON patch 文档中的一项。

        value 始终输出（缺省为 null），from 仅在设置时输出；
        关系类型的 value 省略空的 attributes。
        """
        value = self.value
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json", exclude_none=True)
        patch: Dict[str, Any] = {"op": self.op, "path": self.path, "value": value}
        if self.from_ is not None:
            patch["from"] = self.from_
        return patch


def to_patch_document(updates: List[UpdateOperation]) -> List[Dict[str, Any]]:
    return [update.to_patch() for update in updates]


class WorkItemReference(BaseModel):
    id: int

    model_config = ConfigDict(extra="ignore")


class WiqlResult(BaseModel):
    # WIQL 查询只解析 id 列
    work_items: List[WorkItemReference] = Field(alias="workItems", default_factory=list)

    model_config = ConfigDict(extra="ignore")


class WorkItemBatch(BaseModel):
    value: List[WorkItem] = Field(default_factory=list)
    count: int = 0


class AreaLeafNode(BaseModel):
    """Third level of the area tree. Its subtree is kept undecoded."""

    name: str
    path: Optional[str] = None
    children: Optional[List[Any]] = None

    model_config = ConfigDict(extra="ignore")


class AreaChildNode(BaseModel):
    name: str
    path: Optional[str] = None
    children: Optional[List[AreaLeafNode]] = None

    model_config = ConfigDict(extra="ignore")


class ClassificationNode(BaseModel):
    """Root of the area classification tree, decoded three levels deep."""

    name: str
    path: Optional[str] = None
    children: Optional[List[AreaChildNode]] = None

    model_config = ConfigDict(extra="ignore")


class AreaPath(BaseModel):
    name: str
    path: str
