import pytest
from pydantic import ValidationError

from ado_bridge.schemas.devops import (
    ClassificationNode,
    UpdateOperation,
    WiqlResult,
    WorkItem,
    WorkItemBatch,
    WorkItemRelation,
    to_patch_document,
)


def test_wiql_result_parsing():
    raw = {
        "queryType": "flat",
        "asOf": "2024-01-01T00:00:00Z",
        "columns": [{"referenceName": "System.Id"}],
        "workItems": [
            {"id": 1, "url": "https://dev.azure.com/o/_apis/wit/workItems/1"},
            {"id": 2, "url": "https://dev.azure.com/o/_apis/wit/workItems/2"},
        ],
    }

    result = WiqlResult.model_validate(raw)

    assert [ref.id for ref in result.work_items] == [1, 2]


def test_wiql_result_missing_work_items():
    assert WiqlResult.model_validate({}).work_items == []


def test_work_item_batch_parsing():
    raw = {
        "count": 1,
        "value": [
            {
                "id": 9,
                "rev": 4,
                "fields": {
                    "System.Title": "Login page",
                    "System.State": "New",
                    "Microsoft.VSTS.Scheduling.StoryPoints": 3.0,
                    "System.AssignedTo": {"displayName": "Jamal Hartnett"},
                },
                "url": "https://dev.azure.com/o/_apis/wit/workItems/9",
            }
        ],
    }

    batch = WorkItemBatch.model_validate(raw)

    assert batch.count == 1
    item = batch.value[0]
    assert item.fields["System.AssignedTo"]["displayName"] == "Jamal Hartnett"
    assert item.relations is None


def test_work_item_requires_id():
    with pytest.raises(ValidationError):
        WorkItem.model_validate({"fields": {}})


def test_work_item_response_keeps_upstream_keys():
    item = WorkItem.model_validate(
        {"id": 9, "rev": 4, "fields": {"System.Title": "T"}, "_links": {"self": {}}}
    )

    data = item.to_response()

    assert data["id"] == 9
    assert data["rev"] == 4
    assert data["_links"] == {"self": {}}
    assert "relations" not in data


def test_work_item_response_relations_omit_empty_attributes():
    item = WorkItem(
        id=1,
        fields={},
        relations=[WorkItemRelation(rel="System.LinkTypes.Related", url="u")],
    )

    assert item.to_response()["relations"] == [
        {"rel": "System.LinkTypes.Related", "url": "u"}
    ]


def test_update_operation_accepts_from_alias():
    op = UpdateOperation.model_validate(
        {"op": "move", "path": "/fields/A", "from": "/fields/B"}
    )

    assert op.to_patch() == {
        "op": "move",
        "path": "/fields/A",
        "value": None,
        "from": "/fields/B",
    }


def test_update_operation_rejects_unknown_op():
    with pytest.raises(ValidationError):
        UpdateOperation.model_validate({"op": "delete", "path": "/fields/A"})


def test_to_patch_document_serializes_relation_value():
    operations = [
        UpdateOperation(
            op="add",
            path="/relations/-",
            value=WorkItemRelation(
                rel="System.LinkTypes.Hierarchy-Reverse",
                url="https://dev.azure.com/o/p/_apis/wit/workitems/1",
                attributes={"comment": "linked"},
            ),
        )
    ]

    assert to_patch_document(operations) == [
        {
            "op": "add",
            "path": "/relations/-",
            "value": {
                "rel": "System.LinkTypes.Hierarchy-Reverse",
                "url": "https://dev.azure.com/o/p/_apis/wit/workitems/1",
                "attributes": {"comment": "linked"},
            },
        }
    ]


def test_classification_node_nested():
    node = ClassificationNode.model_validate(
        {
            "name": "Root",
            "hasChildren": True,
            "children": [{"name": "Child", "children": [{"name": "Leaf"}]}],
        }
    )

    assert node.children[0].children[0].name == "Leaf"
    assert node.children[0].children[0].children is None


def test_classification_node_stops_decoding_at_third_level():
    node = ClassificationNode.model_validate(
        {
            "name": "Root",
            "children": [
                {
                    "name": "Child",
                    "children": [{"name": "Leaf", "children": [{"id": 9}]}],
                }
            ],
        }
    )

    assert node.children[0].children[0].children == [{"id": 9}]


def test_classification_node_requires_name_above_fourth_level():
    with pytest.raises(ValidationError):
        ClassificationNode.model_validate(
            {"name": "Root", "children": [{"name": "Child", "children": [{"id": 9}]}]}
        )
