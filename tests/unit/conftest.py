"""
单元测试共享 Fixtures
"""

import json

import pytest

from ado_bridge.core.devops_client import Credential, DevOpsClient

ORGANIZATION = "contoso"
PROJECT = "fabrikam"
PAT = "pat-secret-value"

ORG_URL = f"https://dev.azure.com/{ORGANIZATION}/_apis"
BASE_URL = f"https://dev.azure.com/{ORGANIZATION}/{PROJECT}/_apis"


def request_json(route):
    """取出路由最后一次请求的 JSON 请求体"""
    return json.loads(route.calls.last.request.content)


@pytest.fixture
def credential():
    return Credential(ORGANIZATION, PROJECT, PAT)


@pytest.fixture
def client(credential):
    return DevOpsClient(credential, host="dev.azure.com", timeout=5.0)
