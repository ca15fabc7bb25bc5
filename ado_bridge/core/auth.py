import logging

from ado_bridge.core.devops_client import DevOpsClient
from ado_bridge.core.exceptions import (
    AuthRejectedError,
    TransportError,
    UpstreamStatusError,
)

logger = logging.getLogger(__name__)


async def validate_credentials(client: DevOpsClient) -> None:
    """
    校验 PAT、组织和项目是否可用

    1. 列出组织下的项目: 401 -> PAT 无效, 404 -> 组织不存在
    2. 查询指定项目: 404 -> 项目不存在或无权限

    两次调用都成功才算通过。

    Raises:
        AuthRejectedError: 校验失败，message 为可直接展示给用户的原因
    """
    organization = client.organization
    project = client.project

    try:
        await client.get(
            f"{client.organization_url}/projects", operation="list projects"
        )
    except TransportError as e:
        raise AuthRejectedError(
            f"failed to connect to Azure DevOps: {e.__cause__ or e}"
        ) from e
    except UpstreamStatusError as e:
        logger.warning(
            "Credential validation rejected for organization=%s: %s",
            organization,
            e.status_line,
        )
        if e.status_code == 401:
            raise AuthRejectedError("invalid Personal Access Token") from e
        if e.status_code == 404:
            raise AuthRejectedError(
                f"organization '{organization}' not found"
            ) from e
        raise AuthRejectedError(f"authentication failed: {e.status_line}") from e

    try:
        await client.get(
            f"{client.organization_url}/projects/{project}",
            operation="get project",
        )
    except TransportError as e:
        raise AuthRejectedError(
            f"failed to validate project access: {e.__cause__ or e}"
        ) from e
    except UpstreamStatusError as e:
        logger.warning(
            "Project validation rejected for %s/%s: %s",
            organization,
            project,
            e.status_line,
        )
        if e.status_code == 404:
            raise AuthRejectedError(
                f"project '{project}' not found or access denied"
            ) from e
        raise AuthRejectedError(f"project validation failed: {e.status_line}") from e

    logger.info("Credentials validated for %s/%s", organization, project)
