"""
HTTP API - 对前端暴露的简化 REST 接口，后端由 Azure DevOps 提供

启动方式:
    python -m ado_bridge.http_server

认证:
    POST /api/login 返回 token，之后的请求通过 X-Auth-Token 请求头携带。
    PAT 只保存在服务端会话中，不会返回给前端。
"""

import logging
import re
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, JsonValue

from ado_bridge.core.config import settings
from ado_bridge.core.devops_client import DevOpsClient
from ado_bridge.core.exceptions import (
    AuthRejectedError,
    DevOpsError,
    InvalidInputError,
)
from ado_bridge.core.session_store import SessionStore, create_session_store
from ado_bridge.providers.azure_devops.api import AreaPathAPI, RelationAPI, WorkItemAPI
from ado_bridge.schemas.devops import AreaPath, UpdateOperation

logger = logging.getLogger(__name__)

# 十进制整数，允许一个正负号；不接受空白和下划线
INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")


def configure_logging() -> None:
    """日志配置：Stderr + File，uvicorn 日志使用同一组 handler"""
    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(exist_ok=True)
    log_file = log_dir / "ado_bridge.log"

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    file_handler.setFormatter(formatter)

    logging.basicConfig(
        level=settings.get_log_level(),
        handlers=[stderr_handler, file_handler],
        force=True,
    )

    for logger_name in ["uvicorn", "uvicorn.error", "uvicorn.access"]:
        logger_obj = logging.getLogger(logger_name)
        logger_obj.handlers = [stderr_handler, file_handler]
        logger_obj.propagate = False  # 防止双重打印

    logger.info("Logging configured. Log file: %s", log_file.absolute())


# =============================================================================
# 请求 / 响应模型
# =============================================================================
class LoginRequest(BaseModel):
    organization: str = Field(min_length=1)
    project: str = Field(min_length=1)
    pat: str = Field(min_length=1)


class LoginResponse(BaseModel):
    success: bool
    message: str
    organization: Optional[str] = None
    project: Optional[str] = None
    token: Optional[str] = None


class CreateWorkItemRequest(BaseModel):
    work_item_type: str = Field(alias="workItemType")
    fields: Dict[str, JsonValue] = Field(default_factory=dict)


class AddRelationRequest(BaseModel):
    parent_id: int = Field(alias="parentId")
    rel_type: str = Field(alias="relType")


class MessageResponse(BaseModel):
    message: str


# =============================================================================
# 依赖
# =============================================================================
def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_client(
    store: Annotated[SessionStore, Depends(get_session_store)],
    x_auth_token: Annotated[Optional[str], Header()] = None,
) -> DevOpsClient:
    if not x_auth_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication token required",
        )
    try:
        return store.resolve(x_auth_token)
    except AuthRejectedError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
        )


Client = Annotated[DevOpsClient, Depends(get_client)]
Store = Annotated[SessionStore, Depends(get_session_store)]


def _parse_int(value: str, message: str) -> int:
    """路径参数转 int，失败时抛出 InvalidInputError"""
    if not INTEGER_PATTERN.fullmatch(value):
        raise InvalidInputError(message)
    return int(value)


def _parse_work_item_id(value: str) -> int:
    return _parse_int(value, "Invalid work item ID")


# =============================================================================
# 应用
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    configure_logging()
    logger.info("Starting Azure DevOps bridge")
    yield
    app.state.session_store.clear()
    logger.info("Shutting down Azure DevOps bridge")


def create_app(session_store: Optional[SessionStore] = None) -> FastAPI:
    app = FastAPI(
        title="Azure DevOps Bridge",
        description="Azure DevOps 工作项的简化 REST 接口",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.session_store = session_store or create_session_store()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=[
            "Origin",
            "Content-Type",
            "Accept",
            "Authorization",
            "X-Auth-Token",
        ],
    )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        logger.warning("Validation error on %s: %s", request.url.path, exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Invalid request format"},
        )

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content={"error": exc.message}
        )

    @app.exception_handler(DevOpsError)
    async def devops_error_handler(request: Request, exc: DevOpsError):
        logger.error("Request %s failed: %s", request.url.path, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": exc.message},
        )

    register_routes(app)
    return app


def register_routes(app: FastAPI) -> None:
    @app.post("/api/login", response_model=LoginResponse)
    async def login(body: LoginRequest, store: Store):
        try:
            token = await store.login(body.organization, body.project, body.pat)
        except DevOpsError as e:
            logger.warning(
                "Login failed for %s/%s: %s", body.organization, body.project, e
            )
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"success": False, "message": e.message},
            )

        return LoginResponse(
            success=True,
            message="Login successful",
            organization=body.organization,
            project=body.project,
            token=token,
        )

    @app.post(
        "/api/logout",
        response_model=MessageResponse,
        dependencies=[Depends(get_client)],
    )
    async def logout(
        store: Store,
        x_auth_token: Annotated[Optional[str], Header()] = None,
    ):
        store.logout(x_auth_token)
        return MessageResponse(message="Logged out successfully")

    @app.get("/api/workitems")
    async def list_work_items(client: Client) -> List[Dict[str, Any]]:
        work_items = await WorkItemAPI(client).list_work_items()
        return [item.to_response() for item in work_items]

    @app.post("/api/workitems", status_code=status.HTTP_201_CREATED)
    async def create_work_item(
        body: CreateWorkItemRequest, client: Client
    ) -> Dict[str, Any]:
        work_item = await WorkItemAPI(client).create_work_item(
            body.work_item_type, body.fields
        )
        return work_item.to_response()

    @app.patch("/api/workitems/{work_item_id}", response_model=MessageResponse)
    async def update_work_item(
        work_item_id: str, updates: List[UpdateOperation], client: Client
    ):
        await WorkItemAPI(client).update_work_item(
            _parse_work_item_id(work_item_id), updates
        )
        return MessageResponse(message="Work item updated successfully")

    @app.get("/api/workitems/{work_item_id}/relations")
    async def get_work_item_relations(
        work_item_id: str, client: Client
    ) -> Dict[str, Any]:
        work_item = await WorkItemAPI(client).get_work_item_with_relations(
            _parse_work_item_id(work_item_id)
        )
        return work_item.to_response()

    @app.post(
        "/api/workitems/{work_item_id}/relations", response_model=MessageResponse
    )
    async def add_relation(
        work_item_id: str, body: AddRelationRequest, client: Client
    ):
        await RelationAPI(client).add_relation(
            _parse_work_item_id(work_item_id), body.parent_id, body.rel_type
        )
        return MessageResponse(message="Relationship added successfully")

    @app.delete(
        "/api/workitems/{work_item_id}/relations/{index}",
        response_model=MessageResponse,
    )
    async def remove_relation(work_item_id: str, index: str, client: Client):
        await RelationAPI(client).remove_relation(
            _parse_work_item_id(work_item_id),
            _parse_int(index, "Invalid relation index"),
        )
        return MessageResponse(message="Relationship removed successfully")

    @app.get("/api/areapaths", response_model=List[AreaPath])
    async def list_area_paths(client: Client):
        return await AreaPathAPI(client).list_area_paths()

    @app.get("/health")
    async def health_check():
        """健康检查接口"""
        return {"status": "healthy"}


app = create_app()


def main():
    """启动 HTTP 服务"""
    import uvicorn

    configure_logging()
    logger.info("Starting HTTP server on http://%s:%d", settings.HOST, settings.PORT)

    # log_config=None 让 uvicorn 继承上面配置好的 logging
    uvicorn.run(
        "ado_bridge.http_server:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=False,
        log_config=None,
    )


if __name__ == "__main__":
    main()
