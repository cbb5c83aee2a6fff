"""
项目主入口文件
rbac_admin/main.py
上次更新：2026/10/12
- 日志配置统一在core/log_config.py，这里只调用一次init_global_logger
- lifespan在接收请求前执行一次API权限同步（API_PERMISSION_SYNC_ENABLED控制）
- request_id中间件注入上下文变量，异常响应统一携带request_id
"""
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from sqlalchemy.exc import IntegrityError
from starlette.middleware.cors import CORSMiddleware

from rbac_admin.api import api_router
from rbac_admin.core.config import settings, DEFAULT_TZ
from rbac_admin.core.exceptions import AppException
from rbac_admin.core.log_config import init_global_logger, request_id_ctx
from rbac_admin.core.responses import ErrorResponse
from rbac_admin.di.container import Container
from rbac_admin.services.api_permission_sync_service import collect_route_descriptors

logger = logging.getLogger(__name__)


def custom_generate_unique_id(route: APIRoute) -> str:
    """路由ID生成函数，处理无tags情况"""
    if not route.tags:
        return f"untagged-{route.name}"
    return f"{route.tags[0]}-{route.name}"


def _error_response(status_code: int, message: str, details=None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        headers=headers,
        content=jsonable_encoder(ErrorResponse(
            code=status_code,
            message=message,
            details=details,
            request_id=request_id_ctx.get() or "unknown",
            timestamp=datetime.now(DEFAULT_TZ).isoformat()
        ))
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    container: Container = app.state.container
    if settings.API_PERMISSION_SYNC_ENABLED:
        sync_service = container.api_permission_sync_service()
        routes = collect_route_descriptors(app.routes, settings.API_V1_STR)
        await sync_service.synchronize(routes)
    yield
    await container.async_engine().dispose()


def create_app() -> FastAPI:
    init_global_logger()

    # Sentry初始化（非local环境且配置了DSN）
    if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":
        sentry_sdk.init(
            dsn=str(settings.SENTRY_DSN),
            enable_tracing=True,
            environment=settings.ENVIRONMENT
        )

    # 初始化DI容器（wiring_config自动扫描端点模块）
    container = Container()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        openapi_url=f"{settings.API_V1_STR}/openapi.json",
        generate_unique_id_function=custom_generate_unique_id,
        lifespan=lifespan,
    )
    app.state.container = container

    @app.middleware("http")
    async def add_request_id_middleware(request: Request, call_next):
        """
        注入请求ID到上下文：
        - 生成UUID作为request_id并写入request_id_ctx
        - 响应头添加X-Request-ID，便于前端/运维排查
        """
        request_id = str(uuid.uuid4())
        token = request_id_ctx.set(request_id)
        try:
            logger.debug(f"开始处理请求 | 路径：{request.url.path} | 方法：{request.method}")
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            logger.debug(f"请求处理完成 | 状态码：{response.status_code}")
            return response
        finally:
            request_id_ctx.reset(token)

    if settings.all_cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.all_cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=["X-Request-ID"],
        )

    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(f"应用异常 | 路径：{request.url.path} | 错误码：{exc.status_code} | 详情：{exc.detail}")
        return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(IntegrityError)
    async def integrity_exception_handler(request: Request, exc: IntegrityError):
        logger.error(
            f"数据库完整性异常 | 路径：{request.url.path} | 详情：{str(exc.orig)}",
            exc_info=True
        )
        return _error_response(409, "Database integrity error", details=str(exc.orig))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """422请求体校验错误，日志中记录具体字段错误"""
        logger.warning(f"请求参数校验失败 | 路径：{request.url.path} | 错误详情：{exc.errors()}")
        return _error_response(422, "请求参数校验失败", details={"errors": exc.errors()})

    app.include_router(api_router, prefix=settings.API_V1_STR)

    logger.info(
        f"{settings.PROJECT_NAME} 应用创建完成 | 环境：{settings.ENVIRONMENT} | API前缀：{settings.API_V1_STR} | "
        f"时区：{settings.DEFAULT_TIMEZONE} | 日志落文件开关：{settings.LOG_TO_FILE_FLAG}",
        extra={"request_id": "app_startup"}
    )
    return app


app = create_app()
