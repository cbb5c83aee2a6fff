# 项目核心配置文件，包含数据库、JWT、CORS、日志、权限引擎等全局配置，支持从.env文件加载环境变量
# rbac_admin/core/config.py
# 更新（2026/10/12）：新增权限引擎保留常量配置
#  - SUPER_ROLE_KEY / SUPER_USERNAME / ROOT_PARENT_ID 统一在此定义，由DI容器注入到Service和守卫
#  - 新增API权限同步开关、缺失接口标记开关、同步报告输出路径
#  - 支持DATABASE_URL直接覆盖拼装的Postgres连接串（测试环境使用sqlite+aiosqlite）

import secrets
import warnings
from typing import Annotated, Any, Literal
from zoneinfo import ZoneInfo
import os

from pydantic import (
    AnyUrl,
    BeforeValidator,
    Field,
    HttpUrl,
    computed_field,
    model_validator,
)
from pydantic_core import MultiHostUrl
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",")]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=os.getenv("ENV_FILE_PATH", ".env"),
        env_ignore_empty=True,
        extra="ignore",
    )
    PROJECT_NAME: str = "rbac-admin"
    API_V1_STR: str = "/api/v1"
    SECRET_KEY: str = secrets.token_urlsafe(32)
    ALGORITHM: str = "HS256"
    # 密码加密
    BCRYPT_ROUNDS: int = 12
    # 30 minutes
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    FRONTEND_HOST: str = "http://localhost"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"

    # 日志落文件开关（True：控制台+文件输出；False：仅控制台输出）
    LOG_TO_FILE_FLAG: bool = Field(
        default=False,
        description="日志落文件开关，开启后按级别输出到LOG_DIR"
    )
    LOG_DIR: str = Field(
        default="logs",
        description="日志文件存储目录"
    )

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS] + [
            self.FRONTEND_HOST
        ]

    SENTRY_DSN: HttpUrl | None = None
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "rbac_admin"
    # 显式连接串（优先级高于POSTGRES_*拼装结果）
    DATABASE_URL: str | None = None

    # 数据库连接池配置
    DB_POOL_SIZE: int = Field(20, description="数据库连接池大小")
    DB_MAX_OVERFLOW: int = Field(100, description="最大溢出连接数")
    DB_POOL_RECYCLE: int = Field(3600, description="连接回收时间(秒)")
    DB_POOL_PRE_PING: bool = Field(True, description="连接有效性检查")

    # 全局时区配置，默认北京时间（Asia/Shanghai），支持从.env覆盖
    DEFAULT_TIMEZONE: str = Field(
        "Asia/Shanghai",
        description="项目全局默认时区（如Asia/Shanghai、UTC等）"
    )

    # ========== 权限引擎保留常量 ==========
    SUPER_ROLE_KEY: str = Field("super_admin", description="超级管理员角色标识，拥有全部权限")
    SUPER_USERNAME: str = Field("superadmin", description="超级管理员用户名，受保护不可被普通管理员修改")
    ROOT_PARENT_ID: str = Field(
        "00000000-0000-0000-0000-000000000000",
        description="权限树根节点哨兵值，表示无父节点"
    )

    # ========== API权限同步 ==========
    API_PERMISSION_SYNC_ENABLED: bool = Field(True, description="启动时是否同步API权限")
    API_PERMISSION_SYNC_MARK_MISSING: bool = Field(
        True,
        description="是否软删除本次未发现的系统API权限"
    )
    API_PERMISSION_REPORT_PATH: str = Field(
        "reports/api-permissions.json",
        description="API权限同步报告输出路径"
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return str(MultiHostUrl.build(
            scheme="postgresql+psycopg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        ))

    def _check_default_secret(self, var_name: str, value: str | None) -> None:
        if value == "changethis":
            message = (
                f'The value of {var_name} is "changethis", '
                "for security, please change it, at least for deployments."
            )
            if self.ENVIRONMENT == "local":
                warnings.warn(message, stacklevel=1)
            else:
                raise ValueError(message)

    @model_validator(mode="after")
    def _enforce_non_default_secrets(self) -> Self:
        self._check_default_secret("SECRET_KEY", self.SECRET_KEY)
        self._check_default_secret("POSTGRES_PASSWORD", self.POSTGRES_PASSWORD)
        return self


# 全局settings对象
settings = Settings()  # type: ignore

# 导出全局时区对象
DEFAULT_TZ = ZoneInfo(settings.DEFAULT_TIMEZONE)
