"""
全局日志配置
rbac_admin/core/log_config.py
- request_id上下文变量由main.py的中间件注入，所有日志记录通过RequestIDFilter携带请求ID
- 控制台输出始终开启；LOG_TO_FILE_FLAG=True时按级别拆分输出到LOG_DIR
- 只在create_app中调用一次，导入本模块不产生任何副作用
"""
import logging
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Optional

from rbac_admin.core.config import settings, DEFAULT_TZ

# 请求ID上下文变量（需在入口处注入，如中间件）
request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

LOG_FORMAT = "%(asctime)s | %(request_id)s | %(name)s | %(levelname)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S %z"


class RequestIDFilter(logging.Filter):
    """注入request_id到日志记录（无则显示unknown）"""
    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_ctx.get() or "unknown"
        return True


def init_global_logger() -> logging.Logger:
    """
    初始化全局日志（根logger，所有子模块logger继承处理器）
    - local环境DEBUG，其他环境INFO
    - 日志时间使用全局时区DEFAULT_TZ
    - 重复调用直接返回，避免处理器重复添加
    """
    logger = logging.getLogger()
    if any(isinstance(f, RequestIDFilter) for h in logger.handlers for f in h.filters):
        return logger

    log_level = logging.DEBUG if settings.ENVIRONMENT == "local" else logging.INFO
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    formatter.converter = lambda *args: datetime.now(DEFAULT_TZ).timetuple()

    # 第三方库日志统一走根处理器
    for logger_name in ["passlib", "uvicorn", "uvicorn.access", "uvicorn.error"]:
        third_logger = logging.getLogger(logger_name)
        third_logger.handlers.clear()
        third_logger.propagate = True

    # SQLAlchemy日志仅保留WARNING以上，避免SQL刷屏
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    stream_handler.setLevel(log_level)
    stream_handler.addFilter(RequestIDFilter())
    logger.addHandler(stream_handler)

    if settings.LOG_TO_FILE_FLAG:
        log_base_dir = Path(settings.LOG_DIR)
        log_base_dir.mkdir(parents=True, exist_ok=True)
        current_date = datetime.now(DEFAULT_TZ).strftime("%Y-%m-%d")
        level_map = {
            logging.INFO: "info",
            logging.WARNING: "warning",
            logging.ERROR: "error",
        }
        for level, level_name in level_map.items():
            file_handler = logging.FileHandler(
                filename=str(log_base_dir / f"app-{current_date}.{level_name}.log"),
                mode="a",
                encoding="utf-8"
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            file_handler.addFilter(RequestIDFilter())
            logger.addHandler(file_handler)

    logger.setLevel(log_level)
    return logger
