"""基于 structlog 的结构化日志配置。

- ``json``：生产环境（控制器容器内）使用；
- ``console``：本地调试使用，带颜色。

核心模块只通过 :func:`get_logger` 取日志器，不自行配置；
由 CLI 或宿主控制器调用 :func:`configure_logging`。
"""

from __future__ import annotations

import logging
import sys
from typing import Any, List

import structlog
from structlog.types import EventDict, Processor


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """为每条日志追加应用名。"""

    event_dict["app"] = "emqx-topology"
    return event_dict


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """配置标准库 logging 与 structlog。

    参数:
        log_level: 日志级别（DEBUG/INFO/WARNING/ERROR）。
        log_format: 输出格式，``json`` 或 ``console``。

    返回值:
        无。

    副作用:
        修改全局 logging/structlog 配置；日志输出到 stderr，stdout 留给命令结果。
    """

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    shared: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_app_context,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if log_format == "json":
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=shared + [renderer],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """获取日志器（通常传入 ``__name__``）。"""

    return structlog.get_logger(name)
