"""集群配置 Schema 与加载器（严格校验）。

使用 Pydantic 定义目标 EMQX 集群的访问参数，禁止未知字段，
加载 YAML 时缺失项与类型错误都会以 ``ValidationError`` 抛出。

示例::

    name: emqx
    namespace: default
    labels: {apps.emqx.io/instance: emqx}
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, PositiveFloat

from .credentials import DEFAULT_CREDENTIAL_KEY, bootstrap_secret_name
from .members import DEFAULT_CONTAINER_NAME

ENV_LOG_LEVEL = "EMQX_TOPOLOGY_LOG_LEVEL"
ENV_LOG_FORMAT = "EMQX_TOPOLOGY_LOG_FORMAT"


def _read_yaml(path: Path) -> Dict[str, Any]:
    """读取 YAML 文件为字典（空文件返回空字典，顶层非映射时抛出 ValueError）。"""

    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


class ClusterConfig(BaseModel):
    """目标集群配置。

    参数:
        name: 集群（EMQX 自定义资源）名称。
        namespace: 命名空间。
        labels: 选择集群 Pod 的标签；缺省为 ``apps.emqx.io/instance=<name>``。
        container_name: 需要 Ready 的容器名。
        admin_port: 管理端口；为空时从 Dashboard Service 解析，失败则回退 18083。
        dashboard_service: Dashboard Service 名称，缺省 ``<name>-dashboard``。
        dashboard_port_name: Dashboard Service 中管理端口的名称。
        credential_secret: 凭据 Secret 名称，缺省 ``<name>-bootstrap-user``。
        credential_key: Secret 中的凭据字段。
        scheme: 管理 API 协议。
        timeout_s: 一次发现调用的总时间预算（秒）。
        request_timeout_s: 单次请求超时（秒）。
        retries: 传输失败时的重试次数。
        backoff_s: 首次重试等待（秒）。
    """

    model_config = ConfigDict(extra="forbid")

    name: str
    namespace: str = "default"
    labels: Dict[str, str] = Field(default_factory=dict)
    container_name: str = DEFAULT_CONTAINER_NAME
    admin_port: Optional[int] = Field(default=None, ge=1, le=65535)
    dashboard_service: Optional[str] = None
    dashboard_port_name: str = "dashboard-listeners-http-bind"
    credential_secret: Optional[str] = None
    credential_key: str = DEFAULT_CREDENTIAL_KEY
    scheme: Literal["http", "https"] = "http"
    timeout_s: PositiveFloat = 30.0
    request_timeout_s: PositiveFloat = 5.0
    retries: int = Field(default=2, ge=0)
    backoff_s: float = Field(default=0.5, ge=0)

    @property
    def selector_labels(self) -> Dict[str, str]:
        return dict(self.labels) or {"apps.emqx.io/instance": self.name}

    @property
    def secret_name(self) -> str:
        return self.credential_secret or bootstrap_secret_name(self.name)

    @property
    def dashboard_service_name(self) -> str:
        return self.dashboard_service or f"{self.name}-dashboard"

    @property
    def key(self) -> str:
        """并发合并使用的集群键。"""

        return f"{self.namespace}/{self.name}"


def load_cluster_config(path: Path) -> ClusterConfig:
    """严格加载集群配置文件。

    参数:
        path: YAML 文件路径。

    返回值:
        ClusterConfig: 通过校验的配置。

    副作用:
        文件 IO；校验失败抛出 ``ValidationError``。
    """

    return ClusterConfig(**_read_yaml(path))


def log_settings_from_env() -> Dict[str, str]:
    """从环境变量读取日志级别与格式的缺省值。"""

    return {
        "log_level": os.environ.get(ENV_LOG_LEVEL, "INFO"),
        "log_format": os.environ.get(ENV_LOG_FORMAT, "json"),
    }
