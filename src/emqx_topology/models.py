"""数据模型。

- 管理 API 响应的严格 Schema（Pydantic）：``NodeStatus``/``Gateway``/``Listener``；
- 发现过程中使用的轻量数据类：``Credential``/``MemberCandidate``/``PortSpec``；
- ``Outcome``：携带非致命告警的结果对象。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


@dataclass
class Credential:
    """管理 API 的 Basic 认证凭据。"""

    username: str
    password: str = field(repr=False)

    @classmethod
    def empty(cls) -> "Credential":
        """返回降级模式使用的空凭据。"""

        return cls(username="", password="")

    @property
    def is_empty(self) -> bool:
        return not self.username and not self.password


@dataclass
class ContainerStatus:
    """Pod 中单个容器的就绪状态。"""

    name: str
    ready: bool


@dataclass
class MemberCandidate:
    """编排层中的一个候选 Pod。

    属性:
        name: Pod 名称。
        namespace: 命名空间。
        address: 可访问地址（通常为 Pod IP）。
        labels: Pod 标签。
        container_statuses: 容器状态，保持 Pod 中的原始顺序。
    """

    name: str
    namespace: str
    address: str
    labels: Dict[str, str] = field(default_factory=dict)
    container_statuses: List[ContainerStatus] = field(default_factory=list)


class Protocol(str, Enum):
    """Service 端口协议。"""

    TCP = "TCP"
    UDP = "UDP"


@dataclass(frozen=True)
class PortSpec:
    """对外暴露的一个 Service 端口。"""

    name: str
    protocol: Protocol
    port: int
    target_port: int

    def to_dict(self) -> Dict[str, object]:
        """转为 JSON 友好的字典（键名与 K8s ServicePort 一致）。"""

        return {
            "name": self.name,
            "protocol": self.protocol.value,
            "port": self.port,
            "targetPort": self.target_port,
        }


@dataclass
class Outcome(Generic[T]):
    """结果值 + 非致命告警列表。

    替代全局事件记录器：调用方自行决定如何上报 ``warnings``。
    """

    value: T
    warnings: List[str] = field(default_factory=list)


class NodeStatus(BaseModel):
    """`api/v5/nodes` 的单个节点记录，除 ``node`` 外其余字段原样透传。"""

    model_config = ConfigDict(extra="allow", strict=True)

    node: str


class Gateway(BaseModel):
    """`api/v5/gateway` 中的网关条目。"""

    model_config = ConfigDict(extra="ignore", strict=True)

    name: str
    status: str

    @property
    def is_running(self) -> bool:
        return self.status.lower() == "running"


class Listener(BaseModel):
    """监听器条目（核心监听器与网关监听器共用）。

    参数:
        enabled: 是否启用，JSON 字段名为 ``enable``。
        id: 监听器 ID，如 ``tcp:default``。
        bind: 绑定地址，形如 ``0.0.0.0:1883``。
        type: 监听器类型，如 ``tcp``/``ssl``/``quic``。
    """

    model_config = ConfigDict(extra="ignore", strict=True, populate_by_name=True)

    enabled: bool = Field(alias="enable")
    id: str
    bind: str
    type: str
