"""Kubernetes 资源访问。

提供：
- 读取 kube 配置并创建 CoreV1Api 客户端；
- ``KubePodLister``：按命名空间与标签列出 EMQX Pod；
- ``KubeSecretStore``：读取并解码 Secret 数据；
- ``resolve_admin_port``：从 Dashboard Service 解析管理端口（失败回退 18083）；
- ``to_v1_service_ports``：将端口规格渲染为 ``V1ServicePort``。
"""

from __future__ import annotations

import base64
import binascii
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..clients.http import DEFAULT_ADMIN_PORT
from ..errors import MissingCredentialSource
from ..models import ContainerStatus, MemberCandidate, Outcome, PortSpec
from ..utils.logging import get_logger
from . import label_selector

logger = get_logger(__name__)


def create_core_v1_api(incluster: bool = False) -> Any:
    """创建 `CoreV1Api` 客户端。

    参数:
        incluster: 是否使用 in-cluster 配置；为 False 时使用本地 kubeconfig。

    返回值:
        kubernetes.client.CoreV1Api 实例。

    副作用:
        读取 kube 配置文件或集群内服务帐号配置。
    """

    # 延迟导入以便测试时可 monkeypatch
    from kubernetes import client, config  # type: ignore[import-untyped]

    if incluster:
        config.load_incluster_config()
    else:
        config.load_kube_config()
    return client.CoreV1Api()


def _to_candidate(pod: Any) -> MemberCandidate:
    meta = pod.metadata
    status = pod.status
    statuses = getattr(status, "container_statuses", None) or []
    return MemberCandidate(
        name=str(meta.name),
        namespace=str(meta.namespace),
        address=str(getattr(status, "pod_ip", None) or ""),
        labels=dict(getattr(meta, "labels", None) or {}),
        container_statuses=[
            ContainerStatus(name=str(c.name), ready=bool(c.ready)) for c in statuses
        ],
    )


class KubePodLister:
    """基于 CoreV1Api 的 Pod 列表实现。"""

    def __init__(self, api: Any) -> None:
        self.api = api

    def list(
        self,
        namespace: str,
        labels: Mapping[str, str],
        timeout: Optional[float] = None,
    ) -> List[MemberCandidate]:
        """列出候选 Pod，保持 API 返回顺序。

        参数:
            timeout: 传给 K8s 客户端的 ``_request_timeout``（秒）；None 表示不限。

        副作用:
            调用 K8s API `list_namespaced_pod`；异常向上抛出。
        """

        pods = self.api.list_namespaced_pod(
            namespace=namespace,
            label_selector=label_selector(labels),
            _request_timeout=timeout,
        )
        return [_to_candidate(p) for p in pods.items]


class KubeSecretStore:
    """基于 CoreV1Api 的 Secret 读取实现。"""

    def __init__(self, api: Any, namespace: str) -> None:
        self.api = api
        self.namespace = namespace

    def get(self, name: str, timeout: Optional[float] = None) -> Optional[Dict[str, bytes]]:
        """读取 Secret 并对 ``data`` 中的值做 base64 解码。

        参数:
            name: Secret 名称。
            timeout: 传给 K8s 客户端的 ``_request_timeout``（秒）。

        返回值:
            Optional[Dict[str, bytes]]: 解码后的数据；Secret 不存在（404）时返回 None。

        副作用:
            调用 K8s API `read_namespaced_secret`。

        异常:
            MissingCredentialSource: 读取失败（非 404）或数据不是合法 base64。
        """

        try:
            secret = self.api.read_namespaced_secret(
                name=name, namespace=self.namespace, _request_timeout=timeout
            )
        except Exception as exc:
            if getattr(exc, "status", None) == 404:
                return None
            raise MissingCredentialSource(
                f"failed to get secret {self.namespace}/{name}: {exc}"
            ) from exc
        data = getattr(secret, "data", None) or {}
        try:
            return {k: base64.b64decode(v, validate=True) for k, v in data.items()}
        except (binascii.Error, ValueError) as exc:
            raise MissingCredentialSource(
                f"secret {self.namespace}/{name} contains invalid base64 data"
            ) from exc


def _port_number(value: Any) -> Optional[int]:
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def resolve_admin_port(
    api: Any,
    namespace: str,
    service_name: str,
    port_name: str = "dashboard-listeners-http-bind",
    timeout: Optional[float] = None,
) -> Outcome[int]:
    """从 Dashboard Service 解析管理 API 端口。

    参数:
        api: CoreV1Api 实例。
        namespace: 命名空间。
        service_name: Dashboard Service 名称。
        port_name: 管理端口在 Service 中的名称。
        timeout: 传给 K8s 客户端的 ``_request_timeout``（秒）。

    返回值:
        Outcome[int]: 匹配端口的 ``target_port``（非数字时取 ``port``）；
        任何失败都回退为 18083 并附带告警，不视为致命错误。

    副作用:
        调用 K8s API `read_namespaced_service`。
    """

    try:
        svc = api.read_namespaced_service(
            name=service_name, namespace=namespace, _request_timeout=timeout
        )
        ports = getattr(svc.spec, "ports", None) or []
        for p in ports:
            if getattr(p, "name", None) != port_name:
                continue
            number = _port_number(getattr(p, "target_port", None))
            if number is None:
                number = _port_number(getattr(p, "port", None))
            if number is not None:
                return Outcome(number)
        reason = f"port name {port_name!r} not found in service {namespace}/{service_name}"
    except Exception as exc:
        reason = f"service {namespace}/{service_name} not readable: {exc}"
    msg = (
        f"FailedToGetDashboardServicePort: {reason}, use {DEFAULT_ADMIN_PORT} port"
    )
    logger.warning("admin_port_fallback", service=service_name, reason=reason)
    return Outcome(DEFAULT_ADMIN_PORT, [msg])


def to_v1_service_ports(specs: Iterable[PortSpec]) -> List[Any]:
    """将端口规格渲染为 ``kubernetes.client.V1ServicePort`` 列表（顺序不变）。"""

    from kubernetes import client  # type: ignore[import-untyped]

    return [
        client.V1ServicePort(
            name=s.name,
            protocol=s.protocol.value,
            port=s.port,
            target_port=s.target_port,
        )
        for s in specs
    ]
