"""一体化发现编排：凭据 → 管理端口 → 选成员 → 管理 API 查询 → 端口映射。

整个流程共享一个 ``Deadline``；凭据与端口解析失败只产生告警（降级继续），
选成员与管理 API 查询失败直接向上抛出，由调用方在下一个调度周期重试。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

from ..clients.http import DEFAULT_ADMIN_PORT, AdminAPIClient, Deadline
from ..config import ClusterConfig
from ..credentials import CredentialStore, load_credential
from ..discovery import list_all_listeners, list_node_statuses
from ..members import PodLister, find_ready_member
from ..models import Credential, MemberCandidate, NodeStatus, Outcome, PortSpec
from ..ports import map_listeners
from ..singleflight import SingleFlight
from ..utils.logging import get_logger

logger = get_logger(__name__)

# 以关键字参数 ``timeout``（秒）调用
PortResolver = Callable[..., Outcome[int]]

_inflight = SingleFlight()


@dataclass
class _Target:
    client: AdminAPIClient
    member: MemberCandidate
    credential: Credential
    port: int
    deadline: Deadline
    warnings: List[str]


def client_from_config(cluster: ClusterConfig) -> AdminAPIClient:
    """按集群配置构造管理 API 客户端。"""

    return AdminAPIClient(
        scheme=cluster.scheme,
        timeout_s=cluster.request_timeout_s,
        retries=cluster.retries,
        backoff_s=cluster.backoff_s,
    )


def _resolve_port(
    cluster: ClusterConfig, port_resolver: Optional[PortResolver], deadline: Deadline
) -> Outcome[int]:
    if cluster.admin_port is not None:
        return Outcome(cluster.admin_port)
    if port_resolver is not None:
        return deadline.run("admin port lookup", port_resolver, timeout=deadline.remaining())
    return Outcome(
        DEFAULT_ADMIN_PORT,
        [f"FailedToGetDashboardServicePort: admin port unknown, use {DEFAULT_ADMIN_PORT} port"],
    )


def _prepare(
    cluster: ClusterConfig,
    lister: PodLister,
    store: CredentialStore,
    client: Optional[AdminAPIClient],
    port_resolver: Optional[PortResolver],
    timeout_s: Optional[float],
) -> _Target:
    deadline = Deadline(timeout_s if timeout_s is not None else cluster.timeout_s)
    warnings: List[str] = []
    cred = load_credential(store, cluster.secret_name, cluster.credential_key, deadline)
    warnings.extend(cred.warnings)
    port = _resolve_port(cluster, port_resolver, deadline)
    warnings.extend(port.warnings)
    member = find_ready_member(
        lister, cluster.namespace, cluster.selector_labels, cluster.container_name, deadline
    )
    return _Target(
        client=client or client_from_config(cluster),
        member=member,
        credential=cred.value,
        port=port.value,
        deadline=deadline,
        warnings=warnings,
    )


def discover_service_ports(
    cluster: ClusterConfig,
    lister: PodLister,
    store: CredentialStore,
    client: Optional[AdminAPIClient] = None,
    *,
    port_resolver: Optional[PortResolver] = None,
    timeout_s: Optional[float] = None,
) -> Outcome[List[PortSpec]]:
    """发现集群当前实际启用的监听器并映射为 Service 端口。

    参数:
        cluster: 集群配置。
        lister: Pod 列表能力。
        store: 凭据存储能力。
        client: 可选管理 API 客户端；缺省按配置构造。
        port_resolver: 可选管理端口解析函数（如从 Dashboard Service 读取）。
        timeout_s: 覆盖配置中的总时间预算。

    返回值:
        Outcome[List[PortSpec]]: 端口规格（核心监听器在前，网关监听器在后）及全部非致命告警。

    副作用:
        K8s 与管理 API 网络请求。

    异常:
        NoReadyMember/Unreachable/DeadlineExceeded/UnexpectedStatus/DecodeFailure。
    """

    target = _prepare(cluster, lister, store, client, port_resolver, timeout_s)
    listeners = list_all_listeners(
        target.client, target.member, target.credential, target.port, target.deadline
    )
    mapped = map_listeners(listeners)
    logger.info(
        "service_ports_discovered",
        cluster=cluster.key,
        member=target.member.name,
        ports=len(mapped.value),
        warnings=len(target.warnings) + len(mapped.warnings),
    )
    return Outcome(mapped.value, target.warnings + mapped.warnings)


def discover_service_ports_coalesced(
    cluster: ClusterConfig,
    lister: PodLister,
    store: CredentialStore,
    client: Optional[AdminAPIClient] = None,
    *,
    port_resolver: Optional[PortResolver] = None,
    timeout_s: Optional[float] = None,
) -> Outcome[List[PortSpec]]:
    """同 :func:`discover_service_ports`，但同一集群同一时刻至多一个发现在执行。"""

    return _inflight.do(
        f"ports:{cluster.key}",
        lambda: discover_service_ports(
            cluster,
            lister,
            store,
            client,
            port_resolver=port_resolver,
            timeout_s=timeout_s,
        ),
    )


def discover_node_statuses(
    cluster: ClusterConfig,
    lister: PodLister,
    store: CredentialStore,
    client: Optional[AdminAPIClient] = None,
    *,
    port_resolver: Optional[PortResolver] = None,
    timeout_s: Optional[float] = None,
) -> Outcome[List[NodeStatus]]:
    """读取集群节点状态（参数与异常同 :func:`discover_service_ports`）。"""

    target = _prepare(cluster, lister, store, client, port_resolver, timeout_s)
    nodes = list_node_statuses(
        target.client, target.member, target.credential, target.port, target.deadline
    )
    return Outcome(nodes, target.warnings)
