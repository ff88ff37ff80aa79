"""通过管理 API 发现集群运行时拓扑：节点、网关与监听器。

端点（均为 GET，返回 JSON 数组）：
- ``api/v5/nodes``：节点状态；
- ``api/v5/gateway``：网关列表；
- ``api/v5/listeners``：核心监听器；
- ``api/v5/gateway/<name>/listeners``：网关监听器。

状态码非 200 抛出 ``UnexpectedStatus``；响应体与 Schema 不符抛出 ``DecodeFailure``。
"""

from __future__ import annotations

from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError

from .clients.http import AdminAPIClient, Deadline
from .errors import DecodeFailure, UnexpectedStatus
from .models import Credential, Gateway, Listener, MemberCandidate, NodeStatus
from .utils.logging import get_logger

logger = get_logger(__name__)

NODES_PATH = "api/v5/nodes"
GATEWAYS_PATH = "api/v5/gateway"
LISTENERS_PATH = "api/v5/listeners"

M = TypeVar("M", bound=BaseModel)


def gateway_listeners_path(gateway_name: str) -> str:
    """网关监听器接口路径。

    参数:
        gateway_name: 网关名称，如 ``mqttsn``。

    返回值:
        str: ``api/v5/gateway/<name>/listeners``。
    """

    return f"api/v5/gateway/{gateway_name}/listeners"


def _get_list(
    client: AdminAPIClient,
    member: MemberCandidate,
    credential: Credential,
    port: int,
    path: str,
    model: Type[M],
    deadline: Optional[Deadline] = None,
) -> List[M]:
    """GET 某端点并按 ``model`` 严格解码为列表。"""

    resp = client.call(member, credential, port, "GET", path, deadline=deadline)
    if resp.status_code != 200:
        raise UnexpectedStatus(path, resp.status_code, resp.body, reason=resp.reason)
    try:
        return TypeAdapter(List[model]).validate_json(resp.body)  # type: ignore[valid-type]
    except ValidationError as exc:
        logger.error("decode_failure", path=path, errors=exc.error_count())
        raise DecodeFailure(path, str(exc)) from exc


def list_node_statuses(
    client: AdminAPIClient,
    member: MemberCandidate,
    credential: Credential,
    port: int,
    deadline: Optional[Deadline] = None,
) -> List[NodeStatus]:
    """读取集群节点状态（原样透传，仅做形状校验）。"""

    return _get_list(client, member, credential, port, NODES_PATH, NodeStatus, deadline)


def list_gateways(
    client: AdminAPIClient,
    member: MemberCandidate,
    credential: Credential,
    port: int,
    deadline: Optional[Deadline] = None,
) -> List[Gateway]:
    """读取网关列表。"""

    return _get_list(client, member, credential, port, GATEWAYS_PATH, Gateway, deadline)


def list_listeners(
    client: AdminAPIClient,
    member: MemberCandidate,
    credential: Credential,
    port: int,
    path: str,
    deadline: Optional[Deadline] = None,
) -> List[Listener]:
    """读取某个端点下的监听器列表（核心或网关）。"""

    return _get_list(client, member, credential, port, path, Listener, deadline)


def list_all_listeners(
    client: AdminAPIClient,
    member: MemberCandidate,
    credential: Credential,
    port: int,
    deadline: Optional[Deadline] = None,
) -> List[Listener]:
    """汇总核心监听器与所有运行中网关的监听器。

    参数:
        client: 管理 API 客户端。
        member: 目标成员。
        credential: 凭据。
        port: 管理端口。
        deadline: 可选的整体时间预算。

    返回值:
        List[Listener]: 先核心监听器，再按网关列出顺序追加各运行中网关的监听器。

    副作用:
        1 + 1 + N 次管理 API 请求（N 为运行中网关数）。

    异常:
        任一子请求失败即整体失败，不返回部分结果。
    """

    listeners = list_listeners(client, member, credential, port, LISTENERS_PATH, deadline)
    gateways = list_gateways(client, member, credential, port, deadline)
    for gateway in gateways:
        if not gateway.is_running:
            continue
        path = gateway_listeners_path(gateway.name)
        listeners.extend(list_listeners(client, member, credential, port, path, deadline))
    logger.debug(
        "listeners_discovered",
        member=member.name,
        listeners=len(listeners),
        running_gateways=sum(1 for g in gateways if g.is_running),
    )
    return listeners
