"""集群成员选择：按列出顺序返回第一个目标容器 Ready 的 Pod。"""

from __future__ import annotations

from typing import Iterable, List, Mapping, Optional, Protocol

from .clients.http import Deadline
from .errors import DeadlineExceeded, NoReadyMember, Unreachable
from .models import MemberCandidate
from .utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONTAINER_NAME = "emqx"


class PodLister(Protocol):
    """按命名空间与标签列出候选 Pod；``timeout`` 为单次调用的超时（秒）。"""

    def list(
        self,
        namespace: str,
        labels: Mapping[str, str],
        timeout: Optional[float] = None,
    ) -> List[MemberCandidate]:
        ...


def select_member(
    candidates: Iterable[MemberCandidate], container_name: str = DEFAULT_CONTAINER_NAME
) -> MemberCandidate:
    """返回第一个名为 ``container_name`` 的容器处于 Ready 且已分配地址的候选。

    参数:
        candidates: 候选 Pod，按编排层列出顺序。
        container_name: 目标容器名。

    返回值:
        MemberCandidate: 第一个满足条件的候选。

    副作用:
        无。

    异常:
        NoReadyMember: 没有候选满足条件。
    """

    namespace = ""
    for candidate in candidates:
        namespace = namespace or candidate.namespace
        if not candidate.address:
            continue
        for status in candidate.container_statuses:
            if status.name == container_name and status.ready:
                return candidate
    raise NoReadyMember(namespace=namespace, container_name=container_name)


def find_ready_member(
    lister: PodLister,
    namespace: str,
    labels: Mapping[str, str],
    container_name: str = DEFAULT_CONTAINER_NAME,
    deadline: Optional[Deadline] = None,
) -> MemberCandidate:
    """列出候选 Pod 并选出一个可用成员。

    参数:
        deadline: 可选的整体时间预算；列出 Pod 受其约束，剩余时长同时作为
            ``timeout`` 传给 ``lister``。

    异常:
        Unreachable: 列出 Pod 失败。
        DeadlineExceeded: 列出 Pod 未在预算内完成。
        NoReadyMember: 没有可用成员。
    """

    try:
        if deadline is None:
            candidates = lister.list(namespace, labels)
        else:
            candidates = deadline.run(
                "pod listing",
                lister.list,
                namespace,
                labels,
                timeout=deadline.remaining(),
            )
    except (Unreachable, DeadlineExceeded):
        raise
    except Exception as exc:
        raise Unreachable(f"failed to list pods in namespace {namespace!r}: {exc}") from exc
    try:
        member = select_member(candidates, container_name)
    except NoReadyMember:
        raise NoReadyMember(namespace=namespace, container_name=container_name) from None
    logger.debug("member_selected", pod=member.name, namespace=namespace, address=member.address)
    return member
