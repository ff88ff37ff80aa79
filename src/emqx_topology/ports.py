"""监听器 → Service 端口映射。

规则:
- 未启用的监听器直接跳过；
- 类型中包含 ``udp``/``dtls``/``quic``（不区分大小写）的视为 UDP，其余为 TCP；
- ``bind`` 按 ``host:port`` 拆分取端口，无法解析的监听器跳过并给出告警；
- 端口名为监听器 ID 中的 ``:`` 替换为 ``-``（Service 端口名不允许冒号）。

输出顺序与输入一致，不排序、不去重。
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional

from .models import Listener, Outcome, PortSpec, Protocol
from .utils.logging import get_logger

logger = get_logger(__name__)

_UDP_TYPE_RE = re.compile(r"udp|dtls|quic", re.IGNORECASE)


def classify_protocol(listener_type: str) -> Protocol:
    """按监听器类型判定传输协议。"""

    if _UDP_TYPE_RE.search(listener_type):
        return Protocol.UDP
    return Protocol.TCP


def _split_host_port(bind: str) -> Optional[str]:
    """拆分 ``host:port`` 并返回端口部分；格式不合法时返回 None。"""

    if bind.startswith("["):
        end = bind.find("]")
        if end < 0 or bind[end + 1 : end + 2] != ":":
            return None
        return bind[end + 2 :]
    host, sep, port = bind.rpartition(":")
    if not sep or ":" in host:
        return None
    return port


def parse_bind_port(bind: str) -> Optional[int]:
    """从 ``bind`` 中解析端口号。

    参数:
        bind: 形如 ``0.0.0.0:1883`` 或 ``[::]:1883``。

    返回值:
        Optional[int]: 1-65535 范围内的端口；无法解析时返回 None。
    """

    port = _split_host_port(bind)
    if not port or not (port.isascii() and port.isdigit()):
        return None
    value = int(port)
    if not 1 <= value <= 65535:
        return None
    return value


def port_name(listener_id: str) -> str:
    """由监听器 ID 生成 Service 端口名。

    参数:
        listener_id: 形如 ``tcp:default`` 的监听器 ID。

    返回值:
        str: 冒号替换为 ``-`` 后的名称，如 ``tcp-default``。
    """

    return listener_id.replace(":", "-")


def map_listeners(listeners: Iterable[Listener]) -> Outcome[List[PortSpec]]:
    """将监听器映射为端口规格，并报告被跳过的监听器。

    参数:
        listeners: 监听器列表（通常来自 ``list_all_listeners``）。

    返回值:
        Outcome[List[PortSpec]]: 端口规格；``warnings`` 中列出因 ``bind`` 无法解析而被跳过的监听器。

    副作用:
        被跳过的监听器以 debug 级别记录日志。
    """

    specs: List[PortSpec] = []
    warnings: List[str] = []
    for listener in listeners:
        if not listener.enabled:
            continue
        port = parse_bind_port(listener.bind)
        if port is None:
            logger.debug("listener_skipped", id=listener.id, bind=listener.bind)
            warnings.append(
                f"SkippedListener: listener {listener.id!r} has unparsable bind {listener.bind!r}"
            )
            continue
        specs.append(
            PortSpec(
                name=port_name(listener.id),
                protocol=classify_protocol(listener.type),
                port=port,
                target_port=port,
            )
        )
    return Outcome(specs, warnings)


def to_port_specs(listeners: Iterable[Listener]) -> List[PortSpec]:
    """纯函数版本：只返回端口规格，不会失败。"""

    return map_listeners(listeners).value
