"""发现流程的错误类型。

所有错误均继承自 :class:`DiscoveryError`（即 ``RuntimeError``），
由调用方决定记录日志、发送事件或在下一个调度周期重试。
"""

from __future__ import annotations


class DiscoveryError(RuntimeError):
    """发现流程错误基类。"""


class CredentialError(DiscoveryError):
    """管理员凭据不可用（降级处理，不中断发现流程）。"""


class MissingCredentialSource(CredentialError):
    """凭据来源缺失：Secret 不存在或不包含目标字段。"""


class MalformedCredential(CredentialError):
    """凭据内容无法解析为 ``<username>:<password>``。"""


class NoReadyMember(DiscoveryError):
    """没有任何候选 Pod 的目标容器处于 Ready 状态。"""

    def __init__(self, namespace: str = "", container_name: str = "") -> None:
        self.namespace = namespace
        self.container_name = container_name
        where = f" in namespace {namespace!r}" if namespace else ""
        super().__init__(
            f"no member{where} has a ready container named {container_name!r}"
        )


class Unreachable(DiscoveryError):
    """传输层失败（连接错误、超时等）。"""

    def __init__(self, message: str, *, address: str = "", path: str = "") -> None:
        self.address = address
        self.path = path
        super().__init__(message)


class DeadlineExceeded(DiscoveryError):
    """整个发现调用的时间预算已耗尽。"""


class UnexpectedStatus(DiscoveryError):
    """管理 API 返回了非 200 状态码。

    属性:
        path: 请求路径。
        status: HTTP 状态码。
        reason: HTTP 状态描述。
        body: 原始响应体（便于排查）。
    """

    def __init__(self, path: str, status: int, body: bytes | str, reason: str = "") -> None:
        self.path = path
        self.status = status
        self.reason = reason
        self.body = body.decode("utf-8", "replace") if isinstance(body, bytes) else body
        status_text = f"{status} {reason}".strip()
        super().__init__(
            f"failed to get API {path}, status: {status_text}, body: {self.body}"
        )


class DecodeFailure(DiscoveryError):
    """响应体与期望的 Schema 不匹配（通常意味着版本不一致）。"""

    def __init__(self, path: str, detail: str) -> None:
        self.path = path
        self.detail = detail
        super().__init__(f"failed to decode response of API {path}: {detail}")
