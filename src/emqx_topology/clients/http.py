"""EMQX 管理 API 的 HTTP 客户端。

- 对选定成员的管理端口发起带 Basic 认证的请求；
- 只处理传输层错误（连接失败/超时 → ``Unreachable``），任何 HTTP 状态码都作为结果返回；
- ``Unreachable`` 按指数退避做有限次重试；
- 支持 ``Deadline``：一次发现调用内所有请求共享同一个时间预算。
"""

from __future__ import annotations

import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

import requests  # type: ignore[import-untyped]
from requests.auth import HTTPBasicAuth  # type: ignore[import-untyped]

from ..errors import DeadlineExceeded, Unreachable
from ..models import Credential, MemberCandidate
from ..utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_ADMIN_PORT = 18083
MAX_BACKOFF_SECONDS = 5.0

T = TypeVar("T")

_RETRYABLE = (requests.ConnectionError, requests.Timeout)


class Deadline:
    """基于单调时钟的时间预算。"""

    def __init__(self, timeout_s: float) -> None:
        self.timeout_s = timeout_s
        self._expires_at = time.monotonic() + timeout_s

    def remaining(self) -> float:
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def check(self, what: str) -> None:
        """预算耗尽时抛出 :class:`DeadlineExceeded`。"""

        if self.expired:
            raise DeadlineExceeded(f"deadline of {self.timeout_s}s exceeded before {what}")

    def run(self, what: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """在剩余预算内执行一次阻塞调用。

        参数:
            what: 调用描述，用于错误信息。
            fn: 被调用函数；``args``/``kwargs`` 原样传入。

        返回值:
            T: ``fn`` 的返回值；``fn`` 抛出的异常原样向上传播。

        副作用:
            在单独的工作线程中执行 ``fn``；超时后不等待其结束。

        异常:
            DeadlineExceeded: 调用前预算已耗尽，或调用未在剩余预算内返回。
        """

        self.check(what)
        pool = ThreadPoolExecutor(max_workers=1)
        try:
            future = pool.submit(fn, *args, **kwargs)
            try:
                return future.result(timeout=self.remaining())
            except FutureTimeout as exc:
                # fn 自身抛出的 TimeoutError 不属于预算耗尽
                if future.done():
                    raise
                raise DeadlineExceeded(
                    f"deadline of {self.timeout_s}s exceeded during {what}"
                ) from exc
        finally:
            pool.shutdown(wait=False)


@dataclass
class AdminResponse:
    """管理 API 的原始响应。"""

    status_code: int
    body: bytes
    path: str
    reason: str = ""


@dataclass
class AdminAPIClient:
    """管理 API 客户端。

    参数:
        scheme: ``http`` 或 ``https``。
        timeout_s: 单次请求超时（秒）。
        retries: 连接失败或超时时的额外重试次数。
        backoff_s: 首次重试前的等待时长，之后每次翻倍（上限 5 秒）。
        session: 可选的 ``requests.Session``，便于复用连接或在测试中替换。
    """

    scheme: str = "http"
    timeout_s: float = 5.0
    retries: int = 2
    backoff_s: float = 0.5
    session: Optional[requests.Session] = None

    def url_for(self, member: MemberCandidate, port: int, path: str) -> str:
        """拼接成员上的管理 API 地址。

        参数:
            member: 目标成员，使用其 ``address``；IPv6 地址自动加方括号。
            port: 管理 API 端口。
            path: API 路径，前导 ``/`` 可有可无。

        返回值:
            str: 形如 ``http://10.0.0.1:18083/api/v5/nodes`` 的 URL。
        """

        host = member.address
        if ":" in host and not host.startswith("["):
            host = f"[{host}]"
        return f"{self.scheme}://{host}:{int(port)}/{path.lstrip('/')}"

    def call(
        self,
        member: MemberCandidate,
        credential: Credential,
        port: int,
        method: str,
        path: str,
        body: Optional[bytes] = None,
        deadline: Optional[Deadline] = None,
    ) -> AdminResponse:
        """发起一次管理 API 请求。

        参数:
            member: 目标成员。
            credential: Basic 认证凭据（可为空凭据，降级模式）。
            port: 管理端口。
            method: HTTP 方法。
            path: 相对路径，如 ``api/v5/listeners``。
            body: 可选 JSON 请求体（原始字节）。
            deadline: 可选的整体时间预算。

        返回值:
            AdminResponse: 状态码与原始响应体；非 2xx 同样作为结果返回。

        副作用:
            网络请求；失败重试时 ``time.sleep``。

        异常:
            Unreachable: 重试耗尽后仍无法完成请求；URL 非法等不可重试的错误立即抛出。
            DeadlineExceeded: 时间预算耗尽。
        """

        url = self.url_for(member, port, path)
        auth = HTTPBasicAuth(credential.username, credential.password)
        headers = {"Content-Type": "application/json"} if body is not None else None
        sender = self.session or requests
        attempts = 1 + max(0, self.retries)
        last_exc: Optional[Exception] = None
        for attempt in range(attempts):
            timeout = self.timeout_s
            if deadline is not None:
                deadline.check(f"{method} {path}")
                timeout = min(timeout, deadline.remaining())
            logger.debug("admin_request", method=method, url=url, attempt=attempt + 1)
            try:
                resp = sender.request(
                    method,
                    url,
                    auth=auth,
                    data=body,
                    headers=headers,
                    timeout=timeout,
                )
                return AdminResponse(
                    status_code=resp.status_code,
                    body=resp.content,
                    path=path,
                    reason=resp.reason or "",
                )
            except _RETRYABLE as exc:
                last_exc = exc
                if attempt + 1 >= attempts:
                    break
                sleep_s = min(self.backoff_s * (2**attempt), MAX_BACKOFF_SECONDS)
                if deadline is not None:
                    if deadline.remaining() <= sleep_s:
                        break
                logger.warning(
                    "admin_request_retry",
                    method=method,
                    url=url,
                    attempt=attempt + 1,
                    sleep_s=sleep_s,
                    error=str(exc),
                )
                time.sleep(sleep_s)
            except requests.RequestException as exc:
                # URL 非法等错误不重试
                last_exc = exc
                break
        raise Unreachable(
            f"failed to request API {method} {path} on {member.address}:{port}: {last_exc}",
            address=member.address,
            path=path,
        ) from last_exc
