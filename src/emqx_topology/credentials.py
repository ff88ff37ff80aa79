"""管理员凭据解析。

Bootstrap Secret 的 ``bootstrap_user`` 字段内容形如 ``<username>:<password>``，
以第一个冒号分隔，密码本身可以包含冒号。
"""

from __future__ import annotations

from typing import Mapping, Optional, Protocol, Union

from .clients.http import Deadline
from .errors import CredentialError, MalformedCredential, MissingCredentialSource
from .models import Credential, Outcome
from .utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CREDENTIAL_KEY = "bootstrap_user"


class CredentialStore(Protocol):
    """Secret 一类的键值存储。"""

    def get(self, name: str, timeout: Optional[float] = None) -> Optional[Mapping[str, bytes]]:
        """按名称读取 Secret 数据；不存在时返回 None。``timeout`` 为单次调用超时（秒）。"""
        ...


def bootstrap_secret_name(cluster_name: str) -> str:
    """集群对应的 bootstrap 用户 Secret 名称。"""

    return f"{cluster_name}-bootstrap-user"


def resolve_credential(blob: Union[bytes, str, None]) -> Credential:
    """将 ``<username>:<password>`` 解析为凭据。

    参数:
        blob: 原始内容（bytes 或 str）；None 表示来源缺失。

    返回值:
        Credential: 用户名与密码均非空。

    副作用:
        无。

    异常:
        MissingCredentialSource: ``blob`` 为 None。
        MalformedCredential: 不含冒号、无法按 UTF-8 解码，或用户名/密码为空。
    """

    if blob is None:
        raise MissingCredentialSource("credential source is absent")
    if isinstance(blob, bytes):
        try:
            text = blob.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedCredential("credential is not valid utf-8") from exc
    else:
        text = blob
    username, sep, password = text.partition(":")
    if not sep:
        raise MalformedCredential("credential must be of the form <username>:<password>")
    if not username or not password:
        raise MalformedCredential("credential username and password must be non-empty")
    return Credential(username=username, password=password)


def load_credential(
    store: CredentialStore,
    name: str,
    key: str = DEFAULT_CREDENTIAL_KEY,
    deadline: Optional[Deadline] = None,
) -> Outcome[Credential]:
    """从存储中读取并解析凭据，失败时降级为空凭据。

    参数:
        store: 凭据存储。
        name: Secret 名称。
        key: Secret 中的字段名，默认 ``bootstrap_user``。
        deadline: 可选的整体时间预算；读取 Secret 受其约束。

    返回值:
        Outcome[Credential]: 成功时无告警；失败时为空凭据并附带一条告警，
        管理 API 随后会明确拒绝未认证请求。

    异常:
        DeadlineExceeded: 读取 Secret 未在预算内完成（不降级）。
    """

    try:
        if deadline is None:
            data = store.get(name)
        else:
            data = deadline.run(
                "credential lookup", store.get, name, timeout=deadline.remaining()
            )
        if data is None:
            raise MissingCredentialSource(f"secret {name!r} not found")
        if key not in data:
            raise MissingCredentialSource(f"the secret {name!r} does not contain the {key}")
        credential = resolve_credential(data[key])
    except CredentialError as exc:
        logger.warning("credential_unavailable", secret=name, key=key, error=str(exc))
        return Outcome(Credential.empty(), [f"FailedToGetBootStrapUserSecret: {exc}"])
    return Outcome(credential)
