"""凭据解析与降级加载测试。"""

from __future__ import annotations

import threading
import time
from typing import Dict, Mapping, Optional

import pytest

from emqx_topology.clients.http import Deadline
from emqx_topology.credentials import (
    bootstrap_secret_name,
    load_credential,
    resolve_credential,
)
from emqx_topology.errors import (
    DeadlineExceeded,
    MalformedCredential,
    MissingCredentialSource,
)
from emqx_topology.models import Credential


class FakeStore:
    def __init__(self, secrets: Dict[str, Mapping[str, bytes]]):
        self.secrets = secrets
        self.requested = []
        self.timeouts = []

    def get(self, name: str, timeout: Optional[float] = None) -> Optional[Mapping[str, bytes]]:
        self.requested.append(name)
        self.timeouts.append(timeout)
        return self.secrets.get(name)


def test_resolve_simple():
    cred = resolve_credential(b"admin:public")
    assert cred == Credential(username="admin", password="public")


def test_resolve_splits_on_first_colon():
    """密码中可以包含冒号，只按第一个冒号拆分。"""

    cred = resolve_credential("admin:pa:ss:word")
    assert cred.username == "admin"
    assert cred.password == "pa:ss:word"


def test_resolve_missing_source():
    with pytest.raises(MissingCredentialSource):
        resolve_credential(None)


@pytest.mark.parametrize("blob", [b"adminpublic", "", b":public", b"admin:"])
def test_resolve_malformed(blob):
    with pytest.raises(MalformedCredential):
        resolve_credential(blob)


def test_resolve_invalid_utf8():
    with pytest.raises(MalformedCredential, match="utf-8"):
        resolve_credential(b"\xff\xfe:pw")


def test_password_not_in_repr():
    assert "public" not in repr(resolve_credential(b"admin:public"))


def test_load_credential_ok():
    store = FakeStore({"emqx-bootstrap-user": {"bootstrap_user": b"admin:s3cr:et"}})
    res = load_credential(store, bootstrap_secret_name("emqx"))
    assert res.warnings == []
    assert res.value.password == "s3cr:et"
    assert store.requested == ["emqx-bootstrap-user"]


def test_load_credential_missing_secret_degrades():
    """Secret 不存在时返回空凭据与告警，而不是抛出异常。"""

    res = load_credential(FakeStore({}), "emqx-bootstrap-user")
    assert res.value.is_empty
    assert len(res.warnings) == 1
    assert res.warnings[0].startswith("FailedToGetBootStrapUserSecret:")
    assert "not found" in res.warnings[0]


def test_load_credential_missing_key_degrades():
    store = FakeStore({"s": {"other": b"a:b"}})
    res = load_credential(store, "s")
    assert res.value.is_empty
    assert "does not contain the bootstrap_user" in res.warnings[0]


def test_load_credential_malformed_degrades():
    store = FakeStore({"s": {"bootstrap_user": b"nocolon"}})
    res = load_credential(store, "s")
    assert res.value == Credential.empty()
    assert "<username>:<password>" in res.warnings[0]


def test_load_credential_store_error_degrades():
    """存储自身报出凭据错误时同样降级。"""

    class BrokenStore:
        def get(self, name, timeout=None):
            raise MissingCredentialSource("failed to get secret default/s: forbidden")

    res = load_credential(BrokenStore(), "s")
    assert res.value.is_empty and "forbidden" in res.warnings[0]


def test_load_credential_passes_remaining_budget():
    store = FakeStore({"s": {"bootstrap_user": b"admin:public"}})
    res = load_credential(store, "s", deadline=Deadline(2.0))
    assert res.value.username == "admin"
    assert 0 < store.timeouts[0] <= 2.0


def test_load_credential_slow_store_is_not_degraded():
    """读取 Secret 超出预算时抛出 DeadlineExceeded，而不是降级为空凭据。"""

    release = threading.Event()

    class SlowStore:
        def get(self, name, timeout=None):
            release.wait(5)
            return None

    start = time.monotonic()
    try:
        with pytest.raises(DeadlineExceeded, match="credential lookup"):
            load_credential(SlowStore(), "s", deadline=Deadline(0.2))
        assert time.monotonic() - start < 1.0
    finally:
        release.set()
