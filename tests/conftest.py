"""测试全局配置与通用夹具。

将 `src` 目录加入 `sys.path`，以便在未打包安装时可直接导入包；
同时提供测试中反复使用的成员、凭据与管理 API 客户端。
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from emqx_topology.clients.http import AdminAPIClient  # noqa: E402
from emqx_topology.models import ContainerStatus, Credential, MemberCandidate  # noqa: E402



@pytest.fixture
def member() -> MemberCandidate:
    """一个目标容器已 Ready 的成员。"""

    return MemberCandidate(
        name="emqx-core-0",
        namespace="default",
        address="10.0.0.1",
        labels={"apps.emqx.io/instance": "emqx"},
        container_statuses=[ContainerStatus(name="emqx", ready=True)],
    )


@pytest.fixture
def credential() -> Credential:
    return Credential(username="admin", password="public")


@pytest.fixture
def admin_client() -> AdminAPIClient:
    """不重试的客户端，避免测试中等待。"""

    return AdminAPIClient(retries=0)
