"""CLI 测试（K8s 与管理 API 均为 mock）。"""

from __future__ import annotations

import base64
import json
from pathlib import Path
from types import SimpleNamespace as NS

import pytest
from typer.testing import CliRunner

from emqx_topology import run as cli

runner = CliRunner()


class FakeCoreV1Api:
    def list_namespaced_pod(self, namespace: str, label_selector: str, _request_timeout=None):
        pod = NS(
            metadata=NS(name="emqx-core-0", namespace=namespace, labels={}),
            status=NS(pod_ip="10.0.0.9", container_statuses=[NS(name="emqx", ready=True)]),
        )
        return NS(items=[pod])

    def read_namespaced_secret(self, name: str, namespace: str, _request_timeout=None):
        return NS(data={"bootstrap_user": base64.b64encode(b"admin:public").decode()})

    def read_namespaced_service(self, name: str, namespace: str, _request_timeout=None):
        port = NS(name="dashboard-listeners-http-bind", port=18083, target_port=18083)
        return NS(spec=NS(ports=[port]))


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    p = tmp_path / "cluster.yaml"
    p.write_text("name: emqx\nretries: 0\n", encoding="utf-8")
    return p


@pytest.fixture(autouse=True)
def fake_api(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(cli, "create_core_v1_api", lambda incluster=False: FakeCoreV1Api())


def test_ports_command(requests_mock, config_file: Path):
    base = "http://10.0.0.9:18083"
    requests_mock.get(
        f"{base}/api/v5/listeners",
        json=[{"enable": True, "id": "tcp:default", "bind": "0.0.0.0:1883", "type": "tcp"}],
    )
    requests_mock.get(f"{base}/api/v5/gateway", json=[])
    result = runner.invoke(cli.app, ["ports", "--config", str(config_file)])
    assert result.exit_code == 0, result.output
    out = json.loads(result.stdout.strip().splitlines()[-1])
    assert out == {
        "ports": [{"name": "tcp-default", "protocol": "TCP", "port": 1883, "targetPort": 1883}],
        "warnings": [],
    }


def test_nodes_command(requests_mock, config_file: Path):
    requests_mock.get("http://10.0.0.9:18083/api/v5/nodes", json=[{"node": "emqx@10.0.0.9"}])
    result = runner.invoke(cli.app, ["nodes", "--config", str(config_file)])
    assert result.exit_code == 0, result.output
    out = json.loads(result.stdout.strip().splitlines()[-1])
    assert out["nodes"] == [{"node": "emqx@10.0.0.9"}]


def test_ports_command_failure_exit_code(requests_mock, config_file: Path):
    requests_mock.get("http://10.0.0.9:18083/api/v5/listeners", status_code=500, text="boom")
    result = runner.invoke(cli.app, ["ports", "--config", str(config_file)])
    assert result.exit_code == 1


def test_validate_command(config_file: Path):
    result = runner.invoke(cli.app, ["validate", "--config", str(config_file)])
    assert result.exit_code == 0
    out = json.loads(result.stdout.strip().splitlines()[-1])
    assert out["name"] == "emqx" and out["retries"] == 0


def test_validate_rejects_unknown_keys(tmp_path: Path):
    p = tmp_path / "bad.yaml"
    p.write_text("name: emqx\nbogus: true\n", encoding="utf-8")
    result = runner.invoke(cli.app, ["validate", "--config", str(p)])
    assert result.exit_code != 0


@pytest.mark.parametrize(
    "content",
    [
        "name: [unclosed\n",
        "- name: emqx\n",
        "just-a-string\n",
    ],
)
def test_malformed_config_is_usage_error(tmp_path: Path, content: str):
    """YAML 语法错误或顶层不是映射时以参数错误退出（退出码 2），而非崩溃。"""

    p = tmp_path / "bad.yaml"
    p.write_text(content, encoding="utf-8")
    for command in ("validate", "ports"):
        result = runner.invoke(cli.app, [command, "--config", str(p)])
        assert result.exit_code == 2, result.output
        assert not isinstance(result.exception, (TypeError, ValueError))
