"""命令行入口。

- ``ports``：发现集群实际启用的监听器，输出 Service 端口规格；
- ``nodes``：输出集群节点状态；
- ``validate``：严格校验集群配置文件。

示例:
    emqx-topology ports --config cluster.yaml --incluster
"""

from __future__ import annotations

import json as _json
from pathlib import Path
from typing import Any, Dict, NoReturn, Optional

import typer
import yaml
from pydantic import ValidationError

from .config import ClusterConfig, load_cluster_config, log_settings_from_env
from .errors import DiscoveryError
from .k8s.kubernetes_client import (
    KubePodLister,
    KubeSecretStore,
    create_core_v1_api,
    resolve_admin_port,
)
from .orchestrators.discover import discover_node_statuses, discover_service_ports
from .utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

app = typer.Typer(help="EMQX 集群运行时拓扑发现 CLI")

_env = log_settings_from_env()


@app.callback()
def _root(
    log_level: str = typer.Option(_env["log_level"], "--log-level", help="日志级别"),
    log_format: str = typer.Option(_env["log_format"], "--log-format", help="日志格式: json/console"),
) -> None:
    """根命令：配置日志。"""

    configure_logging(log_level=log_level, log_format=log_format)


def _load(config: str) -> ClusterConfig:
    try:
        return load_cluster_config(Path(config))
    except (OSError, ValueError, yaml.YAMLError, ValidationError) as exc:
        raise typer.BadParameter(f"invalid config {config}: {exc}") from exc


def _context(cluster: ClusterConfig, incluster: bool) -> Dict[str, Any]:
    """构造 K8s 协作方：Pod 列表、Secret 存储与管理端口解析。"""

    api = create_core_v1_api(incluster=incluster)
    return {
        "lister": KubePodLister(api),
        "store": KubeSecretStore(api, cluster.namespace),
        "port_resolver": lambda timeout=None: resolve_admin_port(
            api,
            cluster.namespace,
            cluster.dashboard_service_name,
            cluster.dashboard_port_name,
            timeout=timeout,
        ),
    }


def _fail(exc: DiscoveryError) -> NoReturn:
    logger.error("discovery_failed", error_type=type(exc).__name__, error=str(exc))
    typer.echo(_json.dumps({"error": type(exc).__name__, "message": str(exc)}), err=True)
    raise typer.Exit(code=1)


@app.command()
def ports(
    config: str = typer.Option(..., "--config", help="集群配置 YAML 路径"),
    incluster: bool = typer.Option(False, "--incluster", help="使用集群内配置"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="总时间预算（秒）"),
) -> None:
    """发现并打印 Service 端口规格。

    参数:
        config: 集群配置文件。
        incluster: 是否使用 in-cluster K8s 配置。
        timeout: 覆盖配置中的 ``timeout_s``。

    返回值:
        无；以 JSON 打印 ``{"ports": [...], "warnings": [...]}``。

    副作用:
        K8s 与管理 API 网络请求；失败时退出码为 1。
    """

    cluster = _load(config)
    ctx = _context(cluster, incluster)
    try:
        res = discover_service_ports(
            cluster,
            ctx["lister"],
            ctx["store"],
            port_resolver=ctx["port_resolver"],
            timeout_s=timeout,
        )
    except DiscoveryError as exc:
        _fail(exc)
    out = {"ports": [p.to_dict() for p in res.value], "warnings": res.warnings}
    typer.echo(_json.dumps(out, ensure_ascii=False))


@app.command()
def nodes(
    config: str = typer.Option(..., "--config", help="集群配置 YAML 路径"),
    incluster: bool = typer.Option(False, "--incluster", help="使用集群内配置"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="总时间预算（秒）"),
) -> None:
    """打印集群节点状态（JSON）。"""

    cluster = _load(config)
    ctx = _context(cluster, incluster)
    try:
        res = discover_node_statuses(
            cluster,
            ctx["lister"],
            ctx["store"],
            port_resolver=ctx["port_resolver"],
            timeout_s=timeout,
        )
    except DiscoveryError as exc:
        _fail(exc)
    out = {"nodes": [n.model_dump() for n in res.value], "warnings": res.warnings}
    typer.echo(_json.dumps(out, ensure_ascii=False))


@app.command()
def validate(
    config: str = typer.Option(..., "--config", help="集群配置 YAML 路径"),
) -> None:
    """严格校验配置并打印补全缺省值后的结果。"""

    cluster = _load(config)
    typer.echo(_json.dumps(cluster.model_dump(), ensure_ascii=False))


def main() -> None:
    """CLI 入口包装。"""

    app()


if __name__ == "__main__":
    main()
