"""EMQX 集群运行时拓扑发现。

该包从编排层选出可用成员，经管理 API 查询实际启用的网关与监听器，
并将其映射为外部可用的 Service 端口规格。
"""

__all__ = ["__version__", "get_version"]

__version__ = "0.1.0"


def get_version() -> str:
    """返回当前包版本号。

    返回值:
        str: 版本号字符串，例如 "0.1.0"。
    副作用:
        无副作用，仅读取内置常量。
    """

    return __version__
