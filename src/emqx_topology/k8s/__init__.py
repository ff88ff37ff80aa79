"""Kubernetes 适配层：Pod 列表、Secret 读取、管理端口解析与 ServicePort 渲染。"""

from __future__ import annotations

from typing import Mapping


def label_selector(labels: Mapping[str, str]) -> str:
    """将标签映射渲染为 ``k=v,k2=v2`` 形式的 label selector。

    参数:
        labels: 标签映射。

    返回值:
        str: label selector 字符串；按键排序，空映射返回空字符串。

    副作用:
        无。
    """

    return ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
