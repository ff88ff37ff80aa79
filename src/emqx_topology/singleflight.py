"""按键合并并发调用：同一键同一时刻至多一个调用在执行。"""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class _Call(Generic[T]):
    def __init__(self) -> None:
        self.done = threading.Event()
        self.result: Optional[T] = None
        self.error: Optional[BaseException] = None
        self.waiters = 0


class SingleFlight:
    """并发调用合并器。

    领头调用执行 ``fn``，其余同键调用等待并共享其结果（或异常）。
    调用结束后立即移除记录，不缓存结果。
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: Dict[str, _Call[Any]] = {}

    def do(self, key: str, fn: Callable[[], T]) -> T:
        """执行或加入 ``key`` 对应的调用。

        参数:
            key: 合并键（如 ``<namespace>/<cluster>``）。
            fn: 无参可调用对象。

        返回值:
            T: ``fn`` 的返回值。

        副作用:
            领头调用期间其余同键调用阻塞等待。
        """

        with self._lock:
            call = self._calls.get(key)
            leader = call is None
            if call is None:
                call = _Call()
                self._calls[key] = call
            else:
                call.waiters += 1
        if not leader:
            call.done.wait()
            if call.error is not None:
                raise call.error
            return call.result  # type: ignore[return-value]
        try:
            call.result = fn()
        except BaseException as exc:
            call.error = exc
            raise
        finally:
            with self._lock:
                del self._calls[key]
            call.done.set()
        return call.result

    def in_flight(self, key: str) -> bool:
        with self._lock:
            return key in self._calls
