from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Protocol


class RequestInterceptor(Protocol):
    # Network interception is external; the run only attaches and detaches it.
    async def attach(self, page: object) -> None:
        raise NotImplementedError("RequestInterceptor.attach must be implemented")

    async def detach(self, page: object) -> None:
        raise NotImplementedError("RequestInterceptor.detach must be implemented")


# Builds an interceptor from the run's blocked domains.
InterceptorFactory = Callable[[Sequence[str]], RequestInterceptor]
