from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from stepwise.kernel.settings import RunSettings
    from stepwise.ports.interceptor import InterceptorFactory


class DriverClient(Protocol):
    # Owns the underlying browser connection; the page handle is what interceptors attach to.
    page: object

    async def reopen_page(self, incognito: bool = False) -> None:
        raise NotImplementedError("DriverClient.reopen_page must be implemented")


class BrowserSession(Protocol):
    # Browser capability handed to step bodies; implemented outside this package.
    settings: RunSettings
    custom_context: object | None

    @property
    def url(self) -> str:
        raise NotImplementedError("BrowserSession.url must be implemented")

    async def clear_browser_cache(self) -> None:
        raise NotImplementedError("BrowserSession.clear_browser_cache must be implemented")

    async def clear_browser_cookies(self) -> None:
        raise NotImplementedError("BrowserSession.clear_browser_cookies must be implemented")

    async def emulate_device(self, device: str) -> None:
        raise NotImplementedError("BrowserSession.emulate_device must be implemented")

    async def set_user_agent(self, user_agent: str) -> None:
        raise NotImplementedError("BrowserSession.set_user_agent must be implemented")

    async def set_cache_disabled(self, disabled: bool = True) -> None:
        raise NotImplementedError("BrowserSession.set_cache_disabled must be implemented")

    async def set_extra_http_headers(self, headers: Mapping[str, str]) -> None:
        raise NotImplementedError("BrowserSession.set_extra_http_headers must be implemented")

    async def take_screenshot(self, options: Mapping[str, object] | None = None) -> None:
        raise NotImplementedError("BrowserSession.take_screenshot must be implemented")

    async def fetch_screenshots(self) -> list[str]:
        raise NotImplementedError("BrowserSession.fetch_screenshots must be implemented")


# Called by the browser session around every sub-action it performs (click, type, visit, ...).
ActionHook = Callable[[BrowserSession, str], Awaitable[None]]


class BrowserFactory(Protocol):
    def __call__(
        self,
        *,
        client: DriverClient,
        settings: RunSettings,
        will_run_command: ActionHook,
        did_run_command: ActionHook,
    ) -> BrowserSession:
        raise NotImplementedError("BrowserFactory is a callable contract")


@dataclass(frozen=True, slots=True)
class DriverRuntime:
    # Bundle a steps module hands to the CLI so the sequencer can be wired without importing a driver.
    client: DriverClient
    browser_factory: BrowserFactory
    interceptor_factory: InterceptorFactory
