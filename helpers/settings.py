from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
import requests
from helpers.constants import *
from helpers.exceptions import SettingsError


@dataclass(frozen=True)
class UAMSettings:
    """Client-wide configuration, read by the interceptor on every challenge.

    delay is in milliseconds. transport_customizer receives the freshly built
    ``requests.Session`` before the challenge interceptor is mounted on it.
    """
    delay: int = default_delay_ms
    transport_customizer: Optional[Callable[[requests.Session], None]] = None
    user_agent: str = default_user_agent
    restrict_ciphers: bool = True


    def __post_init__(self) -> None:
        if isinstance(self.delay, bool) or not isinstance(self.delay, int):
            raise SettingsError(f"delay must be an integer number of milliseconds, got {self.delay!r}")
        if self.delay < 0:
            raise SettingsError(f"delay can't be negative: {self.delay}")
        if self.transport_customizer is not None and not callable(self.transport_customizer):
            raise SettingsError("transport_customizer must be callable")
        if not self.user_agent:
            raise SettingsError("user_agent can't be empty")


    @property
    def delay_seconds(self) -> float:
        return self.delay / 1000.0


    @property
    def headers(self) -> Dict[str, str]:
        headers = dict(DEFAULT_HEADERS)
        headers["User-Agent"] = self.user_agent
        return headers


    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "UAMSettings":
        unknown = set(config) - {"delay", "transport_customizer", "user_agent", "restrict_ciphers"}
        if unknown:
            raise SettingsError(f"Unknown settings: {', '.join(sorted(unknown))}")

        return cls(
            delay=config.get("delay", default_delay_ms),
            transport_customizer=config.get("transport_customizer"),
            user_agent=config.get("user_agent") or default_user_agent,
            restrict_ciphers=bool(config.get("restrict_ciphers", True)),
        )
