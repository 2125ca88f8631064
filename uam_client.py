import dataclasses
from typing import Any, Optional, Tuple
import requests
from requests.cookies import RequestsCookieJar
from helpers.exceptions import SettingsError
from helpers.logger import *
from helpers.settings import UAMSettings
from modules.evaluator import Evaluator, ExpressionEvaluator
from modules.interceptor import ChallengeAdapter, ChallengeSession


class UAMClient:
    """HTTP client for Cloudflare-protected sites that answers IUAM challenges.

    Example::

        with UAMClient(delay=5000) as client:
            response = client.get("https://www.example.com")
            print(response.status_code, client.cookies.get("cf_clearance"))

    The clearance cookie lands in the session jar and is sent on every later
    request, so only the first request to a host pays the challenge delay.
    """

    def __init__(self, settings: Optional[UAMSettings] = None, evaluator: Optional[Evaluator] = None, **overrides: Any) -> None:
        settings = settings or UAMSettings()
        if overrides:
            try:
                settings = dataclasses.replace(settings, **overrides)
            except TypeError as e:
                raise SettingsError(f"Invalid client settings: {e}") from e

        self.settings = settings
        self.evaluator = evaluator or ExpressionEvaluator()
        self.logger = Logger(__name__)
        self.session, self.adapter = self._build_session()


    def _build_session(self) -> Tuple[ChallengeSession, ChallengeAdapter]:
        session = ChallengeSession()
        session.headers.update(self.settings.headers)

        # User tweaks go first, the interceptor is always mounted last
        if self.settings.transport_customizer is not None:
            self.settings.transport_customizer(session)

        adapter = ChallengeAdapter(self.settings, self.evaluator, session.cookies)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        return session, adapter


    @property
    def cookies(self) -> RequestsCookieJar:
        return self.session.cookies


    def request(self, method: str, url: str, **kwargs) -> requests.Response:
        self.logger.debug(f"[*] {method.upper()} {url}")
        return self.session.request(method, url, **kwargs)


    def get(self, url: str, **kwargs) -> requests.Response:
        return self.request("GET", url, **kwargs)


    def post(self, url: str, data: Any = None, **kwargs) -> requests.Response:
        return self.request("POST", url, data=data, **kwargs)


    def close(self) -> None:
        self.session.close()


    def __enter__(self) -> "UAMClient":
        return self


    def __exit__(self, *exc_info) -> None:
        self.close()
