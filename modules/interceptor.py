import contextvars, ssl, threading
from contextlib import contextmanager
from typing import Iterator, Optional
from urllib.parse import urlsplit
import requests
from requests.adapters import HTTPAdapter
from requests.cookies import RequestsCookieJar, extract_cookies_to_jar
from urllib3.util.ssl_ import create_urllib3_context
from helpers.constants import *
from helpers.exceptions import *
from helpers.logger import *
from helpers.settings import UAMSettings
from helpers.utils import hostname, origin
from modules.classifier import classify, is_candidate
from modules.evaluator import Evaluator, ExpressionEvaluator
from modules.extractor import extract_form_parameters
from modules.models import ChallengePage, FormParameters, ResponseClassification


def restricted_ssl_context() -> ssl.SSLContext:
    context = create_urllib3_context(ciphers=":".join(restricted_ciphers))
    context.minimum_version = ssl.TLSVersion.TLSv1_2
    context.maximum_version = ssl.TLSVersion.TLSv1_2
    return context


class SolveBudget:
    """Challenge answers left for one caller request, redirect hops included."""

    def __init__(self, attempts: int = 1) -> None:
        self.remaining = attempts


    def take(self) -> bool:
        if self.remaining <= 0:
            return False
        self.remaining -= 1
        return True


_solve_budget = contextvars.ContextVar("solve_budget", default=None)


@contextmanager
def solve_scope(attempts: int = 1) -> Iterator[SolveBudget]:
    budget = SolveBudget(attempts)
    token = _solve_budget.set(budget)
    try:
        yield budget
    finally:
        _solve_budget.reset(token)


class ChallengeSession(requests.Session):
    """Session giving each request() call, with all of its redirects, a single solve attempt.

    Redirects are followed above the transport adapter, the budget spans
    every hop. Once it is spent, challenges are returned unanswered.
    """

    def request(self, *args, **kwargs) -> requests.Response:
        with solve_scope():
            return super().request(*args, **kwargs)


class ChallengeAdapter(HTTPAdapter):
    """Transport adapter that answers Cloudflare IUAM challenges in-line.

    Every request goes out with the fixed identifying headers. A response
    classified as an IUAM challenge is solved, and after ``settings.delay``
    milliseconds the answer is submitted through the same adapter; the
    answer's response is returned as-is. Captcha challenges raise
    UnsupportedChallengeError. Mounted on a ChallengeSession, each caller
    request gets one solve attempt across all of its redirects.
    """

    def __init__(self, settings: Optional[UAMSettings] = None, evaluator: Optional[Evaluator] = None,
                 cookie_jar: Optional[RequestsCookieJar] = None, **kwargs) -> None:
        # init_poolmanager() reads settings during HTTPAdapter.__init__
        self.settings = settings or UAMSettings()
        self.evaluator = evaluator or ExpressionEvaluator()
        self.cookie_jar = cookie_jar if cookie_jar is not None else RequestsCookieJar()
        self.cancelled = threading.Event()
        self.logger = Logger(__name__)
        super().__init__(**kwargs)


    def init_poolmanager(self, *args, **kwargs):
        if self.settings.restrict_ciphers:
            kwargs["ssl_context"] = restricted_ssl_context()
        return super().init_poolmanager(*args, **kwargs)


    def proxy_manager_for(self, proxy, **proxy_kwargs):
        if self.settings.restrict_ciphers:
            proxy_kwargs["ssl_context"] = restricted_ssl_context()
        return super().proxy_manager_for(proxy, **proxy_kwargs)


    def with_identity_headers(self, request: requests.PreparedRequest) -> requests.PreparedRequest:
        request = request.copy()
        request.headers.update(self.settings.headers)
        return request


    def send(self, request: requests.PreparedRequest, **kwargs) -> requests.Response:
        request = self.with_identity_headers(request)
        response = super().send(request, **kwargs)

        server = response.headers.get("Server")
        if not is_candidate(response.status_code, server):
            return response

        # Response.content is cached, callers can still read the body
        classification = classify(response.status_code, server, response.text)

        if classification is ResponseClassification.PASSTHROUGH:
            self.logger.debug(f"[*] {response.status_code} from {server} at {request.url} is not a challenge")
            return response

        if classification is ResponseClassification.UNSUPPORTED_CHALLENGE:
            self.logger.error(f"[-] Captcha challenge at {request.url}, not attempting it")
            response.close()
            raise UnsupportedChallengeError(request.url)

        budget = _solve_budget.get()
        if budget is not None and not budget.take():
            self.logger.warning(f"[!] Challenge at {request.url} after an answer was already sent, returning it as-is")
            return response

        return self.solve(request, response, **kwargs)


    def solve(self, request: requests.PreparedRequest, response: requests.Response, **kwargs) -> requests.Response:
        self.logger.info(f"[*] IUAM challenge ({response.status_code}) at {request.url}")

        extract_cookies_to_jar(self.cookie_jar, request, response.raw)
        page = ChallengePage(
            scheme=urlsplit(request.url).scheme,
            host=hostname(request.url),
            body=response.text,
        )

        # Nothing may hold a pooled connection while we wait
        response.close()

        try:
            params = extract_form_parameters(page, self.evaluator)
        except ExtractionError as e:
            self.logger.error(f"[-] Could not solve the challenge at {request.url}: {e}")
            raise

        self.wait()

        follow_up = self.build_follow_up(request, params)
        self.logger.info(f"[*] Submitting challenge answer to {follow_up.url}")
        final = super().send(follow_up, **kwargs)

        if final.status_code < 400:
            self.logger.success(f"[+] Challenge answered, got {final.status_code}")
        else:
            self.logger.warning(f"[!] Challenge answer got {final.status_code}")
        return final


    def wait(self) -> None:
        self.logger.debug(f"[*] Waiting {self.settings.delay} ms before submitting")
        if self.cancelled.wait(self.settings.delay_seconds):
            raise ChallengeCancelled("Adapter was closed while waiting to submit a challenge answer")


    def build_follow_up(self, request: requests.PreparedRequest, params: FormParameters) -> requests.PreparedRequest:
        headers = dict(self.settings.headers)
        headers["Content-Type"] = form_content_type

        return requests.Request(
            method="POST",
            url=origin(request.url) + params.action_path,
            headers=headers,
            params=params.query_params(),
            data=params.form_data(),
            cookies=self.cookie_jar,
        ).prepare()


    def close(self) -> None:
        self.cancelled.set()
        super().close()
