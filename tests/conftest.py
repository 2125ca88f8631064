from typing import List, Optional
import pytest
import requests
from requests.adapters import HTTPAdapter
from requests.structures import CaseInsensitiveDict
from modules.evaluator import Evaluator


# ---------------------------------------------------------------------------
# Pinned challenge pages
# ---------------------------------------------------------------------------

PUZZLE = (
    'var s,t,o,p,b,r,e,a,k,i,n,g,f, kZwSOxr={"wTsLTqT":+((!+[]+!![]+!![]+[])+(+!![]))};\n'
    "        t = document.createElement('div');\n"
    "        t.innerHTML=\"<a href='/'>x</a>\";\n"
    "        t = t.firstChild.href;r = t.match(/https?:\\/\\//)[0];\n"
    "        t = t.substr(r.length); t = t.substr(0,t.length-1); k = 'cf-dn-ofcVhBN';\n"
    "        a = document.getElementById('jschl-answer');\n"
    "        f = document.getElementById('challenge-form');\n"
    "        ;kZwSOxr.wTsLTqT+=+((!+[]+!![]+[])+(!+[]+!![]+!![]));"
    "kZwSOxr.wTsLTqT*=+((+!![]+[])+(+[]));"
    "kZwSOxr.wTsLTqT-=+((!+[]+!![]+!![]+!![]+[])+(+!![]))/+((!+[]+!![]+[])+(+!![]+!![]+!![]+!![]+!![]+!![]+!![]+!![]));"
    "a.value = (+kZwSOxr.wTsLTqT + t.length).toFixed(10); '; 121'\n"
)

# 31, +23, *10, -41/28, + len("example.com")
PUZZLE_ANSWER = "549.5357142857"

HIDDEN_DIV_PUZZLE = (
    'var s,t,o,p,b,r,e,a,k,i,n,g,f, kZwSOxr={"wTsLTqT":+((!+[]+!![]+!![]+[])+(+!![]))};\n'
    "        t = document.createElement('div');\n"
    "        t.innerHTML=\"<a href='/'>x</a>\";\n"
    "        t = t.firstChild.href;r = t.match(/https?:\\/\\//)[0];\n"
    "        t = t.substr(r.length); t = t.substr(0,t.length-1); k = 'cf-dn-ofcVhBN';\n"
    "        a = document.getElementById('jschl-answer');\n"
    "        f = document.getElementById('challenge-form');\n"
    "        ;kZwSOxr.wTsLTqT+=+(document.getElementById(k).innerHTML);"
    "a.value = (+kZwSOxr.wTsLTqT + t.length).toFixed(10); '; 121'\n"
)

# 31 + 7 + len("example.com")
HIDDEN_DIV_ANSWER = "49.0000000000"

CHALLENGE_ACTION = "/cdn-cgi/l/chk_jschl?__cf_chl_jschl_tk__=b8a9c1d2e3f4"
CHALLENGE_R = "b2f0a4f4a1c2d3e4f5a6b7c8d9e0f1a2b3c4d5e6-1571851234-0-250"
CHALLENGE_VC = "0f9e8d7c6b5a4f3e2d1c0b9a8f7e6d5c"
CHALLENGE_PASS = "1571851238.567-AbCdEfGhIj"


def make_challenge_page(r: Optional[str] = CHALLENGE_R, jschl_vc: Optional[str] = CHALLENGE_VC,
                        pass_: Optional[str] = CHALLENGE_PASS, action: Optional[str] = CHALLENGE_ACTION,
                        puzzle: str = PUZZLE, hidden_div: Optional[str] = None, vc_reversed: bool = True) -> str:
    inputs = []
    if r is not None:
        inputs.append(f'<input type="hidden" name="r" value="{r}"/>')
    if jschl_vc is not None:
        if vc_reversed:
            inputs.append(f'<input type="hidden" value="{jschl_vc}" id="jschl-vc" name="jschl_vc"/>')
        else:
            inputs.append(f'<input type="hidden" name="jschl_vc" value="{jschl_vc}"/>')
    if pass_ is not None:
        inputs.append(f'<input type="hidden" name="pass" value="{pass_}"/>')
    inputs.append('<input type="hidden" id="jschl-answer" name="jschl_answer"/>')

    action_attribute = f' action="{action}"' if action is not None else ""
    div = ""
    if hidden_div is not None:
        div = f'<div style="display:none;visibility:hidden;" id="cf-dn-ofcVhBN">{hidden_div}</div>\n'

    return (
        "<!DOCTYPE HTML>\n"
        '<html lang="en-US">\n'
        "<head>\n"
        '  <meta charset="UTF-8" />\n'
        "  <title>Just a moment...</title>\n"
        '  <script src="/cdn-cgi/scripts/5c5dd728/cloudflare-static/email-decode.min.js"></script>\n'
        '  <script type="text/javascript">\n'
        "  //<![CDATA[\n"
        "  (function(){\n"
        "    var a = function() {try{return !!window.addEventListener} catch(e) {return !1} },\n"
        "    b = function(b, c) {function d(){if(!e){e=!0;c()}}var e=!1;"
        'if(document.readyState==="complete"){setTimeout(d,1)}else if(b()){'
        'document.addEventListener("DOMContentLoaded",d,!1)}};\n'
        "    b(a, function(){\n"
        "      setTimeout(function(){\n"
        f"        {puzzle}"
        "        f.action += location.hash;\n"
        "        f.submit();\n"
        "      }, 4000);\n"
        "    }, false);\n"
        "  })();\n"
        "  //]]>\n"
        "</script>\n"
        "</head>\n"
        "<body>\n"
        '  <div class="cf-browser-verification cf-im-under-attack">\n'
        f'    <form id="challenge-form"{action_attribute} method="POST" enctype="application/x-www-form-urlencoded">\n'
        + "".join(f"      {line}\n" for line in inputs)
        + "    </form>\n"
        f"    {div}"
        "  </div>\n"
        "</body>\n"
        "</html>\n"
    )


CAPTCHA_PAGE = (
    "<!DOCTYPE html>\n"
    "<html><head><title>Attention Required! | Cloudflare</title></head>\n"
    "<body>\n"
    '  <form class="challenge-form" id="challenge-form" action="/cdn-cgi/l/chk_captcha" method="get">\n'
    '    <input type="hidden" name="s" value="abcdef"/>\n'
    '    <div class="g-recaptcha" data-sitekey="6LfBixYUAAAAABhdHynFUIMA_sa4s-XsJvnjtgB0"></div>\n'
    "  </form>\n"
    "</body></html>\n"
)


@pytest.fixture
def challenge_page() -> str:
    return make_challenge_page()


# ---------------------------------------------------------------------------
# Fake transport
# ---------------------------------------------------------------------------

def make_response(status: int, body: str = "", headers: Optional[dict] = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response._content = body.encode("utf-8")
    response._content_consumed = True
    response.headers = CaseInsensitiveDict(headers or {})
    response.encoding = "utf-8"
    return response


def cloudflare_response(status: int, body: str) -> requests.Response:
    return make_response(status, body, {"Server": "cloudflare", "Content-Type": "text/html; charset=UTF-8"})


class FakeTransport:
    """Stands in for HTTPAdapter.send, replaying queued responses in order."""

    def __init__(self) -> None:
        self.responses: List[requests.Response] = []
        self.requests: List[requests.PreparedRequest] = []
        self.kwargs: List[dict] = []


    def queue(self, *responses: requests.Response) -> None:
        self.responses.extend(responses)


    def send(self, request: requests.PreparedRequest, **kwargs) -> requests.Response:
        self.requests.append(request)
        self.kwargs.append(kwargs)
        if not self.responses:
            raise AssertionError(f"Unexpected request to {request.url}")
        response = self.responses.pop(0)
        response.request = request
        response.url = request.url
        return response


@pytest.fixture
def transport(monkeypatch) -> FakeTransport:
    fake = FakeTransport()
    monkeypatch.setattr(HTTPAdapter, "send", lambda adapter, request, **kwargs: fake.send(request, **kwargs))
    return fake


class CannedEvaluator(Evaluator):
    def __init__(self, answer: str = "42.0000000000") -> None:
        self.answer = answer
        self.snippets: List[str] = []


    def evaluate(self, snippet: str) -> str:
        self.snippets.append(snippet)
        return self.answer


class RecordingEvent:
    """threading.Event replacement that records wait() timeouts instead of sleeping."""

    def __init__(self, is_set: bool = False) -> None:
        self.timeouts: List[float] = []
        self._set = is_set


    def wait(self, timeout: Optional[float] = None) -> bool:
        self.timeouts.append(timeout)
        return self._set


    def set(self) -> None:
        self._set = True
