from typing import Optional
from helpers.constants import *
from modules.models import ResponseClassification


def is_proxy_server(server_header: Optional[str]) -> bool:
    return bool(server_header) and server_header.lower().startswith(CHALLENGE_MARKERS["server_token"])


def is_candidate(status_code: int, server_header: Optional[str]) -> bool:
    """Header-only check, tells whether the body is worth buffering at all."""
    low, high = CHALLENGE_MARKERS["iuam_status_range"]
    in_range = low <= status_code <= high or status_code == CHALLENGE_MARKERS["captcha_status"]
    return in_range and is_proxy_server(server_header)


def is_iuam_challenge(status_code: int, server_header: Optional[str], body: str) -> bool:
    low, high = CHALLENGE_MARKERS["iuam_status_range"]
    return (
        low <= status_code <= high
        and is_proxy_server(server_header)
        and CHALLENGE_MARKERS["iuam_body"] in body
    )


def is_captcha_challenge(status_code: int, server_header: Optional[str], body: str) -> bool:
    return (
        status_code == CHALLENGE_MARKERS["captcha_status"]
        and is_proxy_server(server_header)
        and CHALLENGE_MARKERS["captcha_body"] in body
    )


def classify(status_code: int, server_header: Optional[str], body: str) -> ResponseClassification:
    if is_iuam_challenge(status_code, server_header, body):
        return ResponseClassification.IUAM_CHALLENGE
    if is_captcha_challenge(status_code, server_header, body):
        return ResponseClassification.UNSUPPORTED_CHALLENGE
    return ResponseClassification.PASSTHROUGH
