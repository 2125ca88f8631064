import html
from typing import Optional, Tuple
from helpers.constants import *
from helpers.exceptions import *
from helpers.logger import *
from helpers.utils import find_first, split_action
from modules.evaluator import Evaluator, ExpressionEvaluator
from modules.models import ChallengePage, FormParameters
from modules.transformer import transform


logger = Logger(__name__)


def find_r(page: str) -> Optional[str]:
    return find_first(PAGE_PATTERNS["r"], page)


def find_jschl_vc(page: str) -> Optional[str]:
    # name/value order isn't stable between page revisions
    return find_first(PAGE_PATTERNS["jschl_vc"], page)


def find_pass(page: str) -> Optional[str]:
    return find_first(PAGE_PATTERNS["pass"], page)


def find_action(page: str) -> Optional[str]:
    action = find_first(PAGE_PATTERNS["action"], page)
    return html.unescape(action) if action is not None else None


def parse_action(action: str) -> Tuple[str, str, str]:
    parts = split_action(action)
    if parts is None:
        raise ActionMalformed(action)
    return parts


def require(name: str, value: Optional[str]) -> str:
    if value is None:
        raise FieldNotFound(name)
    return value


def solve_answer(page: ChallengePage, evaluator: Evaluator) -> str:
    snippet = transform(page.body, page.host)
    logger.debug(f"[*] Evaluating challenge snippet ({len(snippet)} chars)")

    try:
        return evaluator.evaluate(snippet)
    except EvaluationError as e:
        raise ScriptEvaluationFailed(f"Challenge script evaluation failed: {e}") from e


def extract_form_parameters(page: ChallengePage, evaluator: Optional[Evaluator] = None) -> FormParameters:
    evaluator = evaluator or ExpressionEvaluator()
    body = page.body

    r = require("r", find_r(body))
    jschl_vc = require("jschl_vc", find_jschl_vc(body))
    pass_ = require("pass", find_pass(body))
    action_path, query_key, query_value = parse_action(require("action", find_action(body)))

    jschl_answer = solve_answer(page, evaluator)
    logger.debug(f"[*] Challenge answer for {page.host}: {jschl_answer}")

    return FormParameters(
        r=r,
        jschl_vc=jschl_vc,
        pass_=pass_,
        jschl_answer=jschl_answer,
        action_path=action_path,
        action_query_key=query_key,
        action_query_value=query_value,
    )
