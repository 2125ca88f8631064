import re
from typing import List, Optional
from helpers.constants import *
from helpers.exceptions import UnrecognizedScriptFormat
from helpers.utils import find_first, js_string_literal


ACCUMULATOR_STUB = "var a = {value: 0.0};\n"
RESULT_EXPRESSION = ";\na.value;"


def inline_scripts(page: str) -> List[str]:
    return re.findall(PAGE_PATTERNS["script"], page, re.IGNORECASE)


def extract_puzzle(script: str) -> Optional[str]:
    return find_first(PAGE_PATTERNS["puzzle"], script)


def substitute_host(puzzle: str, host: str) -> str:
    assignment = f"t = {js_string_literal(host)};"
    return re.sub(PAGE_PATTERNS["host_derivation"], lambda _: assignment, puzzle)


def strip_dom_lookups(puzzle: str) -> str:
    return re.sub(PAGE_PATTERNS["dom_lookup"], "", puzzle)


def hidden_div_text(page: str) -> Optional[str]:
    return find_first(PAGE_PATTERNS["hidden_div"], page)


def document_stub(inner_html: str) -> str:
    return (
        "var document = {getElementById: function(i){"
        f"return {{innerHTML: {js_string_literal(inner_html)}}};"
        "}};\n"
    )


def transform(page: str, host: str) -> str:
    """Turn a challenge page into a self-contained snippet for an Evaluator.

    The puzzle is the body of the first inline script's setTimeout callback,
    cut right after its toFixed(NN) call. Everything the callback would read
    from a live document is replaced: the hostname becomes a literal, the
    answer/form element lookups are dropped, the answer field becomes a plain
    ``a = {value: 0.0}`` object and, for pages carrying a hidden cf-dn div, a
    stub ``document.getElementById`` returns that div's text. The snippet's
    last expression is ``a.value``.
    """
    puzzle = None
    for script in inline_scripts(page):
        puzzle = extract_puzzle(script)
        if puzzle:
            break

    if not puzzle:
        raise UnrecognizedScriptFormat("No setTimeout(...toFixed(NN)) challenge found in the page scripts")

    puzzle = substitute_host(puzzle, host)
    puzzle = strip_dom_lookups(puzzle)
    snippet = ACCUMULATOR_STUB + puzzle

    inner_html = hidden_div_text(page)
    if inner_html is not None:
        snippet = document_stub(inner_html) + snippet

    return snippet + RESULT_EXPRESSION
