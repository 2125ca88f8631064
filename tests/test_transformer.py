import pytest
from helpers.exceptions import UnrecognizedScriptFormat
from modules.evaluator import ExpressionEvaluator
from modules.transformer import (
    ACCUMULATOR_STUB, RESULT_EXPRESSION, hidden_div_text, inline_scripts, substitute_host, transform,
)
from tests.conftest import HIDDEN_DIV_ANSWER, HIDDEN_DIV_PUZZLE, PUZZLE, PUZZLE_ANSWER, make_challenge_page


class TestInlineScripts:
    def test_external_scripts_are_skipped(self, challenge_page):
        scripts = inline_scripts(challenge_page)
        assert len(scripts) == 1
        assert "setTimeout(function(){" in scripts[0]


    def test_uppercase_tags(self):
        assert inline_scripts("<SCRIPT>var x = 1;</SCRIPT>") == ["var x = 1;"]


class TestTransform:
    def test_snippet_shape(self, challenge_page):
        snippet = transform(challenge_page, "example.com")
        assert snippet.startswith(ACCUMULATOR_STUB)
        assert snippet.endswith(RESULT_EXPRESSION)
        assert snippet[:-len(RESULT_EXPRESSION)].endswith("toFixed(10)")
        assert "'; 121'" not in snippet
        assert "f.submit()" not in snippet


    def test_host_is_inlined(self, challenge_page):
        snippet = transform(challenge_page, "example.com")
        assert 't = "example.com";' in snippet
        assert "createElement" not in snippet
        assert "firstChild" not in snippet
        assert "k = 'cf-dn-ofcVhBN';" in snippet


    def test_dom_lookups_removed(self, challenge_page):
        snippet = transform(challenge_page, "example.com")
        assert "getElementById('jschl-answer')" not in snippet
        assert "getElementById('challenge-form')" not in snippet


    def test_deterministic(self, challenge_page):
        assert transform(challenge_page, "example.com") == transform(challenge_page, "example.com")


    def test_evaluates_to_answer(self, challenge_page):
        snippet = transform(challenge_page, "example.com")
        assert ExpressionEvaluator().evaluate(snippet) == PUZZLE_ANSWER


    def test_answer_depends_on_host(self, challenge_page):
        snippet = transform(challenge_page, "www.example.com")
        assert ExpressionEvaluator().evaluate(snippet) == "553.5357142857"


    def test_no_document_stub_without_hidden_div(self, challenge_page):
        assert "var document" not in transform(challenge_page, "example.com")


    def test_hidden_div_stub(self):
        page = make_challenge_page(puzzle=HIDDEN_DIV_PUZZLE, hidden_div="7")
        snippet = transform(page, "example.com")
        assert snippet.startswith('var document = {getElementById: function(i){return {innerHTML: "7"};}};\n')
        assert ExpressionEvaluator().evaluate(snippet) == HIDDEN_DIV_ANSWER


    def test_hidden_div_text(self):
        assert hidden_div_text(make_challenge_page(hidden_div="+((!+[]+[])+(+[]))")) == "+((!+[]+[])+(+[]))"
        assert hidden_div_text(make_challenge_page()) is None


    @pytest.mark.parametrize("page", [
        "<html><body>No scripts here</body></html>",
        "<html><script>var x = 1;</script></html>",
        "<html><script>setTimeout(function(){ a.value = (1).toFixed(2) }, 4000)</script></html>",
        '<html><script src="/challenge.js"></script></html>',
    ])
    def test_unrecognized(self, page):
        with pytest.raises(UnrecognizedScriptFormat):
            transform(page, "example.com")


    def test_first_matching_script_wins(self):
        page = (
            "<script>var analytics = 1;</script>"
            + make_challenge_page()
            + make_challenge_page(puzzle=HIDDEN_DIV_PUZZLE)
        )
        snippet = transform(page, "example.com")
        assert "innerHTML);" not in snippet


class TestSubstituteHost:
    def test_host_is_quoted(self):
        puzzle = substitute_host(PUZZLE, 'ex"ample')
        assert 't = "ex\\"ample";' in puzzle


    def test_derivation_replaced_once(self):
        puzzle = substitute_host(PUZZLE, "example.com")
        assert puzzle.count('t = "example.com";') == 1
