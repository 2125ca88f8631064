import pytest
from modules.classifier import classify, is_candidate, is_proxy_server
from modules.models import ResponseClassification
from tests.conftest import CAPTCHA_PAGE, make_challenge_page


IUAM = ResponseClassification.IUAM_CHALLENGE
CAPTCHA = ResponseClassification.UNSUPPORTED_CHALLENGE
PASS = ResponseClassification.PASSTHROUGH


class TestProxyServer:
    @pytest.mark.parametrize("server", ["cloudflare", "cloudflare-nginx", "Cloudflare", "CLOUDFLARE"])
    def test_recognized(self, server):
        assert is_proxy_server(server)


    @pytest.mark.parametrize("server", [None, "", "nginx", "Apache", "not-cloudflare"])
    def test_rejected(self, server):
        assert not is_proxy_server(server)


class TestClassify:
    @pytest.mark.parametrize("status", [429, 500, 503])
    def test_iuam_in_status_range(self, status):
        assert classify(status, "cloudflare", make_challenge_page()) is IUAM


    @pytest.mark.parametrize("status", [200, 302, 404, 428, 504])
    def test_iuam_outside_status_range(self, status):
        assert classify(status, "cloudflare", make_challenge_page()) is PASS


    def test_captcha(self):
        assert classify(403, "cloudflare", CAPTCHA_PAGE) is CAPTCHA


    def test_plain_forbidden(self):
        assert classify(403, "cloudflare", "<html>Access denied</html>") is PASS


    def test_captcha_marker_on_503_is_not_a_captcha(self):
        assert classify(503, "cloudflare", CAPTCHA_PAGE) is PASS


    def test_iuam_marker_on_403_is_not_iuam(self):
        assert classify(403, "cloudflare", make_challenge_page()) is PASS


    def test_other_server(self):
        assert classify(503, "nginx", make_challenge_page()) is PASS
        assert classify(403, "nginx", CAPTCHA_PAGE) is PASS


    def test_missing_server_header(self):
        assert classify(503, None, make_challenge_page()) is PASS


    def test_503_without_marker(self):
        assert classify(503, "cloudflare", "<html>Service Unavailable</html>") is PASS


class TestCandidate:
    def test_candidates(self):
        assert is_candidate(503, "cloudflare")
        assert is_candidate(429, "cloudflare-nginx")
        assert is_candidate(403, "cloudflare")


    def test_not_candidates(self):
        assert not is_candidate(200, "cloudflare")
        assert not is_candidate(404, "cloudflare")
        assert not is_candidate(503, "nginx")
        assert not is_candidate(503, None)
