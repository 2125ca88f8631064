# Global configuration
default_delay_ms = 4000
log_file_name = "uam-bypass.log"
log_dir_env = "UAM_LOG_DIR"


# Identifying headers sent on every request through the interceptor
default_user_agent = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/107.0.0.0 Safari/537.36 Edg/107.0.1418.42"
)

DEFAULT_HEADERS = {
    "User-Agent": default_user_agent,
    "Upgrade-Insecure-Requests": "1",
    "Accept-Language": "en-US,en;q=0.5",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
}

form_content_type = "application/x-www-form-urlencoded"


# Kept short on purpose, a longer list gets answered with a captcha
restricted_ciphers = [
    "ECDHE-ECDSA-AES128-GCM-SHA256",
    "ECDHE-RSA-AES128-GCM-SHA256",
    "DHE-RSA-AES128-GCM-SHA256",
]


# Response markers
CHALLENGE_MARKERS = {
    "server_token": "cloudflare",
    "iuam_body": "jschl_answer",
    "captcha_body": "/cdn-cgi/l/chk_captcha",
    "iuam_status_range": (429, 503),
    "captcha_status": 403,
}


# Challenge page patterns
PAGE_PATTERNS = {
    "r": r'name="r" value="([^"]*)"',
    "jschl_vc": r'name="jschl_vc" value="([^"]*)"|value="([^"]*)"[^>]*?name="jschl_vc"',
    "pass": r'name="pass" value="([^"]*)"',
    "action": r'action="([^"]+)"',
    "script": r"<script(?![^>]*\bsrc=)[^>]*>([\s\S]+?)</script>",
    "puzzle": r"setTimeout\(function\(\)\{([\s\S]+?toFixed\([0-9][0-9]\))",
    "host_derivation": r"t = d[\s\S]+?-1\);",
    "dom_lookup": r"[af] = document.+?;",
    "hidden_div": r'id="cf-dn.+?>(.+?)</div>',
}


# Evaluator budgets
max_call_depth = 64
max_eval_steps = 200000
max_string_length = 1000000
max_array_length = 100000
