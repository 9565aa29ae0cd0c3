from playcode.api.security_headers import CSP_POLICIES, HSTS, security_headers


def test_development_headers():
    headers = security_headers(development=True, https=False)
    assert headers["X-Frame-Options"] == "DENY"
    assert headers["X-Content-Type-Options"] == "nosniff"
    assert "ws://localhost:*" in headers["Content-Security-Policy"]
    assert "Strict-Transport-Security" not in headers
    assert "camera=()" in headers["Permissions-Policy"]


def test_production_headers_over_https():
    headers = security_headers(development=False, https=True)
    assert headers["Content-Security-Policy"] == CSP_POLICIES["production"]
    assert "upgrade-insecure-requests" in headers["Content-Security-Policy"]
    assert headers["Strict-Transport-Security"] == HSTS


def test_nonce_changes_per_call():
    first = security_headers(development=True, https=False)["X-CSP-Nonce"]
    second = security_headers(development=True, https=False)["X-CSP-Nonce"]
    assert first != second
