"""
Security headers middleware.

Applies Content-Security-Policy, X-Content-Type-Options, X-Frame-Options,
Strict-Transport-Security and Referrer-Policy headers to every response.
The portal serves JSON only, so the policy is locked down completely.

Usage:
    from role_portal.middleware.security_headers import init_security_headers
    init_security_headers(app)
"""


def init_security_headers(app):
    """Register after_request handler that injects security headers."""

    @app.after_request
    def _add_security_headers(response):
        response.headers.setdefault(
            "Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'"
        )
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault(
            "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
        )
        response.headers.setdefault("Referrer-Policy", "no-referrer")

        # Signature links carry request ids; keep them out of shared caches
        if response.mimetype == "application/json":
            response.headers.setdefault("Cache-Control", "no-store")

        response.headers.pop("Server", None)
        return response
