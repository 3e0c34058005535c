"""
Outbound HTTP sessions for the remote card services
"""

from http.cookiejar import DefaultCookiePolicy

import requests


def create_session() -> requests.Session:
    """
    Pooled session that never stores cookies

    Each issuance sends only the cookies passed with its own request, so
    nothing a remote service sets leaks into later or concurrent calls.
    """
    session = requests.Session()
    session.cookies.set_policy(DefaultCookiePolicy(allowed_domains=[]))
    return session
