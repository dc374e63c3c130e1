# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Egress policy for api_call nodes.

Only http(s) URLs are allowed. When an allow-list is configured the host
must match an entry exactly, or be a subdomain of a ``*.domain`` entry.
An empty allow-list permits any host.
"""

from typing import Iterable, Optional

import httpx

from flashfusion.workflow.exceptions import EgressDeniedError

ALLOWED_SCHEMES = ("http", "https")


class EgressPolicy:
    def __init__(self, allowed_hosts: Optional[Iterable[str]] = None):
        self.allowed_hosts = [h.strip().lower() for h in (allowed_hosts or []) if h and h.strip()]

    def is_host_allowed(self, host: str) -> bool:
        if not self.allowed_hosts:
            return True

        host = host.lower()
        for entry in self.allowed_hosts:
            if entry.startswith("*."):
                if host.endswith(entry[1:]):
                    return True
            elif host == entry:
                return True
        return False

    def check(self, url: str) -> httpx.URL:
        """
        Validate an outbound URL.

        Returns:
            Parsed URL

        Raises:
            EgressDeniedError: If the URL is malformed or not permitted
        """
        try:
            parsed = httpx.URL(url)
        except (httpx.InvalidURL, TypeError) as e:
            raise EgressDeniedError(str(url), f"invalid URL ({e})")

        if parsed.scheme not in ALLOWED_SCHEMES:
            raise EgressDeniedError(str(url), f"scheme '{parsed.scheme or ''}' not allowed")
        if not parsed.host:
            raise EgressDeniedError(str(url), "missing host")
        if not self.is_host_allowed(parsed.host):
            raise EgressDeniedError(str(url), f"host '{parsed.host}' not in allow-list")

        return parsed
