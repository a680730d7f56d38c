"""
API environments and endpoint URLs.
"""

from enum import StrEnum

DEFAULT_BASE_URL = "https://developers.ecocash.co.zw/api/ecocash_pay"


class Environment(StrEnum):
    """Target environment; the value is the endpoint path suffix."""

    SANDBOX = "sandbox"
    LIVE = "live"


class Endpoints:
    """
    Builds endpoint URLs for one environment.

    Examples:
        >>> Endpoints(Environment.SANDBOX).payment
        'https://developers.ecocash.co.zw/api/ecocash_pay/v2/payment/instant/c2b/sandbox'
    """

    def __init__(self, environment: Environment | str = Environment.SANDBOX, base_url: str = DEFAULT_BASE_URL):
        self.environment = Environment(environment)
        self.base_url = base_url.rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path}/{self.environment.value}"

    @property
    def payment(self) -> str:
        return self._url("v2/payment/instant/c2b")

    @property
    def refund(self) -> str:
        return self._url("v2/refund/instant/c2b")

    @property
    def lookup(self) -> str:
        return self._url("v1/transaction/c2b/status")
