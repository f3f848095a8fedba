"""PayWay API client for card installment plans"""

import hashlib
import hmac
import secrets
import time
import httpx
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from cuotificador.config import settings
from cuotificador.domain.models import ExternalInstallmentPlan
from cuotificador.domain.exceptions import ExternalProviderError
from cuotificador.infrastructure.observability.metrics import (
    provider_latency_histogram,
    provider_failures_counter,
)


@dataclass
class ProviderCard:
    """Payment method published by the provider"""

    id: str
    name: str
    type: str
    card_type: Optional[str] = None
    installment_plans: List[ExternalInstallmentPlan] = field(default_factory=list)


class PayWayClient:
    """
    Client for one PayWay account.

    The bearer token is owned by the instance and reused until
    `expiry_margin_seconds` before it expires, so a client should be kept
    for the lifetime of the configuration it was built from.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        secret_key: str | None = None,
        timeout: float | None = None,
        expiry_margin_seconds: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_url = (base_url or settings.payway_base_url).rstrip("/")
        self.api_key = api_key or settings.payway_api_key
        self.secret_key = secret_key or settings.payway_secret_key
        self.timeout = timeout or settings.http_timeout_seconds
        self.expiry_margin_seconds = (
            settings.token_expiry_margin_seconds if expiry_margin_seconds is None else expiry_margin_seconds
        )
        self.transport = transport
        self.clock = clock
        self._token: Optional[str] = None
        self._expires_at: float = 0.0

    def sign(self, timestamp: int, nonce: str) -> str:
        """HMAC-SHA256 over api_key + timestamp + nonce, hex encoded"""
        message = f"{self.api_key}{timestamp}{nonce}".encode()
        return hmac.new(self.secret_key.encode(), message, hashlib.sha256).hexdigest()

    def invalidate_token(self) -> None:
        self._token = None
        self._expires_at = 0.0

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def _request(self, client: httpx.AsyncClient, operation: str, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """
        Perform one call and decode its JSON body.

        Raises:
            ExternalProviderError: On timeout, transport failure, HTTP errors or non-JSON body
        """
        try:
            with provider_latency_histogram.labels(operation=operation).time():
                response = await client.request(method, f"{self.base_url}{path}", **kwargs)
                response.raise_for_status()
                return response.json()

        except httpx.TimeoutException as e:
            provider_failures_counter.labels(operation=operation).inc()
            raise ExternalProviderError(f"PayWay timeout after {self.timeout}s", code="TIMEOUT") from e
        except httpx.HTTPStatusError as e:
            provider_failures_counter.labels(operation=operation).inc()
            if e.response.status_code == 401:
                self.invalidate_token()
            code, message = self._error_details(e.response)
            raise ExternalProviderError(message, code=code) from e
        except httpx.RequestError as e:
            provider_failures_counter.labels(operation=operation).inc()
            raise ExternalProviderError(f"PayWay unreachable: {e}", code="UNREACHABLE") from e
        except ValueError as e:
            provider_failures_counter.labels(operation=operation).inc()
            raise ExternalProviderError(f"Invalid JSON from PayWay: {e}", code="INVALID_RESPONSE") from e

    @staticmethod
    def _error_details(response: httpx.Response) -> tuple[str, str]:
        """Provider error code/message when the body carries them"""
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        code = str(body.get("code") or f"HTTP_{response.status_code}")
        message = str(body.get("message") or f"PayWay API error: {response.status_code}")
        return code, message

    async def get_token(self, client: httpx.AsyncClient) -> str:
        """Cached bearer token, fetched through the signed handshake when stale"""
        now = self.clock()
        if self._token and self._expires_at > now:
            return self._token

        timestamp = int(time.time())
        nonce = secrets.token_hex(8)
        data = await self._request(
            client,
            "auth",
            "POST",
            "/auth/token",
            json={},
            headers={
                "X-Api-Key": self.api_key,
                "X-Signature": self.sign(timestamp, nonce),
                "X-Timestamp": str(timestamp),
                "X-Nonce": nonce,
            },
        )

        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise ExternalProviderError("PayWay returned no authentication token", code="AUTH_FAILED")

        try:
            expires_in = float(data.get("expiresIn") or settings.default_token_ttl_seconds)
        except (TypeError, ValueError) as e:
            raise ExternalProviderError(
                f"PayWay returned a non-numeric token lifetime: {data.get('expiresIn')!r}",
                code="INVALID_RESPONSE",
            ) from e
        self._token = token
        self._expires_at = now + expires_in - self.expiry_margin_seconds
        return token

    async def get_available_cards(self) -> List[ProviderCard]:
        """
        Fetch payment methods with their installment plans.

        Raises:
            ExternalProviderError: On any failure, including malformed payloads
        """
        async with self._client() as client:
            token = await self.get_token(client)
            data = await self._request(
                client,
                "payment_methods",
                "GET",
                "/payment-methods",
                headers={"Authorization": f"Bearer {token}"},
            )

        try:
            return [
                ProviderCard(
                    id=str(card["id"]),
                    name=card["name"],
                    type=card["type"],
                    card_type=card.get("cardType"),
                    installment_plans=[
                        ExternalInstallmentPlan(
                            card_code=str(card["id"]),
                            installments=int(plan["installments"]),
                            interest_rate=float(plan["interestRate"]),
                            fixed_surcharge=float(plan.get("fixedSurcharge", 0) or 0),
                        )
                        for plan in card.get("installmentPlans") or []
                    ],
                )
                for card in data["paymentMethods"]
            ]
        except (KeyError, ValueError, TypeError) as e:
            raise ExternalProviderError(f"Invalid payment methods from PayWay: {e}", code="INVALID_RESPONSE") from e

    async def fetch_installment_plans(self) -> List[ExternalInstallmentPlan]:
        cards = await self.get_available_cards()
        return [plan for card in cards for plan in card.installment_plans]

    async def find_installment_plan(self, card_code: str, installments: int) -> Optional[ExternalInstallmentPlan]:
        """Live plan for one card and installment count, None when not offered"""
        needle = card_code.lower()
        for card in await self.get_available_cards():
            if card.id.lower() != needle:
                continue
            return next((p for p in card.installment_plans if p.installments == installments), None)
        return None


class ProviderRegistry:
    """
    Keeps one PayWayClient per bank configuration so tokens are reused
    across requests.
    """

    def __init__(self, transport: httpx.AsyncBaseTransport | None = None):
        self.transport = transport
        self._clients: Dict[tuple, PayWayClient] = {}

    def client_for(self, bank) -> PayWayClient:
        key = (
            bank.api_url or settings.payway_base_url,
            bank.api_key or settings.payway_api_key,
            bank.api_secret or settings.payway_secret_key,
        )
        if key not in self._clients:
            self._clients[key] = PayWayClient(
                base_url=key[0],
                api_key=key[1],
                secret_key=key[2],
                transport=self.transport,
            )
        return self._clients[key]
