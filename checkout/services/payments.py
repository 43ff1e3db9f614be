"""Payment Service - PushInPay PIX Integration

Creates PIX charges (QR code + copy-and-paste payload) and looks up their
status. Every failure surfaces as GatewayError with a failure kind the
payment controller can map onto a buyer message.
"""

from typing import Any, Optional

import httpx

from checkout.errors import GatewayError, InitiationFailureKind
from checkout.logging import get_logger, mask_email_for_logging, sanitize_id_for_logging
from checkout.payments.config import DEFAULT_PUSHINPAY_API_URL, get_gateway_config
from checkout.services.models import ChargeRequest, PaymentInstruction

logger = get_logger(__name__)

QR_IMAGE_PREFIX = "data:image/png;base64,"


def _unwrap(data: Any) -> dict[str, Any] | None:
    """PushInPay answers either `{"data": {...}}` or the object itself."""
    if not isinstance(data, dict):
        return None
    nested = data.get("data")
    if isinstance(nested, dict) and nested.get("id"):
        return nested
    if data.get("id"):
        return data
    return None


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(body, dict):
        if body.get("message"):
            return str(body["message"])
        if body.get("errors"):
            return str(body["errors"])
    return str(body)[:200]


class PushInPayGateway:
    """Payment service for the PushInPay PIX gateway"""

    def __init__(
        self,
        token: Optional[str] = None,
        webhook_url: Optional[str] = None,
        api_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        config = get_gateway_config()
        self.token = token if token is not None else (config.get("token") or "")
        self.webhook_url = webhook_url if webhook_url is not None else (config.get("webhook_url") or "")
        self.api_url = (api_url or config.get("api_url") or DEFAULT_PUSHINPAY_API_URL).rstrip("/")

        # HTTP client (lazy init unless injected)
        self._http_client: httpx.AsyncClient | None = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Lazy creation of shared httpx client with timeouts."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(10.0, connect=5.0, read=10.0, write=10.0),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            )
        return self._http_client

    def _headers(self) -> dict[str, str]:
        if not self.token:
            logger.error("PushInPay token (PUSHINPAY_TOKEN) not configured")
            raise GatewayError(
                InitiationFailureKind.GATEWAY_REJECTED,
                "PushInPay não configurado. Configure: PUSHINPAY_TOKEN",
            )
        return {
            "Authorization": f"Bearer {self.token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """Send a request and return the decoded JSON body."""
        headers = self._headers()
        client = await self._get_http_client()
        try:
            response = await client.request(method, f"{self.api_url}{path}", headers=headers, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            detail = _error_detail(e.response)
            logger.error("PushInPay API error %s on %s: %s", e.response.status_code, path, detail)
            raise GatewayError(
                InitiationFailureKind.GATEWAY_REJECTED,
                f"PushInPay API error: {detail}",
                status_code=e.response.status_code,
            ) from e
        except httpx.RequestError as e:
            logger.warning("PushInPay network error on %s: %s", path, e)
            raise GatewayError(
                InitiationFailureKind.NETWORK_ERROR,
                f"Failed to connect to PushInPay API: {e!s}",
            ) from e

        try:
            return response.json()
        except ValueError as e:
            logger.error("PushInPay returned non-JSON body on %s", path)
            raise GatewayError(
                InitiationFailureKind.INVALID_RESPONSE,
                "PushInPay response is not JSON",
                status_code=response.status_code,
            ) from e

    # ==================== MAIN API ====================

    async def create_instruction(self, charge: ChargeRequest) -> PaymentInstruction:
        """
        Create a PIX charge and return its payment instruction.

        PushInPay API:
        - Endpoint: POST /pix/cashIn
        - Body: value (centavos), webhook_url
        - Response: id, qr_code, qr_code_base64, status, value (optionally under "data")

        Args:
            charge: Frozen charge request built by the payment controller

        Returns:
            PaymentInstruction with lower-cased transaction id and a bare base64 QR image

        Raises:
            GatewayError: rejected, unreachable or unparseable
        """
        payload: dict[str, Any] = {"value": charge.amount}
        if self.webhook_url:
            payload["webhook_url"] = self.webhook_url

        logger.info(
            "PushInPay PIX creation for session %s: amount=%s buyer=%s",
            sanitize_id_for_logging(charge.session_id),
            charge.amount,
            mask_email_for_logging(charge.buyer.email),
        )

        data = _unwrap(await self._request("POST", "/pix/cashIn", json=payload))
        if data is None or not data.get("qr_code") or not data.get("qr_code_base64"):
            logger.error("PushInPay: PIX data missing from response")
            raise GatewayError(InitiationFailureKind.INVALID_RESPONSE, "PIX data missing from PushInPay response")

        qr_image = str(data["qr_code_base64"])
        if qr_image.startswith(QR_IMAGE_PREFIX):
            qr_image = qr_image[len(QR_IMAGE_PREFIX):]

        try:
            value = int(data.get("value", charge.amount))
        except (TypeError, ValueError):
            value = charge.amount

        instruction = PaymentInstruction(
            transaction_id=str(data["id"]).lower(),
            qr_code=str(data["qr_code"]),
            qr_code_base64=qr_image,
            status=str(data.get("status") or "created"),
            value=value,
        )
        logger.info("PushInPay PIX created: transaction=%s", sanitize_id_for_logging(instruction.transaction_id))
        return instruction

    async def get_transaction_status(self, transaction_id: str) -> str:
        """Get the raw gateway status string for a transaction."""
        data = _unwrap(await self._request("GET", f"/transactions/{transaction_id}"))
        if data is None or not data.get("status"):
            raise GatewayError(InitiationFailureKind.INVALID_RESPONSE, "status missing from PushInPay response")
        return str(data["status"])

    async def aclose(self) -> None:
        """Close http client if created."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None


_gateway: Optional[PushInPayGateway] = None


def get_gateway() -> PushInPayGateway:
    """Get gateway singleton configured from the environment."""
    global _gateway
    if _gateway is None:
        _gateway = PushInPayGateway()
    return _gateway
