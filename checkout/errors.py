"""
Checkout Errors

Buyer-facing message constants and the exception taxonomy used across the
engine. Messages are shown verbatim on the checkout page.
"""

from enum import Enum

from checkout.payments.constants import TransactionStatus

# Coupon errors
ERROR_COUPON_EMPTY = "Digite um código de cupom."
ERROR_COUPON_NOT_FOUND = "Cupom inválido."
ERROR_COUPON_INACTIVE = "Cupom inativo."
ERROR_COUPON_EXPIRED = "Cupom expirado."
ERROR_COUPON_BELOW_MINIMUM = "Valor mínimo de {minimum} para este cupom."
ERROR_COUPON_ALREADY_USED = 'Cupom "{code}" já utilizado por este e-mail.'

# Payment initiation errors
ERROR_GATEWAY_REJECTED = "O pagamento foi recusado pelo gateway. Tente novamente."
ERROR_GATEWAY_NETWORK = "Falha de conexão com o gateway de pagamento. Tente novamente."
ERROR_GATEWAY_INVALID_RESPONSE = "Resposta inválida do gateway ao gerar PIX."
ERROR_INITIATION_IN_PROGRESS = "Pagamento já está sendo processado."
ERROR_INVALID_BUYER = "Preencha nome, e-mail e WhatsApp para continuar."
ERROR_INVALID_AMOUNT = "Valor do PIX inválido."

# Confirmation errors
ERROR_POLLING_TIMEOUT = (
    "Não foi possível confirmar o pagamento automaticamente. "
    "Se você já pagou, clique em verificar status."
)
ERROR_TRANSACTION_CANCELLED = "Pagamento cancelado. Gere um novo PIX para tentar novamente."
ERROR_TRANSACTION_EXPIRED = "PIX expirado. Gere um novo PIX para tentar novamente."
ERROR_TRANSACTION_FAILED = "Pagamento falhou. Gere um novo PIX para tentar novamente."

# Offer flow
ERROR_OFFER_NOT_PENDING = "Nenhuma oferta aguardando decisão."


class CouponErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    BELOW_MINIMUM = "below_minimum"
    ALREADY_USED = "already_used"


class InitiationFailureKind(str, Enum):
    GATEWAY_REJECTED = "gateway_rejected"
    NETWORK_ERROR = "network_error"
    INVALID_RESPONSE = "invalid_response"


INITIATION_MESSAGES: dict[InitiationFailureKind, str] = {
    InitiationFailureKind.GATEWAY_REJECTED: ERROR_GATEWAY_REJECTED,
    InitiationFailureKind.NETWORK_ERROR: ERROR_GATEWAY_NETWORK,
    InitiationFailureKind.INVALID_RESPONSE: ERROR_GATEWAY_INVALID_RESPONSE,
}

TRANSACTION_FAILURE_MESSAGES: dict[TransactionStatus, str] = {
    TransactionStatus.CANCELLED: ERROR_TRANSACTION_CANCELLED,
    TransactionStatus.EXPIRED: ERROR_TRANSACTION_EXPIRED,
    TransactionStatus.FAILED: ERROR_TRANSACTION_FAILED,
}


class CheckoutError(Exception):
    """Base class for every error the buyer can see."""

    def __init__(self, user_message: str, detail: str | None = None):
        super().__init__(detail or user_message)
        self.user_message = user_message
        self.detail = detail


class CouponError(CheckoutError):
    """Coupon could not be applied. Checkout continues without it."""

    def __init__(self, kind: CouponErrorKind, user_message: str):
        super().__init__(user_message)
        self.kind = kind


class PaymentInitiationFailed(CheckoutError):
    """The gateway did not return a usable payment instruction."""

    def __init__(self, kind: InitiationFailureKind, detail: str | None = None, user_message: str | None = None):
        super().__init__(user_message or INITIATION_MESSAGES[kind], detail)
        self.kind = kind


class InitiationInProgress(CheckoutError):
    def __init__(self, session_id: str):
        super().__init__(ERROR_INITIATION_IN_PROGRESS, f"initiate already outstanding for session {session_id}")
        self.session_id = session_id


class PollingTimeout(CheckoutError):
    """Confirmation loop ran out of budget; the payment may still clear."""

    def __init__(self, transaction_id: str, last_status: TransactionStatus):
        super().__init__(ERROR_POLLING_TIMEOUT, f"no terminal status for {transaction_id}")
        self.transaction_id = transaction_id
        self.last_status = last_status


class TransactionFailed(CheckoutError):
    """Transaction reached Cancelled, Expired or Failed."""

    def __init__(self, transaction_id: str, status: TransactionStatus):
        if status not in TRANSACTION_FAILURE_MESSAGES:
            raise ValueError(f"{status} is not a failure status")
        super().__init__(TRANSACTION_FAILURE_MESSAGES[status], f"transaction {transaction_id} is {status.value}")
        self.transaction_id = transaction_id
        self.status = status


class OfferDecisionError(CheckoutError):
    def __init__(self, detail: str):
        super().__init__(ERROR_OFFER_NOT_PENDING, detail)


class GatewayError(Exception):
    """Raised by the gateway client; wrapped into PaymentInitiationFailed by the controller."""

    def __init__(self, kind: InitiationFailureKind, message: str, status_code: int | None = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
