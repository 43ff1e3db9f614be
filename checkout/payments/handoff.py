"""Post-purchase handoff: send the buyer to the thank-you page."""
import inspect
from typing import Any, Callable, Optional

from checkout.config import get_settings
from checkout.logging import get_logger, sanitize_id_for_logging
from checkout.payments.transaction import Transaction
from checkout.utils.tracking import build_thank_you_url

logger = get_logger(__name__)


class PostPurchaseHandoff:
    """
    Builds the thank-you URL for a paid transaction and passes it to
    `navigate` (sync or async callable supplied by the host page).
    """

    def __init__(self, navigate: Callable[[str], Any], base_url: Optional[str] = None):
        self.navigate = navigate
        self.base_url = get_settings().thank_you_base_url if base_url is None else base_url

    def url_for(self, transaction: Transaction) -> str:
        return build_thank_you_url(
            self.base_url,
            transaction.transaction_id,
            transaction.charge.product_id,
            transaction.session_id,
        )

    async def __call__(self, transaction: Transaction) -> str:
        if not transaction.is_paid:
            raise ValueError(f"transaction {transaction.transaction_id} is not paid")
        url = self.url_for(transaction)
        logger.info("Handoff for transaction %s", sanitize_id_for_logging(transaction.transaction_id))
        result = self.navigate(url)
        if inspect.isawaitable(result):
            await result
        return url
