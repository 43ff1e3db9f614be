"""Tracking parameters and buyer contact helpers."""
import re
from typing import Mapping, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit

TRACKING_KEYS = (
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_term",
    "utm_content",
    "src",
    "sck",
    "ref",
    "gclid",
)

_NON_DIGITS = re.compile(r"\D")


def extract_tracking_parameters(query: str | Mapping[str, str] | None) -> dict[str, str]:
    """
    Pick the known tracking keys out of a landing URL or query string.

    Accepts a full URL, a bare query string (with or without "?") or an
    already parsed mapping. Unknown keys are dropped; the first value wins
    for repeated keys.

    Example:
        extract_tracking_parameters("https://x/p/abc?utm_source=ig&foo=1")
        -> {"utm_source": "ig"}
    """
    if not query:
        return {}

    if isinstance(query, Mapping):
        pairs = list(query.items())
    else:
        text = query
        if "://" in text:
            text = urlsplit(text).query
        pairs = parse_qsl(text.lstrip("?"), keep_blank_values=True)

    params: dict[str, str] = {}
    for key, value in pairs:
        if key in TRACKING_KEYS and key not in params:
            params[key] = str(value)
    return params


def format_phone(country_code: str, number: str) -> str:
    """Country code followed by the number's digits ("+55", "(11) 9 8765-4321" -> "+5511987654321")."""
    return f"{(country_code or '').strip()}{_NON_DIGITS.sub('', number or '')}"


def build_thank_you_url(
    base_url: str,
    transaction_id: str,
    product_id: str,
    session_id: Optional[str] = None,
) -> str:
    """Post-purchase page URL the buyer is sent to once the payment clears."""
    params = {"origProdId": product_id}
    if session_id:
        params["csid"] = session_id
    return f"{base_url.rstrip('/')}/thank-you/{transaction_id}?{urlencode(params)}"
