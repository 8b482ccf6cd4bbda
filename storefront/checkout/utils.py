from urllib.parse import urlencode, quote
from storefront.checkout.constants import (
    CURRENCY, MERCHANT_NAME, MERCHANT_UPI_ID, PAYMENT_NOTE, QR_SERVICE_URL, QR_SIZE,
)


def format_amount(amount: float) -> str:
    return f"{amount:.2f}"


def build_upi_uri(amount: float, payee: str = MERCHANT_UPI_ID, payee_name: str = MERCHANT_NAME,
                  note: str = PAYMENT_NOTE, currency: str = CURRENCY) -> str:
    """UPI deep link understood by payment apps."""
    params = {
        "pa": payee,
        "pn": payee_name,
        "am": format_amount(amount),
        "cu": currency,
        "tn": note,
    }
    return "upi://pay?" + urlencode(params, quote_via=quote, safe="@")


def build_qr_image_url(data: str, size: str = QR_SIZE) -> str:
    return f"{QR_SERVICE_URL}?" + urlencode({"size": size, "data": data}, quote_via=quote)
