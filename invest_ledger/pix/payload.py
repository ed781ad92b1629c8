"""BR Code (EMV QR) payload rendering for static PIX charges.

The payload is a sequence of ID/length/value fields; the last field (63)
holds a CRC16/CCITT-FALSE checksum computed over everything before it,
including the ``6304`` field header.
"""

import re
import unicodedata
from decimal import Decimal

import segno

from invest_ledger.exceptions import PixPayloadError

PIX_GUI = "br.gov.bcb.pix"
CURRENCY_BRL = "986"
COUNTRY_CODE = "BR"
MERCHANT_CATEGORY_CODE = "0000"

_TXID_PATTERN = re.compile(r"^[A-Za-z0-9]{1,25}$")


def crc16_ccitt(data: str) -> str:
    """CRC16/CCITT-FALSE (poly 0x1021, init 0xFFFF) as 4 upper hex digits."""
    crc = 0xFFFF
    for byte in data.encode("utf-8"):
        crc ^= byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ 0x1021) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
    return f"{crc:04X}"


def emv_field(field_id: str, value: str) -> str:
    """Encode one ID/length/value field."""
    if len(value) > 99:
        raise PixPayloadError(f"Field {field_id} exceeds 99 characters")
    return f"{field_id}{len(value):02d}{value}"


def _ascii(text: str) -> str:
    # Bank apps reject accented merchant names
    normalized = unicodedata.normalize("NFKD", text)
    return normalized.encode("ascii", "ignore").decode("ascii")


def build_pix_payload(
    pix_key: str,
    merchant_name: str,
    merchant_city: str,
    amount: Decimal,
    txid: str,
) -> str:
    """Render a static BR Code for a fixed-amount deposit.

    Parameters
    ----------
    pix_key : str
        Merchant PIX key (EVP, e-mail, CPF/CNPJ or phone).
    merchant_name : str
        Receiver name, up to 25 characters.
    merchant_city : str
        Receiver city, up to 15 characters.
    amount : Decimal
        Charge amount, rendered with two decimals.
    txid : str
        Alphanumeric reference (1-25 characters) echoed by the gateway.

    Returns
    -------
    str
        The BR Code string, used both as QR content and "copia e cola".
    """
    if not _TXID_PATTERN.match(txid):
        raise PixPayloadError(f"Invalid txid: {txid!r}")
    if amount <= 0:
        raise PixPayloadError("Amount must be positive")

    merchant_account = emv_field("00", PIX_GUI) + emv_field("01", pix_key)
    additional_data = emv_field("05", txid)

    payload = "".join(
        [
            emv_field("00", "01"),  # Payload format indicator
            emv_field("01", "12"),  # Point of initiation (static, reusable)
            emv_field("26", merchant_account),
            emv_field("52", MERCHANT_CATEGORY_CODE),
            emv_field("53", CURRENCY_BRL),
            emv_field("54", f"{amount:.2f}"),
            emv_field("58", COUNTRY_CODE),
            emv_field("59", _ascii(merchant_name)[:25]),
            emv_field("60", _ascii(merchant_city)[:15]),
            emv_field("62", additional_data),
            "6304",
        ]
    )
    return payload + crc16_ccitt(payload)


def parse_fields(payload: str) -> dict[str, str]:
    """Split a BR Code into its top-level fields."""
    fields: dict[str, str] = {}
    pos = 0
    while pos < len(payload):
        if pos + 4 > len(payload):
            raise PixPayloadError("Truncated field header")
        field_id = payload[pos : pos + 2]
        length_text = payload[pos + 2 : pos + 4]
        if not length_text.isdigit():
            raise PixPayloadError(f"Invalid length for field {field_id}")
        length = int(length_text)
        fields[field_id] = payload[pos + 4 : pos + 4 + length]
        pos += 4 + length
    return fields


def verify_crc(payload: str) -> bool:
    """Return True when the trailing CRC matches the payload."""
    if len(payload) < 8 or payload[-8:-4] != "6304":
        return False
    return crc16_ccitt(payload[:-4]) == payload[-4:].upper()


def qr_data_uri(payload: str, scale: int = 6) -> str:
    """Render a BR Code as a PNG QR image in a ``data:`` URI."""
    try:
        qr = segno.make(payload, error="m", micro=False)
    except segno.DataOverflowError as exc:
        raise PixPayloadError(f"Payload too long for a QR code: {exc}") from exc
    return qr.png_data_uri(scale=scale, border=4)
