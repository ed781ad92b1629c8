"""PIX deposit charges and BR Code rendering."""

from invest_ledger.pix.payload import build_pix_payload, crc16_ccitt, qr_data_uri
from invest_ledger.pix.workflow import ConfirmationResult, PixDepositWorkflow

__all__ = [
    "ConfirmationResult",
    "PixDepositWorkflow",
    "build_pix_payload",
    "crc16_ccitt",
    "qr_data_uri",
]
