"""AI analysis of claim photos and purchase receipts."""

from app.services.analysis.claim_image_analyzer import ClaimImageAnalyzer
from app.services.analysis.device_analyzer import DeviceAnalyzer
from app.services.analysis.receipt_analyzer import ReceiptAnalyzer

__all__ = [
    "ClaimImageAnalyzer",
    "DeviceAnalyzer",
    "ReceiptAnalyzer",
]
