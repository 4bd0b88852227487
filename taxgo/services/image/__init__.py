"""Receipt image handling."""

from taxgo.services.image.receipt import (
    ImageValidationError,
    ReceiptImage,
    prepare_receipt_image,
)

__all__ = ["ImageValidationError", "ReceiptImage", "prepare_receipt_image"]
