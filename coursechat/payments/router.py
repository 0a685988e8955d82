"""
Simulated payment gateway for the course checkout flow.

No money moves: after a fixed processing delay every well-formed request
succeeds with a generated transaction id.
"""

import asyncio
import logging
import time
from typing import Any, Optional

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from coursechat.config import PAYMENT_PROCESSING_DELAY_SECONDS

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Payment"])


# ==================== PYDANTIC MODELS ====================

class PaymentRequest(BaseModel):
    # Any truthy JSON value passes, as the checkout client sends mixed types
    invoiceId: Optional[Any] = None
    amount: Optional[Any] = None
    service: Optional[Any] = None
    paymentMethodType: Optional[Any] = None  # card, upi, wallet, ...


# ==================== HELPER FUNCTIONS ====================

def generate_transaction_id() -> str:
    return f"TXN-{int(time.time() * 1000)}"


# ==================== API ENDPOINTS ====================

@router.post("/payment")
async def process_payment(data: Optional[PaymentRequest] = None):
    """
    Simulate processing a payment
    Public endpoint - no auth required
    """
    if data is None:
        data = PaymentRequest()

    logger.info("Payment request received: %s", data.dict())

    if not data.invoiceId or not data.amount or not data.paymentMethodType:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "Missing required payment information."
            }
        )

    logger.info("Processing payment of $%s for %s...", data.amount, data.service)

    # Mimic a round trip to a real gateway
    await asyncio.sleep(PAYMENT_PROCESSING_DELAY_SECONDS)

    transaction_id = generate_transaction_id()
    logger.info("Payment successful! Transaction ID: %s", transaction_id)

    return {
        "success": True,
        "transactionId": transaction_id,
        "message": f"Payment for invoice {data.invoiceId} processed successfully."
    }
