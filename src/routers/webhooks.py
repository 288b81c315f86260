"""
Webhook router - JobAdder event deliveries.
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, Response

from src.config import JOBADDER_SIGNATURE_HEADER, JOBADDER_WEBHOOK_PATH
from src.dependencies import get_webhook_service
from src.services import JobAdderWebhookService

router = APIRouter(tags=["Webhooks"])

CORS_PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": f"Content-Type, Authorization, {JOBADDER_SIGNATURE_HEADER}",
    "Access-Control-Max-Age": "86400",
}


@router.post(JOBADDER_WEBHOOK_PATH)
async def jobadder_webhook(
    request: Request,
    service: JobAdderWebhookService = Depends(get_webhook_service),
):
    """
    Receive a JobAdder webhook.

    The signature is computed over the raw body, so the body is read as
    bytes and parsed by the service.
    """
    raw_body = await request.body()
    result = await service.handle(raw_body, request.headers.get(JOBADDER_SIGNATURE_HEADER))
    return PlainTextResponse(content=result.message, status_code=result.status_code)


@router.options(JOBADDER_WEBHOOK_PATH)
async def jobadder_webhook_preflight():
    """CORS preflight for the webhook endpoint."""
    return Response(status_code=204, headers=CORS_PREFLIGHT_HEADERS)
