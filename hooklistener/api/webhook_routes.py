from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response

from hooklistener.api.deps import get_listener
from hooklistener.core.config import settings
from hooklistener.schemas.webhook import InboundRequest
from hooklistener.services.webhook_listener import WebhookListener

router = APIRouter()


def client_address(request: Request) -> Optional[str]:
    # Set by reverse proxies in front of the listener
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else None


@router.post(settings.WEBHOOK_PATH)
async def webhook_handler(
    request: Request,
    background_tasks: BackgroundTasks,
    listener: WebhookListener = Depends(get_listener),
):
    inbound = InboundRequest(
        method=request.method,
        headers=dict(request.headers),
        body=await request.body(),
        remote_address=client_address(request),
    )

    # Raises a WebhookError on rejection, turned into a response in main
    delivery = listener.accept(inbound)

    # Tasks run after the response has been sent
    background_tasks.add_task(listener.dispatch, delivery)
    return Response(status_code=200)
