from typing import Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import RedirectResponse

from shortlink_app.config import settings
from shortlink_app.dependencies import get_queue, get_url_service
from shortlink_app.queue.models import ClickMessage
from shortlink_app.queue.strategies import QueueStrategy
from shortlink_app.services.url_service import URLService
from shortlink_app.utils.platform import detect_platform

router = APIRouter(tags=["redirect"])


def get_client_ip(request: Request) -> Optional[str]:
    """
    Client IP address, honouring proxy headers.

    X-Forwarded-For may hold "client, proxy1, proxy2"; the first entry is the client.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    return request.client.host if request.client else None


@router.get("/{code}", response_class=RedirectResponse, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
async def redirect_to_target(
    code: str,
    request: Request,
    url_service: URLService = Depends(get_url_service),
    queue: QueueStrategy = Depends(get_queue)
):
    """
    Redirect to the platform-specific target.

    Flow:
    1. Resolve the live URL (404 when unknown or deleted)
    2. Pick the override for the caller's platform, or the original URL
    3. Publish a click message (fire-and-forget)
    4. Redirect immediately; the click worker records the event and
       increments the counter later
    """
    url = await run_in_threadpool(url_service.resolve, code)

    user_agent = request.headers.get("user-agent")
    platform_info = detect_platform(user_agent)
    target = URLService.resolve_redirect_target(url, platform_info.platform)

    message = ClickMessage(
        code=code,
        ip_address=get_client_ip(request),
        user_agent=user_agent,
        referrer=request.headers.get("referer"),
        platform=platform_info.platform,
        os=platform_info.os,
        browser=platform_info.browser,
    )

    # Never raises; a dropped click is logged by the queue
    await queue.publish(settings.queue_name, message)

    return RedirectResponse(url=target, status_code=status.HTTP_307_TEMPORARY_REDIRECT)
