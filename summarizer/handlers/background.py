import hmac
import json
import logging
import threading

from django.conf import settings
from django.http import JsonResponse

from ..services.relay_service import RELAY_TOKEN_HEADER
from ..services.slack_service import SlackService
from ..utils.relay_types import JobRequest
from .slack_commands import build_summary_job

logger = logging.getLogger(__name__)


def _token_ok(request):
    expected = settings.RELAY_SHARED_SECRET
    if not expected:
        return True
    supplied = request.headers.get(RELAY_TOKEN_HEADER, '')
    return hmac.compare_digest(supplied.encode(), expected.encode())


def background_handler(request):
    """Worker side of the relay: accept one job and run it off the request path.

    Malformed payloads are rejected before anything is delivered, so the
    dispatcher can still report the failure through the placeholder.
    """
    request_id = getattr(request, 'debug_id', 'unknown')

    if not _token_ok(request):
        logger.warning(f"[{request_id}] Relay call with a bad or missing token")
        return JsonResponse({'ok': False, 'error': 'forbidden'}, status=403)

    try:
        payload = json.loads(request.body or b'{}')
        job = JobRequest.from_payload(payload)
    except ValueError as e:
        logger.warning(f"[{request_id}] Rejecting relay payload: {str(e)}")
        return JsonResponse({'ok': False, 'error': str(e)}, status=400)

    job_runner = build_summary_job(SlackService())
    background_thread = threading.Thread(target=job_runner.run, args=(job,), name=f"worker-{job.request_id}")
    background_thread.daemon = True
    background_thread.start()

    logger.info(f"[{request_id}] 🔄 Accepted relay job {job.request_id} for {job.channel_id}")
    return JsonResponse({'ok': True}, status=202)
