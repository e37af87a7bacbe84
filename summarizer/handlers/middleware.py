import time
import logging
from django.conf import settings
from django.http import JsonResponse
from slack_sdk.signature import SignatureVerifier

logger = logging.getLogger(__name__)


class SlackRequestMiddleware:
    """Tag, time and (for Slack endpoints) verify every incoming request"""

    SLACK_PREFIX = '/slack/'
    RELAY_PREFIX = '/relay/'

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        start_time = time.time()
        request_id = str(int(time.time() * 1000))[-6:]  # Last 6 digits for unique ID
        request.debug_id = request_id

        logger.info(f"[{request_id}] Incoming request: {request.method} {request.path}")

        if request.path.startswith((self.SLACK_PREFIX, self.RELAY_PREFIX)):
            # Slack requests are signed, relay calls carry their own token
            request._dont_enforce_csrf_checks = True

        if request.method == 'POST' and request.path.startswith(self.SLACK_PREFIX):
            if not self.is_signed_by_slack(request):
                logger.warning(f"[{request_id}] Rejected request with invalid Slack signature")
                return JsonResponse({'ok': False, 'error': 'invalid_signature'}, status=403)

        response = self.get_response(request)

        duration = (time.time() - start_time) * 1000
        logger.info(f"[{request_id}] Response: {response.status_code} in {duration:.2f}ms")
        return response

    def is_signed_by_slack(self, request):
        """Check the X-Slack-Signature header; skipped when no secret is configured"""
        signing_secret = settings.SLACK_SIGNING_SECRET
        if not signing_secret:
            return True
        verifier = SignatureVerifier(signing_secret)
        return verifier.is_valid_request(request.body, dict(request.headers))
