from django.http import JsonResponse
from django.conf import settings
from datetime import datetime
import os
import time
import logging

logger = logging.getLogger(__name__)


def liveness(request):
    """Plain probe answered on the command URL for GET requests"""
    return JsonResponse({"ok": True, "ts": int(time.time() * 1000)})


def health_check(request):
    try:
        health_data = {
            "status": "ok",
            "timestamp": datetime.now().isoformat(),
            "django_debug": settings.DEBUG,
            "dispatch_mode": settings.RELAY_DISPATCH_MODE,
            "model_provider": (os.getenv('MODEL_PROVIDER') or 'openai').lower(),
            "environment_variables": {
                "SLACK_BOT_TOKEN": bool(settings.SLACK_BOT_TOKEN),
                "SLACK_SIGNING_SECRET": bool(settings.SLACK_SIGNING_SECRET),
                "OPENAI_API_KEY": bool(os.getenv('OPENAI_API_KEY')),
                "GROQ_API_KEY": bool(os.getenv('GROQ_API_KEY')),
                "RELAY_WORKER_URL": bool(settings.RELAY_WORKER_URL),
            }
        }
        logger.info(f"[{getattr(request, 'debug_id', 'unknown')}] Health check requested")
        return JsonResponse(health_data)
    except Exception as e:
        logger.error(f"[{getattr(request, 'debug_id', 'unknown')}] Health check failed: {str(e)}")
        return JsonResponse({
            "status": "error",
            "timestamp": datetime.now().isoformat(),
            "error": str(e)
        }, status=500)
