from django.http import HttpResponse, JsonResponse
from django.views.decorators.csrf import csrf_exempt
import logging

from .handlers.health import health_check, liveness
from .handlers.slack_commands import slack_commands_handler
from .handlers.background import background_handler

logger = logging.getLogger(__name__)


@csrf_exempt
def health(request):
    """Health check endpoint"""
    return health_check(request)


@csrf_exempt
def slack_commands(request):
    """Endpoint for Slack slash commands"""
    if request.method == 'GET':
        return liveness(request)
    if request.method != 'POST':
        return HttpResponse("Method not allowed", status=405)
    try:
        return slack_commands_handler(request)
    except Exception as e:
        logger.error(f"Error handling slash command: {str(e)}", exc_info=True)
        return JsonResponse({
            'response_type': 'ephemeral',
            'text': ':x: Sorry, something went wrong processing your command.'
        })


@csrf_exempt
def relay_summarize(request):
    """Background worker endpoint used by the http dispatch mode"""
    if request.method != 'POST':
        return HttpResponse("Use POST", status=405)
    return background_handler(request)
