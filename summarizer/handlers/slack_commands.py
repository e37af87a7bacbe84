from django.http import JsonResponse
from django.conf import settings
import time
import logging

from ..services.slack_service import SlackService
from ..services.history_service import HistoryFetcher
from ..services.summarizer_service import Summarizer
from ..services.delivery_service import ResultDelivery
from ..services.relay_service import JobRelay, SummaryJob, build_dispatcher
from ..utils.relay_types import CommandInvocation

logger = logging.getLogger(__name__)

SUMMARIZE_COMMANDS = ('/summarize', '/summary')


def build_summary_job(slack_service):
    """Wire the continuation: history -> provider -> delivery"""
    return SummaryJob(
        fetcher=HistoryFetcher(slack_service),
        summarizer=Summarizer(timeout_seconds=settings.PROVIDER_TIMEOUT_MS / 1000),
        delivery=ResultDelivery(slack_service),
    )


def build_relay():
    slack_service = SlackService()
    dispatcher = build_dispatcher(
        settings.RELAY_DISPATCH_MODE,
        build_summary_job(slack_service),
        worker_url=settings.RELAY_WORKER_URL,
        token=settings.RELAY_SHARED_SECRET,
        timeout=settings.RELAY_DISPATCH_TIMEOUT_SEC,
    )
    return JobRelay(
        slack_service,
        dispatcher,
        ResultDelivery(slack_service),
        window_seconds=settings.SLACK_HISTORY_WINDOW_SEC,
        limit=settings.SLACK_HISTORY_LIMIT,
    )


def slack_commands_handler(request):
    """Acknowledge /summarize right away and summarise in the background"""
    request_id = getattr(request, 'debug_id', 'unknown')
    start_time = time.time()

    try:
        invocation = CommandInvocation.from_post(request.POST)
        command = invocation.command.lower()
        logger.info(f"[{request_id}] ⚡ Command {command} from {invocation.user_id} in {invocation.channel_id}")

        if command not in SUMMARIZE_COMMANDS:
            logger.warning(f"[{request_id}] ❓ Unknown command received: {command}")
            return JsonResponse({
                'response_type': 'ephemeral',
                'text': f'❌ Unknown command: {command}\n\n' +
                       'Available commands:\n' +
                       '• `/summarize` - Summarise recent messages in this channel or thread'
            })

        if not invocation.channel_id:
            return JsonResponse({
                'response_type': 'ephemeral',
                'text': '❌ This command has to be run inside a channel.'
            })

        ack = build_relay().handle(invocation, request_id=request_id)
        return JsonResponse(ack.body)

    except Exception as e:
        elapsed = (time.time() - start_time) * 1000
        logger.error(f"[{request_id}] ack_failed after {elapsed:.1f}ms: {str(e)}", exc_info=True)
        return JsonResponse({
            'response_type': 'ephemeral',
            'text': '❌ Error processing your request. Please try again.'
        })
