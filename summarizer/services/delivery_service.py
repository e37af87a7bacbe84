import logging

from ..utils.message_utils import scrub_credentials
from ..utils.relay_types import FailureReason, PlaceholderHandle, SummaryResult

logger = logging.getLogger(__name__)

EMPTY_INPUT_TEXT = "Nothing to summarise 👌"


def render_result(result: SummaryResult) -> str:
    """User-facing text for a result; failure details never carry credentials"""
    if result.ok:
        return result.text or '(empty)'

    detail = scrub_credentials(result.detail)
    if result.reason == FailureReason.EMPTY_INPUT:
        return EMPTY_INPUT_TEXT
    if result.reason == FailureReason.TIMEOUT:
        return f"⚠️  The model took too long ({detail}) – try again later."
    if result.reason == FailureReason.PROVIDER_ERROR:
        return f"⚠️  LLM error – {detail}"
    if result.reason == FailureReason.UPSTREAM_FETCH_ERROR:
        return f"⚠️  Couldn't fetch channel history – {detail}"
    return f"⚠️  Couldn't start the summary job – {detail}"


class ResultDelivery:
    """Replace a placeholder with the final summary or an error notice.

    Each call overwrites what the user sees; callers deliver at most once
    per handle.
    """

    def __init__(self, slack_service):
        self.slack_service = slack_service

    def deliver(self, handle: PlaceholderHandle, result: SummaryResult):
        text = render_result(result)
        outcome = 'summary' if result.ok else result.reason.value
        logger.info(f"Delivering {outcome} to {handle.channel_id} (ts={handle.message_ts}, user={handle.user_id})")

        # A channel placeholder already sits in the right thread, so an
        # in-place update keeps thread affinity.
        if handle.is_channel_message:
            self.slack_service.update_message(handle.channel_id, handle.message_ts, text)
            return

        thread_ts = handle.reply_thread_ts
        if handle.response_url:
            payload = {
                'replace_original': True,
                'response_type': 'in_channel' if result.ok else 'ephemeral',
                'text': text,
            }
            if thread_ts:
                payload['thread_ts'] = thread_ts
            self.slack_service.respond(handle.response_url, payload)
            return

        self.slack_service.post_ephemeral(handle.channel_id, handle.user_id, text, thread_ts=thread_ts)
