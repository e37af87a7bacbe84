import logging
import time
from typing import Optional

from ..utils.message_utils import is_plain_message, valid_thread_ts
from ..utils.relay_types import MessageWindow

logger = logging.getLogger(__name__)


class UpstreamFetchError(Exception):
    """History could not be retrieved, even after a retry"""


class HistoryFetcher:
    """Retrieve a bounded window of recent conversation messages.

    Every failure, including a well-formed ``ok: false`` response, is retried
    exactly once after a short fixed backoff.
    """

    RETRY_BACKOFF_SECONDS = 0.25
    ATTEMPTS = 2

    def __init__(self, slack_service, sleep=time.sleep, clock=time.time):
        self.slack_service = slack_service
        self.sleep = sleep
        self.clock = clock

    def fetch(self, channel_id: str, window_seconds: int, limit: int, thread_ts: Optional[str] = None) -> MessageWindow:
        oldest = int(self.clock()) - window_seconds
        if thread_ts and not valid_thread_ts(thread_ts):
            logger.warning(f"Ignoring malformed thread_ts {thread_ts!r} for {channel_id}")
            thread_ts = None

        last_error = None
        for attempt in range(1, self.ATTEMPTS + 1):
            try:
                response = self.slack_service.fetch_history(channel_id, str(oldest), limit, thread_ts=thread_ts)
                if not response.get('ok'):
                    raise UpstreamFetchError(f"history_error:{response.get('error') or 'unknown'}")
                messages = [msg for msg in response.get('messages', []) if is_plain_message(msg)]
                messages.sort(key=lambda m: float(m.get('ts', 0)))
                logger.info(f"Fetched {len(messages)} messages from {channel_id} on attempt {attempt}")
                return MessageWindow(messages=messages, oldest=oldest, limit=limit, thread_ts=thread_ts)
            except Exception as e:
                last_error = e
                logger.warning(f"History fetch attempt {attempt} for {channel_id} failed: {str(e)}")
                if attempt < self.ATTEMPTS:
                    self.sleep(self.RETRY_BACKOFF_SECONDS)

        raise UpstreamFetchError(str(last_error)) from last_error
