import logging
import ssl
import certifi
import requests
from slack_sdk.web import WebClient
from slack_sdk.errors import SlackApiError
from django.conf import settings
from typing import Optional, Dict

logger = logging.getLogger(__name__)


class SlackService:
    """Thin wrapper over the Slack Web API calls the relay needs"""

    DEFAULT_TIMEOUT = 10
    RESPONSE_URL_TIMEOUT = 10

    def __init__(self, token: Optional[str] = None, timeout: int = DEFAULT_TIMEOUT,
                 client: Optional[WebClient] = None, base_url: Optional[str] = None):
        """Initialize the Slack client with a certifi-backed SSL context"""
        if client is None:
            ssl_context = ssl.create_default_context(cafile=certifi.where())
            kwargs = {
                'token': token or settings.SLACK_BOT_TOKEN,
                'ssl': ssl_context,
                'timeout': timeout,
                # HistoryFetcher owns the only retry policy
                'retry_handlers': [],
            }
            if base_url:
                kwargs['base_url'] = base_url
            client = WebClient(**kwargs)
        self.client = client
        logger.debug("SlackService initialized")

    def _client_with_timeout(self, timeout: float) -> WebClient:
        return WebClient(
            token=self.client.token,
            base_url=self.client.base_url,
            ssl=self.client.ssl,
            timeout=timeout,
            retry_handlers=[],
        )

    def post_placeholder(self, channel: str, text: str, thread_ts: Optional[str] = None,
                         timeout: Optional[float] = None) -> str:
        """Post a placeholder message and return its timestamp.

        ``timeout`` bounds this one call, for callers racing a deadline.
        """
        kwargs = {
            'channel': channel,
            'text': text
        }
        if thread_ts:
            kwargs['thread_ts'] = thread_ts

        client = self.client if timeout is None else self._client_with_timeout(timeout)
        response = client.chat_postMessage(**kwargs)
        return response['ts']

    def fetch_history(self, channel: str, oldest: str, limit: int, thread_ts: Optional[str] = None) -> Dict:
        """Fetch one page of channel history, or of a thread's replies"""
        if thread_ts:
            response = self.client.conversations_replies(channel=channel, ts=thread_ts, oldest=oldest, limit=limit)
        else:
            response = self.client.conversations_history(channel=channel, oldest=oldest, limit=limit)
        return {
            'ok': response.get('ok', False),
            'messages': response.get('messages', []) or [],
            'error': response.get('error'),
        }

    def update_message(self, channel: str, ts: str, text: str):
        """Update an existing Slack message in a channel"""
        try:
            return self.client.chat_update(channel=channel, ts=ts, text=text)
        except SlackApiError as e:
            logger.error(f"SlackApiError updating message {ts} in {channel}: {e.response['error']}")
            raise

    def post_ephemeral(self, channel: str, user_id: str, text: str, thread_ts: Optional[str] = None):
        """Post a message only the given user can see"""
        kwargs = {
            'channel': channel,
            'user': user_id,
            'text': text
        }
        if thread_ts:
            kwargs['thread_ts'] = thread_ts
        try:
            return self.client.chat_postEphemeral(**kwargs)
        except SlackApiError as e:
            logger.error(f"SlackApiError posting ephemeral to {user_id} in {channel}: {e.response['error']}")
            raise

    def respond(self, response_url: str, payload: Dict):
        """Send a follow-up through a slash command's response_url"""
        response = requests.post(response_url, json=payload, timeout=self.RESPONSE_URL_TIMEOUT)
        response.raise_for_status()
        return response
