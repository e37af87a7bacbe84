"""Pytest configuration and shared fixtures."""

import os
import sys
import tempfile
import threading

import django
import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'summary_relay.settings')
os.environ.setdefault('SUMMARIZER_LOG_FILE', os.path.join(tempfile.gettempdir(), 'summarizer-tests.log'))
os.environ.pop('SLACK_SIGNING_SECRET', None)
os.environ.pop('RELAY_SHARED_SECRET', None)
django.setup()

from summarizer.utils.relay_types import ProviderConfig  # noqa: E402


def make_messages(count, subtype=None, start_ts=1700000000):
    messages = []
    for i in range(count):
        msg = {'type': 'message', 'user': f'U{i}', 'text': f'message {i}', 'ts': f'{start_ts + i}.000100'}
        if subtype:
            msg['subtype'] = subtype
        messages.append(msg)
    return messages


class FakeSlackService:
    """In-memory stand-in for SlackService that records every call"""

    def __init__(self, history_responses=None, placeholder_error=None):
        self.history_responses = list(history_responses or [{'ok': True, 'messages': make_messages(5)}])
        self.placeholder_error = placeholder_error
        self.placeholders = []
        self.history_calls = []
        self.updates = []
        self.ephemerals = []
        self.responses = []
        self._lock = threading.Lock()

    def post_placeholder(self, channel, text, thread_ts=None, timeout=None):
        if self.placeholder_error:
            raise self.placeholder_error
        with self._lock:
            ts = f'{1710000000 + len(self.placeholders)}.000200'
            self.placeholders.append({'channel': channel, 'text': text, 'thread_ts': thread_ts, 'timeout': timeout, 'ts': ts})
        return ts

    def fetch_history(self, channel, oldest, limit, thread_ts=None):
        with self._lock:
            self.history_calls.append({'channel': channel, 'oldest': oldest, 'limit': limit, 'thread_ts': thread_ts})
            item = self.history_responses.pop(0) if len(self.history_responses) > 1 else self.history_responses[0]
        if isinstance(item, Exception):
            raise item
        return item

    def update_message(self, channel, ts, text):
        with self._lock:
            self.updates.append({'channel': channel, 'ts': ts, 'text': text})

    def post_ephemeral(self, channel, user_id, text, thread_ts=None):
        with self._lock:
            self.ephemerals.append({'channel': channel, 'user': user_id, 'text': text, 'thread_ts': thread_ts})

    def respond(self, response_url, payload):
        with self._lock:
            self.responses.append({'url': response_url, 'payload': payload})

    @property
    def delivery_count(self):
        return len(self.updates) + len(self.ephemerals) + len(self.responses)


class FakeProviderClient:
    """Provider double; optionally blocks until ``release`` is set"""

    def __init__(self, reply='Summary text', error=None, block=False):
        self.reply = reply
        self.error = error
        self.block = block
        self.release = threading.Event()
        self.finished = threading.Event()
        self.calls = []
        self.configs = []

    def __call__(self, config):
        self.configs.append(config)
        return self

    def create_completion(self, model, prompt, max_tokens, temperature):
        self.calls.append({'model': model, 'prompt': prompt, 'max_tokens': max_tokens, 'temperature': temperature})
        try:
            if self.block:
                self.release.wait(5)
            if self.error:
                raise self.error
            return self.reply
        finally:
            self.finished.set()


@pytest.fixture
def fake_slack():
    return FakeSlackService()


@pytest.fixture
def fake_provider():
    return FakeProviderClient()


@pytest.fixture
def provider_config():
    return ProviderConfig(provider='openai', api_key='sk-testkey1234567890', model='gpt-4o-mini')
