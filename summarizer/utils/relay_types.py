import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .message_utils import flatten_messages, valid_thread_ts

SUMMARY_MAX_CHARS = 3000


@dataclass(frozen=True)
class CommandInvocation:
    """One inbound slash command, as Slack delivered it"""
    channel_id: str
    user_id: str
    trigger_id: str = ''
    thread_ts: Optional[str] = None
    received_at: float = field(default_factory=time.time)
    response_url: Optional[str] = None
    command: str = '/summarize'

    @classmethod
    def from_post(cls, post) -> 'CommandInvocation':
        """Build an invocation from a slash-command form body"""
        return cls(
            channel_id=post.get('channel_id', ''),
            user_id=post.get('user_id', ''),
            trigger_id=post.get('trigger_id', ''),
            thread_ts=post.get('thread_ts') or None,
            response_url=post.get('response_url') or None,
            command=post.get('command', '/summarize'),
        )


@dataclass
class MessageWindow:
    messages: List[Dict[str, Any]]
    oldest: int
    limit: int
    thread_ts: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.messages

    def flatten(self) -> str:
        return flatten_messages(self.messages)


@dataclass(frozen=True)
class ProviderConfig:
    provider: str
    api_key: Optional[str]
    model: str
    base_url: Optional[str] = None

    def __repr__(self):
        # keep keys out of logs and tracebacks
        return f"ProviderConfig(provider={self.provider!r}, model={self.model!r}, base_url={self.base_url!r})"


@dataclass(frozen=True)
class PlaceholderHandle:
    """The "working…" message a result will eventually replace.

    Either a channel message (``message_ts`` set) or the ephemeral
    acknowledgment itself (``user_id`` and, usually, ``response_url`` set).
    """
    channel_id: str
    message_ts: Optional[str] = None
    user_id: Optional[str] = None
    response_url: Optional[str] = None
    thread_ts: Optional[str] = None

    @property
    def is_channel_message(self) -> bool:
        return bool(self.message_ts)

    @property
    def reply_thread_ts(self) -> Optional[str]:
        return self.thread_ts if valid_thread_ts(self.thread_ts) else None

    def to_payload(self) -> Dict[str, Any]:
        return {
            'channel': self.channel_id,
            'ts': self.message_ts,
            'user': self.user_id,
            'response_url': self.response_url,
            'thread_ts': self.thread_ts,
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'PlaceholderHandle':
        channel_id = payload.get('channel')
        if not channel_id:
            raise ValueError("placeholder is missing 'channel'")
        if not payload.get('ts') and not payload.get('user'):
            raise ValueError("placeholder needs either 'ts' or 'user'")
        return cls(
            channel_id=channel_id,
            message_ts=payload.get('ts'),
            user_id=payload.get('user'),
            response_url=payload.get('response_url'),
            thread_ts=payload.get('thread_ts'),
        )


class FailureReason(str, Enum):
    TIMEOUT = 'timeout'
    PROVIDER_ERROR = 'provider_error'
    UPSTREAM_FETCH_ERROR = 'upstream_fetch_error'
    EMPTY_INPUT = 'empty_input'
    DISPATCH_FAILED = 'dispatch_failed'


@dataclass(frozen=True)
class SummaryResult:
    text: Optional[str] = None
    reason: Optional[FailureReason] = None
    detail: str = ''

    @property
    def ok(self) -> bool:
        return self.reason is None

    @classmethod
    def success(cls, text: str) -> 'SummaryResult':
        return cls(text=text[:SUMMARY_MAX_CHARS])

    @classmethod
    def failure(cls, reason: FailureReason, detail: str = '') -> 'SummaryResult':
        return cls(reason=FailureReason(reason), detail=detail)


@dataclass
class JobRequest:
    """Everything the continuation needs, serializable for the relay call"""
    placeholder: PlaceholderHandle
    window_seconds: int
    limit: int
    thread_ts: Optional[str] = None
    text: Optional[str] = None
    request_id: str = 'unknown'

    @property
    def channel_id(self) -> str:
        return self.placeholder.channel_id

    def to_payload(self) -> Dict[str, Any]:
        return {
            'conversation': self.channel_id,
            'placeholder': self.placeholder.to_payload(),
            'text': self.text,
            'fetch': {
                'window_seconds': self.window_seconds,
                'limit': self.limit,
                'thread_ts': self.thread_ts,
            },
            'request_id': self.request_id,
        }

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'JobRequest':
        if not isinstance(payload, dict):
            raise ValueError('payload must be a JSON object')
        placeholder = PlaceholderHandle.from_payload(payload.get('placeholder') or {})
        conversation = payload.get('conversation')
        if conversation and conversation != placeholder.channel_id:
            raise ValueError('conversation does not match placeholder channel')
        fetch = payload.get('fetch') or {}
        text = payload.get('text')
        if text is None and not fetch:
            raise ValueError("payload needs either 'text' or 'fetch'")
        try:
            window_seconds = int(fetch.get('window_seconds') or 0)
            limit = int(fetch.get('limit') or 0)
        except (TypeError, ValueError):
            raise ValueError('fetch window and limit must be integers')
        if text is None and (window_seconds <= 0 or limit <= 0):
            raise ValueError('fetch window and limit must be positive')
        return cls(
            placeholder=placeholder,
            window_seconds=window_seconds,
            limit=limit,
            thread_ts=fetch.get('thread_ts'),
            text=text,
            request_id=str(payload.get('request_id', 'unknown')),
        )


@dataclass
class AckResult:
    body: Dict[str, Any]
    placeholder: Optional[PlaceholderHandle] = None
    task: Any = None
