import logging
import threading
import time

import requests

from .history_service import UpstreamFetchError
from .provider_service import resolve_provider_config
from ..utils.message_utils import short_diagnostic, valid_thread_ts
from ..utils.relay_types import (
    AckResult,
    CommandInvocation,
    FailureReason,
    JobRequest,
    PlaceholderHandle,
    SummaryResult,
)

logger = logging.getLogger(__name__)

ACK_DEADLINE_MS = 3000
# Room left for Django and the network hop back to Slack
ACK_SAFETY_MARGIN_MS = 500
# Below this, an I/O step is skipped rather than started
MIN_STEP_SECONDS = 0.05
ACK_TEXT = "📝 Summarising…"
RELAY_TOKEN_HEADER = 'X-Relay-Token'


class DispatchError(Exception):
    """The continuation could not be started"""


class SummaryJob:
    """The slow half of a /summarize invocation.

    Fetches history (unless the relay payload already carries text), asks the
    provider for a summary and delivers exactly one result to the placeholder.
    """

    def __init__(self, fetcher, summarizer, delivery, config_loader=resolve_provider_config):
        self.fetcher = fetcher
        self.summarizer = summarizer
        self.delivery = delivery
        self.config_loader = config_loader

    def run(self, job: JobRequest):
        request_id = job.request_id
        start_time = time.time()
        try:
            result = self._summarize(job)
        except Exception as e:
            logger.error(f"[{request_id}] ❌ Summary job failed unexpectedly: {str(e)}", exc_info=True)
            result = SummaryResult.failure(FailureReason.PROVIDER_ERROR, short_diagnostic(e))

        try:
            self.delivery.deliver(job.placeholder, result)
        except Exception as e:
            logger.error(f"[{request_id}] ❌ Delivery to {job.channel_id} failed: {str(e)}", exc_info=True)
            return result

        elapsed = (time.time() - start_time) * 1000
        outcome = 'summary' if result.ok else result.reason.value
        logger.info(f"[{request_id}] ✅ Delivered {outcome} in {elapsed:.1f}ms")
        return result

    def _summarize(self, job: JobRequest) -> SummaryResult:
        request_id = job.request_id
        text = job.text
        if text is None:
            logger.info(f"[{request_id}] 📥 Fetching history for {job.channel_id}")
            try:
                window = self.fetcher.fetch(job.channel_id, job.window_seconds, job.limit, thread_ts=job.thread_ts)
            except UpstreamFetchError as e:
                logger.error(f"[{request_id}] ❌ History fetch failed after retry: {str(e)}")
                return SummaryResult.failure(FailureReason.UPSTREAM_FETCH_ERROR, short_diagnostic(e))
            text = window.flatten()

        if not text.strip():
            logger.info(f"[{request_id}] 📭 Nothing to summarise in {job.channel_id}")
            return SummaryResult.failure(FailureReason.EMPTY_INPUT)

        config = self.config_loader()
        logger.info(f"[{request_id}] 🤖 Summarising {len(text)} chars with {config.provider}")
        return self.summarizer.summarize(text, config)


class Dispatcher:
    """Start a SummaryJob without blocking the acknowledgment.

    ``timeout`` is what is left of the acknowledgment budget, in seconds.
    """

    def dispatch(self, job: JobRequest, timeout: float = None):
        raise NotImplementedError


class ThreadDispatcher(Dispatcher):
    """Run the job in this process on a detached daemon thread"""

    def __init__(self, job_runner: SummaryJob):
        self.job_runner = job_runner

    def dispatch(self, job: JobRequest, timeout: float = None):
        background_thread = threading.Thread(
            target=self.job_runner.run,
            args=(job,),
            name=f"summary-{job.request_id}",
        )
        background_thread.daemon = True
        try:
            background_thread.start()
        except RuntimeError as e:
            raise DispatchError(f"could not start background thread: {e}") from e
        return background_thread


class HttpRelayDispatcher(Dispatcher):
    """Hand the job to the worker endpoint with one fire-and-forget POST"""

    def __init__(self, worker_url: str, token: str = None, timeout: float = 2.0, session=None):
        if not worker_url:
            raise ValueError("RELAY_WORKER_URL is required for http dispatch")
        self.worker_url = worker_url
        self.token = token
        self.timeout = timeout
        self.session = session or requests

    def request_timeout(self, budget: float = None):
        """(connect, read) timeouts whose sum stays inside ``budget``"""
        if budget is None:
            return (self.timeout, self.timeout)
        if budget < MIN_STEP_SECONDS:
            raise DispatchError("acknowledgment budget used up before the relay call")
        connect = min(self.timeout, budget / 2)
        read = min(self.timeout, budget - connect)
        return (connect, read)

    def dispatch(self, job: JobRequest, timeout: float = None):
        headers = {}
        if self.token:
            headers[RELAY_TOKEN_HEADER] = self.token

        connect_timeout, read_timeout = self.request_timeout(timeout)
        try:
            response = self.session.post(
                self.worker_url,
                json=job.to_payload(),
                headers=headers,
                timeout=(connect_timeout, read_timeout),
            )
        except requests.exceptions.ReadTimeout:
            # The body went out; the worker is just slow to answer.
            logger.info(f"[{job.request_id}] Relay call to worker sent, no response within {read_timeout:.2f}s")
            return None
        except requests.exceptions.RequestException as e:
            raise DispatchError(f"relay call failed: {e}") from e

        if 400 <= response.status_code < 500:
            raise DispatchError(f"worker rejected job with HTTP {response.status_code}")
        if response.status_code >= 500:
            logger.error(f"[{job.request_id}] Worker answered HTTP {response.status_code}, not retrying")
        else:
            logger.info(f"[{job.request_id}] Worker accepted job with HTTP {response.status_code}")
        return None


def build_dispatcher(mode: str, job_runner: SummaryJob, worker_url: str = None, token: str = None, timeout: float = 2.0) -> Dispatcher:
    if mode == 'http':
        return HttpRelayDispatcher(worker_url, token=token, timeout=timeout)
    if mode != 'thread':
        logger.warning(f"Unknown dispatch mode {mode!r}, running jobs in-process")
    return ThreadDispatcher(job_runner)


class JobRelay:
    """Acknowledge a slash command fast, then hand the real work off.

    Steps, in order: build the acknowledgment, capture a placeholder handle,
    dispatch the continuation. Both I/O steps draw their timeouts from one
    budget that ends ``ACK_SAFETY_MARGIN_MS`` before Slack's deadline; the
    placeholder post may use at most half of what is left. A step with no
    budget left is skipped. A dispatch failure is reported through the
    placeholder on a background thread, since nobody else is left to see it.
    """

    def __init__(self, slack_service, dispatcher: Dispatcher, delivery, window_seconds: int, limit: int,
                 budget_ms: int = ACK_DEADLINE_MS - ACK_SAFETY_MARGIN_MS):
        self.slack_service = slack_service
        self.dispatcher = dispatcher
        self.delivery = delivery
        self.window_seconds = window_seconds
        self.limit = limit
        self.budget_ms = budget_ms

    def handle(self, invocation: CommandInvocation, request_id: str = 'unknown') -> AckResult:
        start_time = time.time()

        def remaining():
            return self.budget_ms / 1000 - (time.time() - start_time)

        ack_body = {
            'response_type': 'ephemeral',
            'text': ACK_TEXT
        }

        thread_ts = invocation.thread_ts if valid_thread_ts(invocation.thread_ts) else None
        placeholder = self._obtain_placeholder(invocation, thread_ts, request_id, remaining() / 2)
        job = JobRequest(
            placeholder=placeholder,
            window_seconds=self.window_seconds,
            limit=self.limit,
            thread_ts=thread_ts,
            request_id=request_id,
        )

        try:
            task = self.dispatcher.dispatch(job, timeout=max(remaining(), 0))
            logger.info(f"[{request_id}] 🚀 Dispatched summary job via {type(self.dispatcher).__name__}")
        except Exception as e:
            logger.error(f"[{request_id}] ❌ Dispatch failed: {str(e)}", exc_info=True)
            task = self._report_dispatch_failure(placeholder, e, request_id)

        elapsed = (time.time() - start_time) * 1000
        if elapsed > ACK_DEADLINE_MS:
            logger.error(f"[{request_id}] ack_failed: acknowledgment took {elapsed:.1f}ms (deadline {ACK_DEADLINE_MS}ms)")
        else:
            logger.info(f"[{request_id}] ⚡ Acknowledged in {elapsed:.1f}ms")

        return AckResult(body=ack_body, placeholder=placeholder, task=task)

    def _obtain_placeholder(self, invocation: CommandInvocation, thread_ts, request_id, timeout) -> PlaceholderHandle:
        ephemeral = PlaceholderHandle(
            channel_id=invocation.channel_id,
            user_id=invocation.user_id,
            response_url=invocation.response_url,
            thread_ts=thread_ts,
        )
        if timeout < MIN_STEP_SECONDS:
            logger.warning(f"[{request_id}] No time left to post a placeholder, using the ephemeral ack")
            return ephemeral

        try:
            ts = self.slack_service.post_placeholder(invocation.channel_id, ACK_TEXT, thread_ts=thread_ts, timeout=timeout)
            logger.info(f"[{request_id}] Placeholder posted in {invocation.channel_id} at {ts}")
            return PlaceholderHandle(channel_id=invocation.channel_id, message_ts=ts, thread_ts=thread_ts)
        except Exception as e:
            # e.g. not_in_channel or a timeout: the ephemeral ack becomes the placeholder
            logger.warning(f"[{request_id}] Could not post placeholder in {invocation.channel_id}: {str(e)}")
            return ephemeral

    def _report_dispatch_failure(self, placeholder, error, request_id):
        result = SummaryResult.failure(FailureReason.DISPATCH_FAILED, short_diagnostic(error))

        def report():
            try:
                self.delivery.deliver(placeholder, result)
            except Exception as e:
                logger.error(f"[{request_id}] ❌ Could not report dispatch failure: {str(e)}", exc_info=True)

        report_thread = threading.Thread(target=report, name=f"dispatch-failure-{request_id}")
        report_thread.daemon = True
        report_thread.start()
        return report_thread
