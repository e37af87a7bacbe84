import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError

from .provider_service import ProviderClient
from ..utils.message_utils import short_diagnostic, truncate_text
from ..utils.relay_types import FailureReason, ProviderConfig, SummaryResult

logger = logging.getLogger(__name__)

# The instruction text is a contract with the model; keep it in one place.
PROMPT_PREFIX = (
    "Summarise the Slack discussion below in ≤120 words, "
    "then list **Action Items** as bullets.\n\n"
)
MAX_INPUT_CHARS = 4000
MAX_TOKENS = 400
TEMPERATURE = 0.3
DEFAULT_TIMEOUT_SECONDS = 30.0


def build_prompt(text: str) -> str:
    return PROMPT_PREFIX + truncate_text(text, MAX_INPUT_CHARS)


class Summarizer:
    """Turn flattened conversation text into a summary under a hard timeout"""

    def __init__(self, client_factory=None, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS):
        self.client_factory = client_factory or self._provider_client
        self.timeout_seconds = timeout_seconds

    def _provider_client(self, config: ProviderConfig) -> ProviderClient:
        return ProviderClient(config, timeout=self.timeout_seconds)

    def summarize(self, text: str, config: ProviderConfig) -> SummaryResult:
        prompt = build_prompt(text)
        secrets = (config.api_key,)

        # The provider call is raced against the timer, not cancelled on the
        # wire; a response arriving after the deadline is dropped with the future.
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='provider-call')
        future = None
        try:
            client = self.client_factory(config)
            future = executor.submit(client.create_completion, config.model, prompt, MAX_TOKENS, TEMPERATURE)
            summary = future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError:
            if future is not None:
                future.cancel()
            logger.error(f"[ERR] {config.provider} call exceeded {self.timeout_seconds:g}s, abandoning it")
            return SummaryResult.failure(FailureReason.TIMEOUT, f"{config.provider} took longer than {self.timeout_seconds:g}s")
        except Exception as e:
            detail = short_diagnostic(e, secrets)
            logger.error(f"[ERR] LLM call failed: {detail}")
            return SummaryResult.failure(FailureReason.PROVIDER_ERROR, detail)
        finally:
            executor.shutdown(wait=False)

        return SummaryResult.success(summary)
