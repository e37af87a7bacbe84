import logging
import os

from openai import OpenAI

from ..utils.relay_types import ProviderConfig

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = 'openai'
GROQ_BASE_URL = 'https://api.groq.com/openai/v1'
REQUEST_TIMEOUT_SECONDS = 30.0

# provider -> (api key variable, model variable, fallback model, base url)
PROVIDERS = {
    'openai': ('OPENAI_API_KEY', 'OPENAI_MODEL', 'gpt-4o-mini', None),
    'groq': ('GROQ_API_KEY', 'GROQ_MODEL', 'llama3-8b-8192', GROQ_BASE_URL),
}


def resolve_provider_config(env=None) -> ProviderConfig:
    """Pick backend, key, base URL and model from the environment.

    Called once per job, never cached, so keys and models can be rotated
    without restarting the process.
    """
    env = os.environ if env is None else env
    provider = (env.get('MODEL_PROVIDER') or DEFAULT_PROVIDER).strip().lower()
    if provider not in PROVIDERS:
        logger.warning(f"Unknown MODEL_PROVIDER {provider!r}, falling back to {DEFAULT_PROVIDER}")
        provider = DEFAULT_PROVIDER

    key_var, model_var, fallback_model, base_url = PROVIDERS[provider]
    config = ProviderConfig(
        provider=provider,
        api_key=env.get(key_var),
        model=env.get(model_var) or fallback_model,
        base_url=base_url,
    )
    logger.info(f"[LLM] provider={config.provider} model={config.model}")
    return config


class ProviderClient:
    """Chat-completions call shared by both backends (Groq is OpenAI-compatible).

    The SDK's own retries are off and its request timeout matches the
    summariser's budget, so an abandoned call does not linger on its thread.
    """

    def __init__(self, config: ProviderConfig, timeout: float = REQUEST_TIMEOUT_SECONDS):
        self.config = config
        kwargs = {
            'api_key': config.api_key,
            'timeout': timeout,
            'max_retries': 0,
        }
        if config.base_url:
            kwargs['base_url'] = config.base_url
        self.client = OpenAI(**kwargs)

    def create_completion(self, model: str, prompt: str, max_tokens: int, temperature: float) -> str:
        resp = self.client.chat.completions.create(
            model=model,
            messages=[{'role': 'user', 'content': prompt}],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        if not resp.choices:
            return '(empty)'
        content = resp.choices[0].message.content
        return content.strip() if content else '(empty)'
