import re

THREAD_TS_PATTERN = re.compile(r'^\d{10}\.\d{6}$')

_CREDENTIAL_PATTERNS = [
    re.compile(r'sk-[A-Za-z0-9_\-]{8,}'),
    re.compile(r'gsk_[A-Za-z0-9]{8,}'),
    re.compile(r'xox[abposr]-[A-Za-z0-9\-]+'),
    re.compile(r'(?i)bearer\s+[A-Za-z0-9._\-]+'),
]

DETAIL_MAX_CHARS = 100


def valid_thread_ts(thread_ts):
    """True when thread_ts looks like a Slack message timestamp"""
    if not thread_ts:
        return False
    return bool(THREAD_TS_PATTERN.match(str(thread_ts)))


def is_plain_message(msg):
    """Joins, edits, bot notices and the like all carry a subtype"""
    return not msg.get('subtype')


def flatten_messages(messages):
    return "\n".join(msg.get('text') or '' for msg in messages)


def truncate_text(text, max_chars):
    if len(text) <= max_chars:
        return text
    return text[:max_chars]


def scrub_credentials(text, secrets=()):
    """Mask anything that looks like an API key or Slack token"""
    cleaned = str(text)
    for secret in secrets:
        if secret:
            cleaned = cleaned.replace(secret, '***')
    for pattern in _CREDENTIAL_PATTERNS:
        cleaned = pattern.sub('***', cleaned)
    return cleaned


def short_diagnostic(error, secrets=()):
    detail = scrub_credentials(error, secrets).strip()
    if len(detail) > DETAIL_MAX_CHARS:
        detail = detail[:DETAIL_MAX_CHARS] + '...'
    return detail
