import math
import re

CHARS_PER_TOKEN = 4
TOKENS_PER_WORD = 1.3
_WORD = re.compile(r"\S+")


def estimate_tokens(text: str | None) -> int:
    """Token count for backends that report no usage: the larger of a word-based and a character-based guess."""
    if not text or text.isspace():
        return 0
    by_chars = math.ceil(len(text) / CHARS_PER_TOKEN)
    by_words = math.ceil(len(_WORD.findall(text)) * TOKENS_PER_WORD)
    return max(by_chars, by_words)
