"""Candidate word and n-gram extraction used for pattern learning."""

from __future__ import annotations


def extract_words(text: str, min_length: int = 4) -> list[str]:
    """Split lowercased *text* on whitespace and keep words of *min_length*+ chars.

    Punctuation stays attached to the word; matching downstream is a raw
    substring test, so ``"budget,"`` is kept as is.
    """
    return [w for w in text.lower().split() if len(w) >= min_length]


def extract_phrases(
    text: str,
    min_length: int = 6,
    min_words: int = 2,
    max_words: int = 4,
) -> list[str]:
    """Return every contiguous 2-4 word phrase of *min_length*+ characters.

    Phrases are produced in reading order, shortest first at each start
    position. Duplicates are kept; callers decide on set semantics.
    """
    words = text.lower().split()
    phrases: list[str] = []
    for i in range(len(words) - 1):
        for size in range(min_words, max_words + 1):
            if i + size > len(words):
                break
            phrase = " ".join(words[i:i + size])
            if len(phrase) >= min_length:
                phrases.append(phrase)
    return phrases


def extract_fragments(
    text: str,
    min_word_length: int = 4,
    min_phrase_length: int = 6,
    max_phrase_words: int = 4,
) -> list[str]:
    """Words followed by phrases, as consumed by the trainer."""
    return extract_words(text, min_word_length) + extract_phrases(
        text, min_length=min_phrase_length, max_words=max_phrase_words
    )
