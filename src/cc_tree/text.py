"""Text helpers for single-line tree labels."""

import re

_WHITESPACE = re.compile(r"\s+")


def single_line(text: str) -> str:
    """Collapse newlines and runs of whitespace into single spaces."""
    return _WHITESPACE.sub(" ", text or "").strip()


def truncate(text: str, max_length: int, suffix: str = "...") -> str:
    if len(text) <= max_length:
        return text
    return text[: max(0, max_length - len(suffix))] + suffix


def first_line(text: str) -> str:
    return (text or "").split("\n", 1)[0].rstrip("\r")


def split_text_into_chunks(text: str, max_chunk_size: int) -> list[str]:
    """Split text into chunks of at most ``max_chunk_size`` characters.

    Breaks at the last space when it falls in the second half of a chunk;
    otherwise the chunk is cut hard and marked with "...".
    """
    if max_chunk_size < 4:
        raise ValueError("max_chunk_size must be at least 4")
    if len(text) <= max_chunk_size:
        return [text]

    chunks = []
    remaining = text
    while remaining:
        if len(remaining) <= max_chunk_size:
            chunks.append(remaining)
            break

        window = remaining[:max_chunk_size]
        last_space = window.rfind(" ")
        if last_space > max_chunk_size // 2:
            chunks.append(remaining[:last_space])
            remaining = remaining[last_space + 1 :]
        else:
            chunks.append(remaining[: max_chunk_size - 3] + "...")
            remaining = remaining[max_chunk_size - 3 :]

    return chunks
