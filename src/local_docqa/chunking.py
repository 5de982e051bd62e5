from __future__ import annotations

import re

from .schema import Block
from .settings import RetrievalSettings

# A run of non-terminators closed by terminators or by the end of the text.
_SEGMENT_PATTERN = re.compile(r"[^.!?\n]+(?:[.!?\n]+|$)")


def split_segments(text: str) -> list[str]:
    """Split normalized text into sentence- or line-sized segments.

    Args:
        text: Text with line endings and tabs already normalized.

    Returns:
        Raw (untrimmed) segments in document order. Text without any
        matching segment is returned whole.
    """
    segments = _SEGMENT_PATTERN.findall(text)
    return segments or [text]


def chunk_document(text: str, settings: RetrievalSettings | None = None) -> list[Block]:
    """Split document text into overlapping, length-bounded blocks.

    Segments are accumulated greedily until adding the next one would exceed
    ``max_block_chars``. Each new block is seeded with the last
    ``overlap_words`` words of the block just closed so context carries
    across the boundary.

    Args:
        text: Full plaintext of the document.
        settings: Chunking parameters; defaults are used when omitted.

    Returns:
        Blocks indexed ``0..n-1``. Empty or noise-only text yields ``[]``.
    """
    if not text:
        return []
    settings = settings or RetrievalSettings()

    normalized = text.replace("\r\n", "\n").replace("\t", " ")
    pieces: list[str] = []
    buffer = ""

    for segment in split_segments(normalized):
        trimmed = segment.strip()
        if not trimmed:
            continue

        if len(buffer) + len(trimmed) > settings.max_block_chars:
            if buffer:
                pieces.append(buffer.strip())
                words = buffer.split(" ")
                overlap = " ".join(words[max(0, len(words) - settings.overlap_words) :])
                buffer = f"{overlap} {trimmed}" if overlap else trimmed
            else:
                buffer = trimmed
        else:
            buffer = f"{buffer} {trimmed}" if buffer else trimmed

    if buffer.strip():
        pieces.append(buffer.strip())

    kept = [piece for piece in pieces if len(piece) > settings.min_block_chars]
    return [Block(index=idx, text=piece) for idx, piece in enumerate(kept)]
