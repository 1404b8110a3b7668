from __future__ import annotations

import re

from autoreply.domain.models import Passage

DEFAULT_TARGET_CHARS = 600

_PARAGRAPH_BREAK = re.compile(r"\n{2,}")
# A run of non-terminators plus its terminators; a bare terminator run only at the start.
_SENTENCE = re.compile(r"[^.!?]+[.!?]*|[.!?]+")
_SEPARATOR = "\n\n"


def split_into_paragraphs(text: str) -> list[str]:
    """Paragraph split: two or more newlines separate paragraphs."""
    return [p.strip() for p in _PARAGRAPH_BREAK.split(text) if p.strip()]


def split_into_sentences(paragraph: str) -> list[str]:
    """Sentence split that keeps every character, whitespace included.

    "".join(split_into_sentences(p)) == p holds for any p.
    """
    return _SENTENCE.findall(paragraph)


# ---------- Passage packer ----------


class _Packer:
    """Greedy accumulator shared by paragraph and sentence packing."""

    def __init__(self, target_chars: int) -> None:
        self.target = target_chars
        self.buffer = ""
        self.out: list[str] = []

    def flush(self) -> None:
        text = self.buffer.strip()
        if text:
            self.out.append(text)
        self.buffer = ""

    def add_paragraph(self, para: str) -> None:
        joined_len = len(self.buffer) + len(_SEPARATOR) + len(para) if self.buffer else len(para)
        if joined_len <= self.target:
            self.buffer = f"{self.buffer}{_SEPARATOR}{para}" if self.buffer else para
            return
        self.flush()
        if len(para) > self.target:
            self._add_sentences(para)
        else:
            self.buffer = para

    def _add_sentences(self, para: str) -> None:
        # Leftover sentences stay in the buffer so the next paragraph can join them.
        for sentence in split_into_sentences(para):
            if len(self.buffer) + len(sentence) <= self.target:
                self.buffer += sentence
            else:
                self.flush()
                self.buffer = sentence.lstrip()


def chunk_document(document: str, target_chars: int = DEFAULT_TARGET_CHARS) -> list[Passage]:
    """Split a knowledge-base document into bounded passages.

    Pipeline: paragraphs -> greedy packing -> sentence packing for oversized
    paragraphs. A single sentence longer than target_chars becomes its own
    oversized passage; words are never split.

    Pure and total: the empty string yields an empty list.
    """
    if target_chars <= 0:
        raise ValueError("target_chars must be > 0")
    packer = _Packer(target_chars)
    for para in split_into_paragraphs(document):
        packer.add_paragraph(para)
    packer.flush()
    return [Passage(text=text, ordinal=i) for i, text in enumerate(packer.out)]
