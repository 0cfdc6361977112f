"""CPU-bound text processing run inside the processing worker."""

from __future__ import annotations

import re
from collections import Counter
from typing import Any, Iterable, Mapping

from notum.utils.text import safe_filename, truncate

WORDS_PER_MINUTE = 200

SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")
NON_WORD_RE = re.compile(r"[^\w\s]")

STOP_WORDS = frozenset(
    """
    the and or but in on at to for of with by is are was were be been have has had will would
    could should may might must this that these those a an as if then than when where why how
    what which who whom whose from up out down off over under again further once here there all
    any both each few more most other some such no nor not only own same so too very can just
    now also well get go come take make see know think say tell ask give find want need try use
    work call first last long great little old right big high different small large next early
    young important public bad able
    """.split()
)

READABILITY_BANDS = (
    (90, "Very Easy"),
    (80, "Easy"),
    (70, "Fairly Easy"),
    (60, "Standard"),
    (50, "Fairly Difficult"),
    (30, "Difficult"),
)


def _words(text: str) -> list[str]:
    return text.split()


def _sentences(text: str) -> list[str]:
    return [sentence for sentence in SENTENCE_SPLIT_RE.split(text) if sentence.strip()]


def analyze_content(content: str) -> dict[str, Any]:
    words = _words(content)
    sentences = _sentences(content)
    paragraphs = [p for p in PARAGRAPH_SPLIT_RE.split(content) if p.strip()]
    avg_word_length = sum(len(word) for word in words) / len(words) if words else 0.0
    avg_sentence_length = len(words) / len(sentences) if sentences else 0.0
    if avg_word_length < 5 and avg_sentence_length < 15:
        difficulty = "easy"
    elif avg_word_length < 7 and avg_sentence_length < 25:
        difficulty = "medium"
    else:
        difficulty = "hard"
    return {
        "wordCount": len(words),
        "sentenceCount": len(sentences),
        "paragraphCount": len(paragraphs),
        "readingTimeMinutes": -(-len(words) // WORDS_PER_MINUTE),
        "difficulty": difficulty,
        "avgWordLength": round(avg_word_length, 1),
        "avgSentenceLength": round(avg_sentence_length, 1),
    }


def extract_keywords(text: str, max_keywords: int = 10) -> list[dict[str, Any]]:
    """Most frequent non-stop-words longer than three characters."""
    words = [word for word in NON_WORD_RE.sub(" ", text.lower()).split() if len(word) > 3]
    filtered = [word for word in words if word not in STOP_WORDS]
    if not filtered:
        return []
    counts = Counter(filtered)
    return [
        {"word": word, "count": count, "relevance": count / len(filtered)}
        for word, count in counts.most_common(max_keywords)
    ]


def generate_summary(text: str, max_length: int = 200) -> str:
    """Extractive summary: the three best-scoring sentences in document order."""
    sentences = [s for s in SENTENCE_SPLIT_RE.split(text) if len(s.strip()) > 10]
    if len(sentences) <= 3:
        return text[:max_length] + ("..." if len(text) > max_length else "")

    frequencies = Counter(text.lower().split())
    scored = []
    for index, sentence in enumerate(sentences):
        words = sentence.lower().split()
        score = sum(frequencies[word] for word in words) / len(words)
        boost = 1.2 if index < len(sentences) * 0.3 else 1.0
        scored.append((score * boost, index, sentence.strip()))

    top = sorted(sorted(scored, key=lambda item: item[0], reverse=True)[:3], key=lambda item: item[1])
    return truncate(". ".join(sentence for _, _, sentence in top), max_length)


def count_syllables(word: str) -> int:
    word = word.lower()
    if len(word) <= 3:
        return 1
    word = re.sub(r"(?:[^laeiouy]es|ed|[^laeiouy]e)$", "", word)
    word = re.sub(r"^y", "", word)
    return max(1, len(re.findall(r"[aeiouy]{1,2}", word)))


def calculate_readability(text: str) -> dict[str, Any]:
    """Flesch reading ease and its band."""
    sentences = _sentences(text)
    words = _words(text)
    if not words or not sentences:
        return {
            "fleschScore": 0,
            "level": "Very Difficult",
            "avgSentenceLength": 0.0,
            "avgSyllablesPerWord": 0.0,
            "wordCount": len(words),
            "sentenceCount": len(sentences),
        }
    syllables = sum(count_syllables(word) for word in words)
    avg_sentence_length = len(words) / len(sentences)
    avg_syllables = syllables / len(words)
    score = 206.835 - 1.015 * avg_sentence_length - 84.6 * avg_syllables
    level = next((label for floor, label in READABILITY_BANDS if score >= floor), "Very Difficult")
    return {
        "fleschScore": round(score),
        "level": level,
        "avgSentenceLength": round(avg_sentence_length, 1),
        "avgSyllablesPerWord": round(avg_syllables, 2),
        "wordCount": len(words),
        "sentenceCount": len(sentences),
    }


def render_tracks_markdown(
    tracks: Iterable[Mapping[str, Any]],
    resources: Mapping[str, Mapping[str, Any]] | None = None,
) -> dict[str, str]:
    """One markdown document per track, keyed by file name.

    ``tracks`` use the camelCase portable form; ``resources`` maps resource ids
    to their portable form so member resources render as links.
    """
    resources = resources or {}
    files: dict[str, str] = {}
    for track in tracks:
        lines = [
            f"# {track['name']}",
            "",
            f"**Description:** {track.get('description', '')}",
            "",
            f"**Objective:** {track.get('objective', '')}",
            "",
        ]
        prerequisites = track.get("prerequisites") or []
        if prerequisites:
            lines.append("**Prerequisites:**")
            lines.extend(f"- {item}" for item in prerequisites)
            lines.append("")
        milestones = sorted(track.get("milestones") or [], key=lambda m: m.get("order", 0))
        if milestones:
            lines.extend(["## Milestones", ""])
            for position, milestone in enumerate(milestones, start=1):
                status = "[x]" if milestone.get("completed") else "[ ]"
                lines.extend([f"### {position}. {milestone['name']} {status}", "", milestone.get("description", ""), ""])
        members = [resources[rid] for rid in track.get("resources") or [] if rid in resources]
        if members:
            lines.extend(["## Resources", ""])
            lines.extend(
                f"{position}. [{resource['title']}]({resource['url']})"
                for position, resource in enumerate(members, start=1)
            )
            lines.append("")
        files[f"{safe_filename(track['name'])}.md"] = "\n".join(lines) + "\n"
    return files


__all__ = [
    "analyze_content",
    "calculate_readability",
    "count_syllables",
    "extract_keywords",
    "generate_summary",
    "render_tracks_markdown",
]
