from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

CHAPTER = "chapter"
QUIZ = "quiz"
HOMEWORK = "homework"


@dataclass(frozen=True)
class ContentItem:
    id: int
    type: str  # chapter|quiz|homework
    position: int
    title: str = ""


def build_sequence(chapters: Iterable = (), quizzes: Iterable = (), homeworks: Iterable = ()) -> list[ContentItem]:
    """Merge the three content families of a course into one list ordered by position."""
    items = [ContentItem(c.id, CHAPTER, c.position, c.title) for c in chapters]
    items += [ContentItem(q.id, QUIZ, q.position, q.title) for q in quizzes]
    items += [ContentItem(h.id, HOMEWORK, h.position, h.title) for h in homeworks]
    return sorted(items, key=lambda item: item.position)


def find_neighbours(
    sequence: Sequence[ContentItem], item_type: str, item_id: int
) -> tuple[ContentItem | None, ContentItem | None]:
    """Return (previous, next) around the given item; None at either end or if absent."""
    for index, item in enumerate(sequence):
        if item.type == item_type and item.id == item_id:
            previous = sequence[index - 1] if index > 0 else None
            following = sequence[index + 1] if index + 1 < len(sequence) else None
            return previous, following
    return None, None


def content_path(course_id: int, item: ContentItem) -> str:
    """Page route for a content item; quizzes and homeworks use plural segments."""
    segment = {CHAPTER: "chapters", QUIZ: "quizzes", HOMEWORK: "homeworks"}[item.type]
    return f"/courses/{course_id}/{segment}/{item.id}"
