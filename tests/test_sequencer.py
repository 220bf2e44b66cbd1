from types import SimpleNamespace

from lms.services.sequencer import CHAPTER, HOMEWORK, QUIZ, ContentItem, build_sequence, content_path, find_neighbours


def _row(id, position, title=""):
    return SimpleNamespace(id=id, position=position, title=title)


def test_build_sequence_merges_by_position():
    sequence = build_sequence(
        chapters=[_row(1, 1), _row(2, 4)],
        quizzes=[_row(7, 2)],
        homeworks=[_row(9, 3)],
    )
    assert [(item.type, item.id) for item in sequence] == [
        (CHAPTER, 1),
        (QUIZ, 7),
        (HOMEWORK, 9),
        (CHAPTER, 2),
    ]


def test_neighbours_cross_content_types():
    sequence = build_sequence(chapters=[_row(1, 1)], quizzes=[_row(2, 2)], homeworks=[_row(3, 3)])

    previous, following = find_neighbours(sequence, QUIZ, 2)
    assert previous == ContentItem(1, CHAPTER, 1, "")
    assert following == ContentItem(3, HOMEWORK, 3, "")


def test_neighbours_at_the_ends_are_none():
    sequence = build_sequence(chapters=[_row(1, 1)], quizzes=[_row(2, 2)], homeworks=[_row(3, 3)])
    assert find_neighbours(sequence, CHAPTER, 1)[0] is None
    assert find_neighbours(sequence, HOMEWORK, 3)[1] is None


def test_same_id_in_different_families_is_not_confused():
    sequence = build_sequence(chapters=[_row(5, 1)], quizzes=[_row(5, 2)])
    previous, following = find_neighbours(sequence, QUIZ, 5)
    assert previous.type == CHAPTER
    assert following is None


def test_missing_item_has_no_neighbours():
    assert find_neighbours(build_sequence(chapters=[_row(1, 1)]), CHAPTER, 99) == (None, None)


def test_content_path_uses_plural_segments():
    assert content_path(3, ContentItem(4, CHAPTER, 1)) == "/courses/3/chapters/4"
    assert content_path(3, ContentItem(5, QUIZ, 2)) == "/courses/3/quizzes/5"
    assert content_path(3, ContentItem(6, HOMEWORK, 3)) == "/courses/3/homeworks/6"
