import pytest

from progression_service.domain.entities import Question
from progression_service.domain.errors import NoQuestionsError, ValidationFailure
from progression_service.domain.grading import NO_ANSWER, SubmittedAnswer, percent, score_answers


def _questions(*correct):
    return [
        Question(id=i, question_text=f"q{i}", options=(c, "x", "y"), correct_answer=c, explanation=f"why {i}")
        for i, c in enumerate(correct, start=1)
    ]


@pytest.mark.parametrize("correct,total,expected", [
    (0, 4, 0), (4, 4, 100), (2, 3, 67), (1, 3, 33), (1, 8, 13), (7, 8, 88), (1, 2, 50),
])
def test_percent_rounds_half_up(correct, total, expected):
    assert percent(correct, total) == expected


def test_all_correct_passes():
    result = score_answers(_questions("a", "b"), [SubmittedAnswer(1, "a"), SubmittedAnswer(2, "b")], 80)
    assert result.score == 100
    assert result.correct_count == 2
    assert result.total_questions == 2
    assert result.passed is True
    assert [r.is_correct for r in result.results] == [True, True]


def test_score_equal_to_passing_score_passes():
    """3 of 4 correct is exactly 75"""
    questions = _questions("a", "b", "c", "d")
    answers = [SubmittedAnswer(1, "a"), SubmittedAnswer(2, "b"), SubmittedAnswer(3, "c"), SubmittedAnswer(4, "x")]
    result = score_answers(questions, answers, 75)
    assert result.score == 75
    assert result.passed is True
    assert score_answers(questions, answers, 76).passed is False


def test_unanswered_questions_count_against_score():
    result = score_answers(_questions("a", "b", "c"), [SubmittedAnswer(1, "a")], 70)
    assert result.total_questions == 3
    assert result.correct_count == 1
    assert result.score == 33
    assert len(result.results) == 1


def test_null_answer_is_recorded_as_no_answer():
    result = score_answers(_questions("a"), [SubmittedAnswer(1, None)], 70)
    assert result.results[0].selected_answer == NO_ANSWER
    assert result.results[0].is_correct is False
    assert result.results[0].correct_answer == "a"
    assert result.results[0].explanation == "why 1"


def test_comparison_is_exact():
    result = score_answers(_questions("Answer"), [SubmittedAnswer(1, "answer")], 50)
    assert result.correct_count == 0
    result = score_answers(_questions("Answer"), [SubmittedAnswer(1, "Answer ")], 50)
    assert result.correct_count == 0


def test_answers_for_unbound_questions_are_ignored():
    result = score_answers(_questions("a"), [SubmittedAnswer(99, "a"), SubmittedAnswer(1, "a")], 70)
    assert result.correct_count == 1
    assert result.total_questions == 1
    assert [r.question_id for r in result.results] == [1]


def test_repeated_answer_counts_once():
    result = score_answers(_questions("a", "b"), [SubmittedAnswer(1, "a")] * 5, 50)
    assert result.correct_count == 1
    assert result.score == 50


def test_first_of_duplicate_answers_wins():
    result = score_answers(_questions("a"), [SubmittedAnswer(1, "x"), SubmittedAnswer(1, "a")], 50)
    assert result.correct_count == 0
    assert result.results[0].selected_answer == "x"


def test_no_bound_questions_is_a_validation_failure():
    with pytest.raises(NoQuestionsError) as exc:
        score_answers([], [SubmittedAnswer(1, "a")], 70, assessment="exam")
    assert isinstance(exc.value, ValidationFailure)
    assert exc.value.message == "No questions found for this exam"


def test_correct_count_never_exceeds_total():
    questions = _questions("a", "b")
    answers = [SubmittedAnswer(i % 3, "a") for i in range(20)]
    result = score_answers(questions, answers, 0)
    assert 0 <= result.correct_count <= result.total_questions
    assert 0 <= result.score <= 100
