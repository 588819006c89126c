from dataclasses import dataclass
from typing import Sequence

from .entities import Question
from .errors import NoQuestionsError

NO_ANSWER = "No answer"


@dataclass(frozen=True)
class SubmittedAnswer:
    question_id: int
    selected_answer: str | None = None


@dataclass(frozen=True)
class QuestionResult:
    question_id: int
    question_text: str
    selected_answer: str
    correct_answer: str
    is_correct: bool
    explanation: str | None = None


@dataclass(frozen=True)
class GradeResult:
    score: int
    correct_count: int
    total_questions: int
    passed: bool
    passing_score: int
    results: tuple[QuestionResult, ...] = ()


def percent(correct: int, total: int) -> int:
    # round half up, integer only
    return (200 * correct + total) // (2 * total)


def score_answers(questions: Sequence[Question], answers: Sequence[SubmittedAnswer],
                  passing_score: int, assessment: str = "assessment") -> GradeResult:
    """Grade ``answers`` against the questions bound to an assessment.

    Correctness is exact string equality with the stored correct answer. The
    denominator is the number of bound questions, so anything left unanswered
    counts against the score. Answers for questions outside the bound set are
    ignored, as are repeated answers for the same question after the first.
    """
    if not questions:
        raise NoQuestionsError(assessment)

    by_id = {q.id: q for q in questions}
    seen: set[int] = set()
    correct_count = 0
    results = []
    for answer in answers:
        question = by_id.get(answer.question_id)
        if question is None or question.id in seen:
            continue
        seen.add(question.id)

        if answer.selected_answer is None:
            selected, is_correct = NO_ANSWER, False
        else:
            selected = answer.selected_answer
            is_correct = selected == question.correct_answer
        if is_correct:
            correct_count += 1

        results.append(QuestionResult(
            question_id=question.id,
            question_text=question.question_text,
            selected_answer=selected,
            correct_answer=question.correct_answer,
            is_correct=is_correct,
            explanation=question.explanation,
        ))

    total = len(questions)
    score = percent(correct_count, total)
    return GradeResult(
        score=score,
        correct_count=correct_count,
        total_questions=total,
        passed=score >= passing_score,
        passing_score=passing_score,
        results=tuple(results),
    )
