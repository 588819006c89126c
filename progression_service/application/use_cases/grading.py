from typing import Sequence

from ...domain.grading import GradeResult, SubmittedAnswer, score_answers
from ..ports import ICatalogReader


class GradingEngine:
    def __init__(self, catalog: ICatalogReader):
        self.catalog = catalog

    def grade(self, question_ids: Sequence[int], answers: Sequence[SubmittedAnswer],
              passing_score: int, assessment: str = "assessment") -> GradeResult:
        questions = self.catalog.get_questions(question_ids) if question_ids else []
        return score_answers(questions, answers, passing_score, assessment=assessment)
