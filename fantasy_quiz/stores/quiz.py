"""Quiz progress: answers, current position, completion."""

from __future__ import annotations

from fantasy_quiz.models import QUESTIONS, Question, romantic_partner_options

from .core import Observable


class QuizStore(Observable):
    def __init__(self, questions: tuple[Question, ...] = QUESTIONS) -> None:
        super().__init__()
        self._questions = questions
        self.current_question_index = 0
        self.answers: dict[str, str] = {}
        self.is_complete = False
        self.progress = 0

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def visible_questions(self, answers: dict[str, str] | None = None) -> list[Question]:
        """Questions whose conditional (if any) is satisfied by the answers."""
        answers = self.answers if answers is None else answers
        return [
            q for q in self._questions
            if q.conditional is None
            or answers.get(q.conditional.depends_on) == q.conditional.value
        ]

    def current_question(self) -> Question | None:
        visible = self.visible_questions()
        if 0 <= self.current_question_index < len(visible):
            return visible[self.current_question_index]
        return None

    def total_questions(self) -> int:
        return len(self.visible_questions())

    def question_options(self, question: Question) -> list[str]:
        """Options for a question; partner options follow the current gender answer."""
        if question.id == "romanticPartner":
            return romantic_partner_options(self.answers.get("gender"))
        return list(question.options)

    def is_current_question_answered(self) -> bool:
        question = self.current_question()
        if question is None:
            return False
        return bool(self.answers.get(question.id)) if question.required else True

    def can_proceed_to_next(self) -> bool:
        return (
            self.current_question_index < self.total_questions() - 1
            and self.is_current_question_answered()
        )

    def can_go_to_previous(self) -> bool:
        return self.current_question_index > 0

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_answer(self, question_id: str, answer: str) -> None:
        self.answers = {**self.answers, question_id: answer}
        visible = self.visible_questions()
        answered = sum(1 for q in visible if q.id in self.answers)
        self.progress = round(answered / len(visible) * 100) if visible else 0
        self._notify()

    def next_question(self) -> None:
        last = max(self.total_questions() - 1, 0)
        self.current_question_index = min(self.current_question_index + 1, last)
        self._notify()

    def previous_question(self) -> None:
        self.current_question_index = max(self.current_question_index - 1, 0)
        self._notify()

    def go_to_question(self, index: int) -> None:
        last = max(self.total_questions() - 1, 0)
        self.current_question_index = max(0, min(index, last))
        self._notify()

    def complete_quiz(self) -> None:
        self.is_complete = True
        self.progress = 100
        self._notify()

    def reset_quiz(self) -> None:
        self.current_question_index = 0
        self.answers = {}
        self.is_complete = False
        self.progress = 0
        self._notify()

    def state(self) -> dict:
        return {
            "current_question_index": self.current_question_index,
            "answers": dict(self.answers),
            "is_complete": self.is_complete,
            "progress": self.progress,
        }
