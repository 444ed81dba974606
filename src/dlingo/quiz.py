"""Scoring of a topic's exercises against the recorded answers.

Every function here is a pure reduction over the exercise list. An exercise
without a recorded answer never counts as correct.
"""

from typing import List

from .models import AnswerState, Exercise, QuizResult, ResultItem


def is_correct(exercise: Exercise, answers: AnswerState, index: int) -> bool:
    return answers.answer_for(index) == exercise.correct_option_index


def answered_count(exercises: List[Exercise], answers: AnswerState) -> int:
    return sum(1 for i in range(len(exercises)) if answers.answer_for(i) is not None)


def can_check(exercises: List[Exercise], answers: AnswerState) -> bool:
    """Scoring is offered only once every exercise has an answer."""
    return bool(exercises) and answered_count(exercises, answers) == len(exercises)


def score(exercises: List[Exercise], answers: AnswerState) -> QuizResult:
    correct_count = sum(
        1 for i, exercise in enumerate(exercises) if is_correct(exercise, answers, i)
    )
    return QuizResult(correct_count=correct_count, total=len(exercises))


def result_items(exercises: List[Exercise], answers: AnswerState) -> List[ResultItem]:
    items = []
    for i, exercise in enumerate(exercises):
        chosen = answers.answer_for(i)
        items.append(
            ResultItem(
                prompt=exercise.prompt,
                chosen_option=(
                    exercise.options[chosen]
                    if chosen is not None and 0 <= chosen < len(exercise.options)
                    else None
                ),
                correct_option=exercise.correct_option,
                is_correct=is_correct(exercise, answers, i),
                explanation=exercise.explanation,
            )
        )
    return items


def evaluate(exercises: List[Exercise], answers: AnswerState) -> QuizResult:
    """Score plus the per-exercise review shown on the results panel."""
    result = score(exercises, answers)
    result.items = result_items(exercises, answers)
    return result


def score_percentage(result: QuizResult) -> int:
    # Avoid division by zero for an empty exercise set
    return round((result.correct_count / result.total) * 100) if result.total else 0
