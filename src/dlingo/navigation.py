"""View-state transitions.

Each function takes the current ``ViewState`` and returns a new one; the
input state is never modified. Switching topic or category always starts
from a fresh ``AnswerState`` so no answers carry over.
"""

import logging
from typing import List, Tuple

from . import quiz
from .errors import NavigationError, QuizIncompleteError
from .models import AnswerState, CategoryFilter, Topic, ViewState

logger = logging.getLogger(__name__)


def filter_topics(
    topics: List[Topic], category: CategoryFilter
) -> List[Tuple[int, Topic]]:
    """Topics matching the filter, in original order, with their full-list index."""
    category = CategoryFilter(category)
    return [
        (index, topic)
        for index, topic in enumerate(topics)
        if category == CategoryFilter.ALL or topic.category.value == category.value
    ]


def active_topic(state: ViewState, topics: List[Topic]) -> Topic:
    if not (0 <= state.topic_index < len(topics)):
        raise NavigationError(f"No topic at index {state.topic_index}")
    return topics[state.topic_index]


def answers_for(state: ViewState) -> AnswerState:
    """Answers recorded for the active topic; answers for any other topic are ignored."""
    if state.answers.topic_index != state.topic_index:
        return AnswerState(topic_index=state.topic_index)
    return state.answers


def _fresh(state: ViewState, topic_index: int, **changes) -> ViewState:
    return state.model_copy(
        update={
            "topic_index": topic_index,
            "exercise_index": 0,
            "answers": AnswerState(topic_index=topic_index),
            "show_results": False,
            "score": 0,
            "notice": None,
            **changes,
        }
    )


def select_category(
    state: ViewState, category: CategoryFilter, topics: List[Topic]
) -> ViewState:
    try:
        category = CategoryFilter(category)
    except ValueError as e:
        raise NavigationError(f"Unknown category {category!r}") from e
    matching = filter_topics(topics, category)
    if not matching:
        raise NavigationError(f"No topics in category {category.value!r}")
    logger.debug(f"Category -> {category.value}")
    return _fresh(state, matching[0][0], category=category)


def select_topic(state: ViewState, index: int, topics: List[Topic]) -> ViewState:
    if not (0 <= index < len(topics)):
        raise NavigationError(f"No topic at index {index}")
    logger.debug(f"Topic -> {topics[index].title}")
    return _fresh(state, index)


def select_option(
    state: ViewState, option_index: int, topics: List[Topic]
) -> ViewState:
    topic = active_topic(state, topics)
    if state.show_results:
        raise NavigationError("Results are shown; try again to answer")
    exercise = topic.exercises[state.exercise_index]
    if not (0 <= option_index < len(exercise.options)):
        raise NavigationError(f"No option {option_index} for this exercise")

    choices = {**answers_for(state).choices, state.exercise_index: option_index}
    return state.model_copy(
        update={
            "answers": AnswerState(topic_index=state.topic_index, choices=choices),
            "notice": None,
        }
    )


def go_to_exercise(state: ViewState, index: int, topics: List[Topic]) -> ViewState:
    """Previous/next navigation, clamped to the topic's exercises."""
    topic = active_topic(state, topics)
    index = max(0, min(len(topic.exercises) - 1, index))
    return state.model_copy(update={"exercise_index": index, "notice": None})


def check_answers(state: ViewState, topics: List[Topic]) -> ViewState:
    topic = active_topic(state, topics)
    answers = answers_for(state)
    if not quiz.can_check(topic.exercises, answers):
        answered = quiz.answered_count(topic.exercises, answers)
        raise QuizIncompleteError(
            f"Answer all exercises first ({answered} / {len(topic.exercises)} answered)"
        )
    result = quiz.score(topic.exercises, answers)
    logger.info(
        f"Checked {topic.title}: {result.correct_count}/{result.total} correct"
    )
    return state.model_copy(
        update={"score": result.correct_count, "show_results": True, "notice": None}
    )


def reset_quiz(state: ViewState) -> ViewState:
    """Try again: same topic and filter, no answers, score back to zero."""
    return _fresh(state, state.topic_index, category=state.category)


def with_notice(state: ViewState, notice: str) -> ViewState:
    return state.model_copy(update={"notice": notice})
