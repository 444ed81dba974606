from typing import Any, Callable, Dict, List

from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response

from . import navigation, quiz
from .catalog import ContentCatalog
from .config import settings
from .errors import DlingoError, QuizIncompleteError
from .globals import templates
from .models import (
    AnswerRequest,
    CategoryFilter,
    CategoryRequest,
    SpeakRequest,
    SpeechStatus,
    Topic,
    ViewState,
)
from .speech import Pronouncer, VoiceRegistry
from .state import StateStore

router = APIRouter()


# --- Dependencies ---
def get_catalog(request: Request) -> ContentCatalog:
    return request.app.state.catalog


def get_store(request: Request) -> StateStore:
    return request.app.state.store


def get_registry(request: Request) -> VoiceRegistry:
    return request.app.state.voice_registry


def get_pronouncer(request: Request) -> Pronouncer:
    return request.app.state.pronouncer


# --- View helpers ---
def topic_summary(index: int, topic: Topic) -> Dict[str, Any]:
    return {
        "index": index,
        "title": topic.title,
        "category": topic.category.value,
        "content_key": topic.content_key,
        "exercise_count": len(topic.exercises),
    }


def state_payload(state: ViewState, topics: List[Topic]) -> Dict[str, Any]:
    topic = navigation.active_topic(state, topics)
    answers = navigation.answers_for(state)
    return {
        "state": state.model_dump(mode="json"),
        "topic": topic_summary(state.topic_index, topic),
        "answered": quiz.answered_count(topic.exercises, answers),
        "total": len(topic.exercises),
        "can_check": quiz.can_check(topic.exercises, answers),
    }


def page_context(
    state: ViewState, catalog: ContentCatalog, registry: VoiceRegistry
) -> Dict[str, Any]:
    topics = catalog.get_topics()
    topic = navigation.active_topic(state, topics)
    exercises = topic.exercises
    answers = navigation.answers_for(state)
    context = {
        "categories": catalog.get_categories(),
        "state": state,
        "topics": navigation.filter_topics(topics, state.category),
        "topic": topic,
        "blocks": catalog.get_blocks(topic.content_key),
        "exercise": exercises[state.exercise_index],
        "selected": answers.answer_for(state.exercise_index),
        "answered": quiz.answered_count(exercises, answers),
        "total": len(exercises),
        "can_check": quiz.can_check(exercises, answers),
        "is_first_exercise": state.exercise_index == 0,
        "is_last_exercise": state.exercise_index == len(exercises) - 1,
        "result": None,
        "voice_status": registry.status(),
    }
    if state.show_results:
        result = quiz.evaluate(exercises, answers)
        context["result"] = result
        context["score_percentage"] = quiz.score_percentage(result)
    return context


def apply_form_action(
    request: Request, store: StateStore, action: Callable[[ViewState], ViewState]
) -> RedirectResponse:
    """Run a transition for an HTML form; errors come back as a page notice."""
    state = store.get()
    try:
        store.replace(action(state))
    except DlingoError as e:
        store.replace(navigation.with_notice(state, str(e)))
    return RedirectResponse(url=str(request.url_for("home")), status_code=303)


def apply_api_action(
    store: StateStore, catalog: ContentCatalog, action: Callable[[ViewState], ViewState]
):
    try:
        state = store.replace(action(store.get()))
    except QuizIncompleteError as e:
        return JSONResponse({"error": str(e)}, status_code=409)
    except DlingoError as e:
        return JSONResponse({"error": str(e)}, status_code=400)
    return state_payload(state, catalog.get_topics())


# --- Page ---
@router.get("/", response_class=HTMLResponse, name="home")
async def home(
    request: Request,
    catalog: ContentCatalog = Depends(get_catalog),
    store: StateStore = Depends(get_store),
    registry: VoiceRegistry = Depends(get_registry),
):
    context = page_context(store.get(), catalog, registry)
    return templates.TemplateResponse(request, "index.html", context)


@router.post("/category", response_class=RedirectResponse)
async def choose_category(
    request: Request,
    category: str = Form(...),
    catalog: ContentCatalog = Depends(get_catalog),
    store: StateStore = Depends(get_store),
):
    topics = catalog.get_topics()
    return apply_form_action(
        request, store, lambda s: navigation.select_category(s, category, topics)
    )


@router.post("/topic/{index}", response_class=RedirectResponse)
async def choose_topic(
    request: Request,
    index: int,
    catalog: ContentCatalog = Depends(get_catalog),
    store: StateStore = Depends(get_store),
):
    topics = catalog.get_topics()
    return apply_form_action(
        request, store, lambda s: navigation.select_topic(s, index, topics)
    )


@router.post("/answer", response_class=RedirectResponse)
async def choose_option(
    request: Request,
    option_index: int = Form(...),
    catalog: ContentCatalog = Depends(get_catalog),
    store: StateStore = Depends(get_store),
):
    topics = catalog.get_topics()
    return apply_form_action(
        request, store, lambda s: navigation.select_option(s, option_index, topics)
    )


@router.post("/exercise/{index}", response_class=RedirectResponse)
async def move_to_exercise(
    request: Request,
    index: int,
    catalog: ContentCatalog = Depends(get_catalog),
    store: StateStore = Depends(get_store),
):
    topics = catalog.get_topics()
    return apply_form_action(
        request, store, lambda s: navigation.go_to_exercise(s, index, topics)
    )


@router.post("/check", response_class=RedirectResponse)
async def check(
    request: Request,
    catalog: ContentCatalog = Depends(get_catalog),
    store: StateStore = Depends(get_store),
):
    topics = catalog.get_topics()
    return apply_form_action(
        request, store, lambda s: navigation.check_answers(s, topics)
    )


@router.post("/reset", response_class=RedirectResponse)
async def try_again(request: Request, store: StateStore = Depends(get_store)):
    return apply_form_action(request, store, navigation.reset_quiz)


# --- JSON API ---
@router.get("/api/topics")
async def list_topics(
    category: CategoryFilter = CategoryFilter.ALL,
    catalog: ContentCatalog = Depends(get_catalog),
):
    return [
        topic_summary(index, topic)
        for index, topic in navigation.filter_topics(catalog.get_topics(), category)
    ]


@router.get("/api/topics/{index}")
async def get_topic(index: int, catalog: ContentCatalog = Depends(get_catalog)):
    topic = catalog.get_topic(index)
    if topic is None:
        return JSONResponse({"error": "Topic not found"}, status_code=404)
    return {
        **topic_summary(index, topic),
        "blocks": [
            block.model_dump() for block in catalog.get_blocks(topic.content_key)
        ],
        # Correct answers stay on the server until results are requested
        "exercises": [
            {"kind": e.kind, "prompt": e.prompt, "options": e.options}
            for e in topic.exercises
        ],
    }


@router.get("/api/state")
async def get_state(
    catalog: ContentCatalog = Depends(get_catalog),
    store: StateStore = Depends(get_store),
):
    return state_payload(store.get(), catalog.get_topics())


@router.post("/api/category")
async def api_category(
    payload: CategoryRequest,
    catalog: ContentCatalog = Depends(get_catalog),
    store: StateStore = Depends(get_store),
):
    topics = catalog.get_topics()
    return apply_api_action(
        store, catalog, lambda s: navigation.select_category(s, payload.category, topics)
    )


@router.post("/api/topic/{index}")
async def api_topic(
    index: int,
    catalog: ContentCatalog = Depends(get_catalog),
    store: StateStore = Depends(get_store),
):
    topics = catalog.get_topics()
    return apply_api_action(
        store, catalog, lambda s: navigation.select_topic(s, index, topics)
    )


@router.post("/api/answer")
async def api_answer(
    payload: AnswerRequest,
    catalog: ContentCatalog = Depends(get_catalog),
    store: StateStore = Depends(get_store),
):
    topics = catalog.get_topics()
    return apply_api_action(
        store,
        catalog,
        lambda s: navigation.select_option(s, payload.option_index, topics),
    )


@router.post("/api/exercise/{index}")
async def api_exercise(
    index: int,
    catalog: ContentCatalog = Depends(get_catalog),
    store: StateStore = Depends(get_store),
):
    topics = catalog.get_topics()
    return apply_api_action(
        store, catalog, lambda s: navigation.go_to_exercise(s, index, topics)
    )


@router.post("/api/check")
async def api_check(
    catalog: ContentCatalog = Depends(get_catalog),
    store: StateStore = Depends(get_store),
):
    topics = catalog.get_topics()
    return apply_api_action(
        store, catalog, lambda s: navigation.check_answers(s, topics)
    )


@router.post("/api/reset")
async def api_reset(
    catalog: ContentCatalog = Depends(get_catalog),
    store: StateStore = Depends(get_store),
):
    return apply_api_action(store, catalog, navigation.reset_quiz)


@router.get("/api/result")
async def get_result(
    catalog: ContentCatalog = Depends(get_catalog),
    store: StateStore = Depends(get_store),
):
    state = store.get()
    if not state.show_results:
        return JSONResponse({"error": "Answers have not been checked"}, status_code=409)

    topic = navigation.active_topic(state, catalog.get_topics())
    result = quiz.evaluate(topic.exercises, navigation.answers_for(state))
    return {
        "correct_count": result.correct_count,
        "total": result.total,
        "score_percentage": quiz.score_percentage(result),
        "items": [item.model_dump() for item in result.items],
    }


# --- Pronunciation ---
def voices_payload(registry: VoiceRegistry) -> Dict[str, Any]:
    return {
        "loaded": registry.loaded,
        "voices": [voice.model_dump() for voice in registry.voices],
        "status": registry.status(),
    }


@router.get("/api/voices")
async def list_voices(registry: VoiceRegistry = Depends(get_registry)):
    return voices_payload(registry)


@router.post("/api/voices/refresh")
async def refresh_voices(registry: VoiceRegistry = Depends(get_registry)):
    await registry.refresh()
    return voices_payload(registry)


@router.post("/api/speak", name="speak")
async def speak(
    payload: SpeakRequest, pronouncer: Pronouncer = Depends(get_pronouncer)
):
    text = payload.text.strip()
    if not text or len(text) > settings.MAX_SPEECH_TEXT:
        return JSONResponse({"error": "Invalid text"}, status_code=400)

    outcome = await pronouncer.speak(text)
    if outcome.status == SpeechStatus.UNAVAILABLE:
        return JSONResponse(outcome.model_dump(mode="json"), status_code=503)
    return Response(
        content=outcome.audio,
        media_type="audio/mpeg",
        headers={
            "X-Speech-Status": outcome.status.value,
            "X-Speech-Voice": outcome.voice or "",
        },
    )
