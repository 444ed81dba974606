from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Category(str, Enum):
    GRAMMAR = "grammar"
    VOCABULARY = "vocabulary"


class CategoryFilter(str, Enum):
    ALL = "all"
    GRAMMAR = "grammar"
    VOCABULARY = "vocabulary"


# --- Content ---
class DisplayRow(BaseModel):
    """Uniform projection of any content entry, as the page renders it."""

    model_config = ConfigDict(frozen=True)

    label: Optional[str] = None
    term: str
    translation: str = ""
    phonetic_hint: str = ""
    usage_note: str = ""
    speak_text: str


class VocabularyEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    term: str
    translation: str
    phonetic_hint: str
    usage_note: str = ""

    def to_display(self) -> DisplayRow:
        return DisplayRow(
            term=self.term,
            translation=self.translation,
            phonetic_hint=self.phonetic_hint,
            usage_note=self.usage_note,
            speak_text=self.term,
        )


class ConjugationRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    verb: str
    pronoun: str
    form: str
    translation: str
    phonetic_hint: str

    def to_display(self) -> DisplayRow:
        text = f"{self.pronoun} {self.form}"
        return DisplayRow(
            term=text,
            translation=self.translation,
            phonetic_hint=self.phonetic_hint,
            speak_text=text,
        )


class DefiniteArticleRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    gender: str
    singular: str
    plural: str
    phonetic_hint: str

    def to_display(self) -> DisplayRow:
        return DisplayRow(
            label=self.gender,
            term=f"{self.singular} / {self.plural}",
            phonetic_hint=self.phonetic_hint,
            speak_text=self.singular,
        )


class IndefiniteArticleRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    gender: str
    form: str
    phonetic_hint: str

    def to_display(self) -> DisplayRow:
        return DisplayRow(
            label=self.gender,
            term=self.form,
            phonetic_hint=self.phonetic_hint,
            speak_text=self.form,
        )


class WordRow(BaseModel):
    """Pronouns and adjectives: a word with its translation."""

    model_config = ConfigDict(frozen=True)

    term: str
    translation: str
    phonetic_hint: str

    def to_display(self) -> DisplayRow:
        return DisplayRow(
            term=self.term,
            translation=self.translation,
            phonetic_hint=self.phonetic_hint,
            speak_text=self.term,
        )


class NumberRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    number: int
    term: str
    translation: str
    phonetic_hint: str

    def to_display(self) -> DisplayRow:
        return DisplayRow(
            label=str(self.number),
            term=self.term,
            translation=self.translation,
            phonetic_hint=self.phonetic_hint,
            speak_text=self.term,
        )


class ContentBlock(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: Optional[str] = None
    rows: List[DisplayRow]


class Exercise(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str
    prompt: str
    options: List[str]
    correct_option_index: int
    explanation: str

    @model_validator(mode="after")
    def check_correct_index(self):
        if not (0 <= self.correct_option_index < len(self.options)):
            raise ValueError(
                f"correct option {self.correct_option_index} is not one of "
                f"{len(self.options)} options for {self.prompt!r}"
            )
        return self

    @property
    def correct_option(self) -> str:
        return self.options[self.correct_option_index]


class Topic(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    category: Category
    content_key: str
    exercises: List[Exercise] = Field(min_length=1)


# --- View state ---
class AnswerState(BaseModel):
    """Chosen option per exercise, for one topic only."""

    topic_index: int = 0
    choices: Dict[int, int] = Field(default_factory=dict)

    def answer_for(self, exercise_index: int) -> Optional[int]:
        return self.choices.get(exercise_index)


class ViewState(BaseModel):
    category: CategoryFilter = CategoryFilter.ALL
    topic_index: int = 0
    exercise_index: int = 0
    answers: AnswerState = Field(default_factory=AnswerState)
    show_results: bool = False
    score: int = 0
    notice: Optional[str] = None


class ResultItem(BaseModel):
    prompt: str
    chosen_option: Optional[str]
    correct_option: str
    is_correct: bool
    explanation: str


class QuizResult(BaseModel):
    correct_count: int
    total: int
    items: List[ResultItem] = Field(default_factory=list)


# --- Speech ---
class Voice(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    locale: str
    gender: str = ""
    friendly_name: str = ""


class SpeechOptions(BaseModel):
    language: str = "de-DE"
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 1.0
    voice: Optional[str] = None


class SpeechStatus(str, Enum):
    PLAYED = "played"
    FALLBACK = "fallback"
    UNAVAILABLE = "unavailable"


class SpeechOutcome(BaseModel):
    status: SpeechStatus
    voice: Optional[str] = None
    audio: bytes = Field(default=b"", exclude=True)
    notice: Optional[str] = None


# --- API payloads ---
class CategoryRequest(BaseModel):
    category: CategoryFilter


class AnswerRequest(BaseModel):
    option_index: int


class SpeakRequest(BaseModel):
    text: str
