import logging
import os
from typing import Dict, List, NamedTuple, Optional, Type

import pandas as pd
from pydantic import BaseModel, ValidationError

from .errors import CatalogError
from .models import (
    ConjugationRow,
    ContentBlock,
    DefiniteArticleRow,
    Exercise,
    IndefiniteArticleRow,
    NumberRow,
    Topic,
    VocabularyEntry,
    WordRow,
)

logger = logging.getLogger(__name__)

OPTION_SEPARATOR = "|"

CATEGORY_CHOICES = [
    {"key": "all", "label": "All Topics"},
    {"key": "grammar", "label": "Grammar"},
    {"key": "vocabulary", "label": "Vocabulary"},
]

VOCABULARY_COLUMNS = {
    "german": "term",
    "arabic": "translation",
    "pronunciation": "phonetic_hint",
    "context": "usage_note",
}
WORD_COLUMNS = {
    "german": "term",
    "arabic": "translation",
    "pronunciation": "phonetic_hint",
}


class TableSpec(NamedTuple):
    file_name: str
    model: Type[BaseModel]
    columns: Dict[str, str]
    title: Optional[str] = None
    # Column whose value starts a new block, titled from GROUP_TITLES
    group_by: Optional[str] = None


GROUP_TITLES = {
    "sein": "sein (to be) - يكون",
    "haben": "haben (to have) - يملك",
}

GRAMMAR_TABLES: Dict[str, List[TableSpec]] = {
    "auxiliary_verbs": [
        TableSpec(
            "auxiliary_verbs.csv",
            ConjugationRow,
            {
                "verb": "verb",
                "pronoun": "pronoun",
                "form": "form",
                "arabic": "translation",
                "pronunciation": "phonetic_hint",
            },
            group_by="verb",
        )
    ],
    "articles": [
        TableSpec(
            "articles_definite.csv",
            DefiniteArticleRow,
            {
                "gender": "gender",
                "singular": "singular",
                "plural": "plural",
                "pronunciation": "phonetic_hint",
            },
            title="Definite Articles (أداة التعريف المحددة)",
        ),
        TableSpec(
            "articles_indefinite.csv",
            IndefiniteArticleRow,
            {"gender": "gender", "form": "form", "pronunciation": "phonetic_hint"},
            title="Indefinite Articles (أداة التعريف غير المحددة)",
        ),
    ],
    "pronouns": [
        TableSpec(
            "pronouns.csv",
            WordRow,
            WORD_COLUMNS,
            title="Personal Pronouns (الضمائر الشخصية)",
        )
    ],
    "adjectives": [
        TableSpec(
            "adjectives.csv",
            WordRow,
            WORD_COLUMNS,
            title="Basic Adjectives (الصفات الأساسية)",
        )
    ],
    "numbers": [
        TableSpec(
            "numbers.csv",
            NumberRow,
            {"number": "number", **WORD_COLUMNS},
            title="Numbers (الأرقام)",
        )
    ],
}


class ContentCatalog:
    """Loads the bilingual content tables and the topic list they belong to."""

    def __init__(self, directory: str):
        self.directory = directory
        self.topics: List[Topic] = []
        self.blocks: Dict[str, List[ContentBlock]] = {}

    def load_all(self):
        if not os.path.isdir(self.directory):
            raise CatalogError(f"Content directory {self.directory} does not exist")

        exercises = self._load_exercises()
        topics = []
        blocks: Dict[str, List[ContentBlock]] = {}
        for record in self._read_table("topics.csv", ["key", "title", "category"]):
            key = record["key"]
            try:
                topic = Topic(
                    title=record["title"],
                    category=record["category"],
                    content_key=key,
                    exercises=exercises.pop(key, []),
                )
            except ValidationError as e:
                raise CatalogError(f"Invalid topic {key!r}: {e}") from e
            topics.append(topic)
            blocks[key] = self._load_blocks(topic)

        if exercises:
            raise CatalogError(
                f"Exercises reference unknown topics: {', '.join(sorted(exercises))}"
            )

        self.topics = topics
        self.blocks = blocks
        logger.info(
            f"Loaded {len(topics)} topics with "
            f"{sum(len(t.exercises) for t in topics)} exercises from {self.directory}"
        )

    def get_topics(self) -> List[Topic]:
        return list(self.topics)

    def get_topic(self, index: int) -> Optional[Topic]:
        if 0 <= index < len(self.topics):
            return self.topics[index]
        return None

    def get_blocks(self, content_key: str) -> List[ContentBlock]:
        return self.blocks.get(content_key, [])

    def get_exercises(self, content_key: str) -> List[Exercise]:
        for topic in self.topics:
            if topic.content_key == content_key:
                return list(topic.exercises)
        return []

    def get_categories(self) -> List[Dict[str, str]]:
        return [dict(choice) for choice in CATEGORY_CHOICES]

    # --- Loading helpers ---
    def _read_table(self, file_name: str, columns: List[str]) -> List[Dict[str, str]]:
        path = os.path.join(self.directory, file_name)
        # "null" is a German word here, not a missing value
        df = pd.read_csv(path, encoding="utf-8", dtype=str, keep_default_na=False)
        missing = [c for c in columns if c not in df.columns]
        if missing:
            raise CatalogError(f"{file_name}: missing columns {', '.join(missing)}")
        return df[columns].to_dict("records")

    def _load_exercises(self) -> Dict[str, List[Exercise]]:
        columns = ["topic", "kind", "prompt", "options", "correct", "explanation"]
        grouped: Dict[str, List[Exercise]] = {}
        for record in self._read_table("exercises.csv", columns):
            try:
                exercise = Exercise(
                    kind=record["kind"],
                    prompt=record["prompt"],
                    options=[
                        option.strip()
                        for option in record["options"].split(OPTION_SEPARATOR)
                    ],
                    correct_option_index=record["correct"],
                    explanation=record["explanation"],
                )
            except ValidationError as e:
                raise CatalogError(
                    f"Invalid exercise for {record['topic']!r}: {e}"
                ) from e
            grouped.setdefault(record["topic"], []).append(exercise)
        return grouped

    def _load_blocks(self, topic: Topic) -> List[ContentBlock]:
        specs = GRAMMAR_TABLES.get(topic.content_key)
        if specs is None:
            specs = [
                TableSpec(f"{topic.content_key}.csv", VocabularyEntry, VOCABULARY_COLUMNS)
            ]

        blocks: List[ContentBlock] = []
        for spec in specs:
            if not os.path.exists(os.path.join(self.directory, spec.file_name)):
                logger.warning(
                    f"No content table {spec.file_name} for topic {topic.title!r}"
                )
                continue
            blocks.extend(self._build_blocks(spec))
        return blocks

    def _build_blocks(self, spec: TableSpec) -> List[ContentBlock]:
        records = self._read_table(spec.file_name, list(spec.columns))
        groups: Dict[Optional[str], list] = {}
        for record in records:
            fields = {spec.columns[column]: value for column, value in record.items()}
            try:
                entry = spec.model(**fields)
            except ValidationError as e:
                raise CatalogError(f"{spec.file_name}: invalid row {record}: {e}") from e
            group = record[spec.group_by] if spec.group_by else spec.title
            groups.setdefault(group, []).append(entry.to_display())

        if spec.group_by:
            return [
                ContentBlock(title=GROUP_TITLES.get(group, group), rows=rows)
                for group, rows in groups.items()
            ]
        return [ContentBlock(title=title, rows=rows) for title, rows in groups.items()]
