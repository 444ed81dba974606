class DlingoError(Exception):
    """Base class for errors raised by the study guide."""


class CatalogError(DlingoError):
    """Shipped content is malformed (authoring defect)."""


class NavigationError(DlingoError):
    """A topic, exercise or option index is out of range."""


class QuizIncompleteError(DlingoError):
    """Answers were checked before every exercise had one."""


class SpeechUnavailableError(DlingoError):
    """The speech capability could not produce audio."""
