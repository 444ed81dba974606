from .models import ViewState


class StateStore:
    """Holds the single in-memory view state of the guide."""

    def __init__(self):
        self._state = ViewState()

    def get(self) -> ViewState:
        return self._state

    def replace(self, state: ViewState) -> ViewState:
        self._state = state
        return state

    def reset(self) -> ViewState:
        self._state = ViewState()
        return self._state
