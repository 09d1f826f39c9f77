"""The working-model cell shared by every request against a provider."""

from __future__ import annotations

import logging

log = logging.getLogger(__name__)


class WorkingModelState:
    """Holds the model name last confirmed to work, if any.

    Lifecycle: unset, pinned after a successful probe, cleared after a
    model-level fault, and lazily re-probed on next use.
    """

    __slots__ = ("_model",)

    def __init__(self, model: str | None = None):
        self._model = model

    def get(self) -> str | None:
        return self._model

    def pin(self, model: str) -> None:
        if self._model != model:
            log.info("Pinned working model %s", model)
        self._model = model

    def clear(self, *, if_model: str | None = None) -> bool:
        """Forget the pinned model.

        With ``if_model``, only clear when that model is still the pinned one,
        so a stale fault report cannot discard a newer confirmation. Returns
        True when the state was cleared.
        """
        if if_model is not None and self._model != if_model:
            return False
        if self._model is not None:
            log.info("Cleared working model %s", self._model)
        self._model = None
        return True

    def __repr__(self) -> str:
        return f"WorkingModelState(model={self._model!r})"
