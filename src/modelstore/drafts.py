"""Drafts: local copies of a model that are edited freely and submitted as one update."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

from modelstore.definition.config import connect
from modelstore.errors import DefinitionError, NotFoundError, PendingStateError
from modelstore.guards import State
from modelstore.instance import model_values

if TYPE_CHECKING:
    from modelstore.definition.config import Config
    from modelstore.instance import Model
    from modelstore.store import Store

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DraftTarget:
    """The canonical definition a draft config mirrors."""

    definition: Any
    create: bool


class DraftRegistry:
    def __init__(self, store: Store) -> None:
        self._store = store
        self._configs: dict[tuple[int, bool], Config] = {}
        self._targets: dict[Config, DraftTarget] = {}

    def target_of(self, value: object) -> DraftTarget | None:
        config = self._store.states.config_of(value)
        if config is None:
            return None
        return self._targets.get(config)

    def setup(self, config: Config, *, create: bool) -> Config:
        """Return the draft config mirroring ``config``."""

        draft = self._configs.get((id(config), create))
        if draft is not None:
            return draft

        definition = {key: value for key, value in config.definition.items() if key is not connect}
        definition[connect] = {
            "get": self._reader(config),
            "set": _write_local,
        }
        draft = self._store.definitions.setup_model(definition, name="Draft")

        self._configs[(id(config), create)] = draft
        self._targets[draft] = DraftTarget(config.definition, create)
        return draft

    def _reader(self, config: Config) -> Any:
        store = self._store

        def read(id: Any) -> Any:  # noqa: A002
            model = store.get(config.definition, id)
            if store.ready(model):
                return model
            pending = store.pending(model)
            if pending:
                return pending
            raise store.error(model) or NotFoundError(
                f"Model instance with '{id}' id does not exist"
            )

        return read

    def open(self, definition: Any, id: Any = None) -> Model:  # noqa: A002
        """Return a draft of ``definition``.

        Without ``id`` an enumerable definition gets a fresh draft for a new instance;
        otherwise the draft starts as a copy of the canonical instance.
        """

        store = self._store
        config = store.bootstrap(definition)
        if config.is_list:
            raise DefinitionError("Draft mode is not supported for listing model definition")

        create = config.enumerable and id is None
        draft = self.setup(config, create=create)

        if create:
            local = draft.create({})
            store.sync(draft, local.id, local)
            return store.get(draft.definition, local.id)
        return store.get(draft.definition, id)

    def submit(self, draft: Model) -> asyncio.Future[Any]:
        """Write the draft values into the canonical instance, then mirror the result back."""

        target = self.target_of(draft)
        if target is None:
            raise DefinitionError("Model instance is not a draft")
        store = self._store
        if store.pending(draft):
            raise PendingStateError("Model instance in pending state")

        loop = asyncio.get_running_loop()
        task = loop.create_task(self._submit(draft, target, model_values(draft)))
        store.states.set_state(draft, State.PENDING, task)
        return task

    async def _submit(self, draft: Model, target: DraftTarget, values: dict[str, Any]) -> Any:
        store = self._store
        try:
            if target.create:
                result = await store.set(target.definition, values)
            else:
                config = store.bootstrap(target.definition)
                model = store.get(target.definition, draft.id if config.enumerable else None)
                pending = store.pending(model)
                if pending:
                    model = await pending
                if not store.ready(model):
                    raise store.error(model) or NotFoundError(
                        f"Model instance with '{draft.id}' id does not exist"
                    )
                result = await store.set(model, values)

            await store.set(draft, model_values(result))
            log.debug("Draft %r submitted", draft.id)
            return result
        except Exception as exc:
            store.states.set_state(draft, State.ERROR, exc)
            raise


def _write_local(id: Any, values: Any, _keys: tuple[str, ...]) -> Any:  # noqa: A002
    if values is None:
        return {"id": id}
    return values
