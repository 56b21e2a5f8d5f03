"""Typed access to the two persisted slots.

The flow state and the authentication live under fixed keys of a
``KeyValueStore`` as JSON records with camelCase field names.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, ValidationError

from authlogic.client.models.errors import CorruptedStorageError
from authlogic.client.models.flow import FlowState
from authlogic.client.models.tokens import Authentication
from authlogic.client.primitives.storage import KeyValueStore

logger = logging.getLogger(__name__)

FLOW_STATE_KEY = "authlogic.storage.flow"
AUTHENTICATION_KEY = "authlogic.storage.auth"


class FlowStorage:
    """Reads and writes ``FlowState`` and ``Authentication`` records."""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def load_authentication(self) -> Authentication | None:
        return await self._load(AUTHENTICATION_KEY, Authentication)

    async def save_authentication(self, authentication: Authentication) -> None:
        await self.store.set(
            AUTHENTICATION_KEY,
            authentication.model_dump_json(by_alias=True, exclude_none=True),
        )

    async def clear_authentication(self) -> None:
        await self.store.remove(AUTHENTICATION_KEY)

    async def load_flow_state(self) -> FlowState | None:
        return await self._load(FLOW_STATE_KEY, FlowState)

    async def save_flow_state(self, flow_state: FlowState) -> None:
        await self.store.set(FLOW_STATE_KEY, flow_state.model_dump_json(by_alias=True))

    async def has_flow_state(self) -> bool:
        """Whether a flow record exists, without parsing it."""
        return await self.store.get(FLOW_STATE_KEY) is not None

    async def clear_flow_state(self) -> None:
        await self.store.remove(FLOW_STATE_KEY)

    async def _load(self, key: str, model: type[BaseModel]):
        raw = await self.store.get(key)
        if raw is None:
            return None
        try:
            return model.model_validate_json(raw)
        except ValidationError as e:
            raise CorruptedStorageError(
                f"Stored record {key} is not a valid {model.__name__}: {e}"
            ) from e
