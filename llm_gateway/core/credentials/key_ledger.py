"""API key ledger with equal-weight rotation and failure cooldown."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from llm_gateway.core.credentials.store import CredentialStore
from llm_gateway.core.exceptions import StorageError
from llm_gateway.core.types import ProviderId

logger = logging.getLogger(__name__)

DEFAULT_FAILED_KEY_COOLDOWN_MS = 300000
DEFAULT_MAX_SWITCH_COUNT = 3


@dataclass(frozen=True)
class ProviderKeyMapping:
    """Names of the stored values holding a provider's keys.

    ``primary`` is the single legacy key; ``extra`` is the list of
    additional keys.
    """

    primary: str
    extra: str


PROVIDER_KEY_MAPPINGS: dict[str, ProviderKeyMapping] = {
    ProviderId.OPENAI.value: ProviderKeyMapping("OPENAI_API_KEY", "OPENAI_API_KEYS_FALLBACK"),
    ProviderId.OPENAI_COMPAT.value: ProviderKeyMapping(
        "OPENAI_COMPAT_API_KEY", "OPENAI_COMPAT_API_KEYS_FALLBACK"
    ),
    ProviderId.GOOGLE.value: ProviderKeyMapping("GEMINI_API_KEY", "GEMINI_API_KEYS_FALLBACK"),
    ProviderId.ANTHROPIC.value: ProviderKeyMapping(
        "ANTHROPIC_API_KEY", "ANTHROPIC_API_KEYS_FALLBACK"
    ),
    ProviderId.OPENROUTER.value: ProviderKeyMapping(
        "OPENROUTER_API_KEY", "OPENROUTER_API_KEYS_FALLBACK"
    ),
}


def mask_key(key: str) -> str:
    """Show only the first and last four characters of a key."""
    if not key:
        return "(empty)"
    if len(key) <= 8:
        return key
    return f"{key[:4]}...{key[-4:]}"


def _monotonic_ms() -> float:
    return time.monotonic() * 1000


@dataclass
class RotationState:
    """Runtime rotation state for one provider (never persisted)."""

    current_index: int = 0
    failed_keys: dict[str, float] = field(default_factory=dict)
    success_count: int = 0


class RotationStateStore:
    """Owns the per-provider rotation states.

    States are created lazily on first access and live until reset().
    """

    def __init__(self) -> None:
        self._states: dict[str, RotationState] = {}

    def get(self, provider_id: str) -> RotationState:
        return self._states.setdefault(provider_id, RotationState())

    def reset(self, provider_id: str) -> None:
        self._states.pop(provider_id, None)

    def __contains__(self, provider_id: object) -> bool:
        return provider_id in self._states


class ApiKeyLedger:
    """Chooses which API key to present for each provider.

    Responsibilities:
    - Merge the primary key and the extra keys into one ordered list
    - Rotate round-robin after every successful call
    - Skip keys that failed within the cooldown window
    - Never raise: when no healthy key exists the best-effort choice is
      returned and the HTTP call decides

    Concurrent requests against one provider may race on the index; the
    outcome is a slightly uneven rotation, never a wrong key.
    """

    def __init__(
        self,
        store: CredentialStore,
        states: RotationStateStore | None = None,
        *,
        cooldown_ms: int = DEFAULT_FAILED_KEY_COOLDOWN_MS,
        max_switch_count: int = DEFAULT_MAX_SWITCH_COUNT,
        clock: Callable[[], float] = _monotonic_ms,
        mappings: dict[str, ProviderKeyMapping] | None = None,
    ) -> None:
        self._store = store
        self._states = states if states is not None else RotationStateStore()
        self._cooldown_ms = cooldown_ms
        self._max_switch_count = max_switch_count
        self._clock = clock
        self._mappings = mappings if mappings is not None else PROVIDER_KEY_MAPPINGS

    # ==================== Configuration bounds ====================

    def get_failed_key_cooldown(self) -> int:
        """Cooldown in milliseconds; invalid values fall back to 5 minutes."""
        if not isinstance(self._cooldown_ms, int) or self._cooldown_ms < 0:
            return DEFAULT_FAILED_KEY_COOLDOWN_MS
        return self._cooldown_ms

    def get_max_switch_count(self) -> int:
        """Upper bound for key switches in one logical request."""
        if not isinstance(self._max_switch_count, int) or self._max_switch_count < 1:
            return DEFAULT_MAX_SWITCH_COUNT
        return self._max_switch_count

    # ==================== Key lookup ====================

    def _mapping(self, provider_id: str) -> ProviderKeyMapping | None:
        return self._mappings.get(str(provider_id).lower())

    def _read_primary(self, mapping: ProviderKeyMapping) -> str:
        try:
            return self._store.get_string(mapping.primary).strip()
        except StorageError as e:
            logger.error("Cannot read %s, treating it as unset: %s", mapping.primary, e)
            return ""

    def _read_extras(self, mapping: ProviderKeyMapping) -> list[str]:
        try:
            return self._store.get_list(mapping.extra)
        except StorageError as e:
            logger.error("Cannot read %s, treating it as empty: %s", mapping.extra, e)
            return []

    def get_primary_key(self, provider_id: str) -> str:
        mapping = self._mapping(provider_id)
        if mapping is None:
            return ""
        return self._read_primary(mapping)

    def get_all_keys(self, provider_id: str) -> list[str]:
        """Primary key first, then extra keys in stored order, de-duplicated.

        An unreadable credential store yields no keys rather than an error.
        """
        mapping = self._mapping(provider_id)
        if mapping is None:
            return []

        keys: list[str] = []
        primary = self._read_primary(mapping)
        if primary:
            keys.append(primary)

        for raw in self._read_extras(mapping):
            key = (raw or "").strip()
            if key and key not in keys:
                keys.append(key)
        return keys

    def get_extra_keys(self, provider_id: str) -> list[str]:
        mapping = self._mapping(provider_id)
        if mapping is None:
            return []
        return self._read_extras(mapping)

    def save_extra_keys(self, provider_id: str, keys: list[str]) -> None:
        mapping = self._mapping(provider_id)
        if mapping is None:
            return
        clean = [k.strip() for k in keys if k and k.strip()]
        self._store.set_list(mapping.extra, clean)
        logger.info("Saved %d extra key(s) for %s", len(clean), provider_id)

    def add_extra_key(self, provider_id: str, key: str) -> None:
        keys = self.get_extra_keys(provider_id)
        trimmed = key.strip()
        if trimmed and trimmed not in keys:
            keys.append(trimmed)
            self.save_extra_keys(provider_id, keys)

    def remove_extra_key(self, provider_id: str, index: int) -> None:
        keys = self.get_extra_keys(provider_id)
        if 0 <= index < len(keys):
            del keys[index]
            self.save_extra_keys(provider_id, keys)

    def has_multiple_keys(self, provider_id: str) -> bool:
        return len(self.get_all_keys(provider_id)) > 1

    def get_key_count(self, provider_id: str) -> int:
        return len(self.get_all_keys(provider_id))

    # ==================== Rotation ====================

    def _state(self, provider_id: str, key_count: int) -> RotationState:
        state = self._states.get(str(provider_id).lower())
        # Keys may have been removed since the index was last set
        if state.current_index >= key_count:
            state.current_index = 0
        return state

    def _is_available(self, state: RotationState, key: str, now: float) -> bool:
        failed_at = state.failed_keys.get(key)
        return failed_at is None or now - failed_at > self.get_failed_key_cooldown()

    def get_current_key(self, provider_id: str) -> str:
        """Return the key to use now, skipping keys still in cooldown.

        The index snaps onto the first usable key at or after the current
        position. If every key is cooling down, the key at the current index
        is returned anyway.
        """
        keys = self.get_all_keys(provider_id)
        if not keys:
            return ""

        state = self._state(provider_id, len(keys))
        now = self._clock()

        for offset in range(len(keys)):
            index = (state.current_index + offset) % len(keys)
            if self._is_available(state, keys[index], now):
                if offset != 0:
                    state.current_index = index
                return keys[index]

        return keys[state.current_index]

    def get_current_key_masked(self, provider_id: str) -> str:
        return mask_key(self.get_current_key(provider_id))

    def advance_to_next_key(self, provider_id: str) -> None:
        """Move to the next key after a successful call (equal-weight rotation)."""
        keys = self.get_all_keys(provider_id)
        if len(keys) <= 1:
            return

        state = self._state(provider_id, len(keys))
        state.current_index = (state.current_index + 1) % len(keys)
        state.success_count += 1
        logger.debug(
            "Advanced %s to key %d/%d after success",
            provider_id,
            state.current_index + 1,
            len(keys),
        )

    def rotate_to_next_key(self, provider_id: str) -> bool:
        """Mark the current key failed and move to the next usable one.

        Returns:
            True if another key outside its cooldown was found, False when
            every other key is cooling down (the index is left unchanged).
        """
        keys = self.get_all_keys(provider_id)
        if len(keys) <= 1:
            return False

        state = self._state(provider_id, len(keys))
        now = self._clock()
        start_index = state.current_index
        state.failed_keys[keys[start_index]] = now

        for offset in range(1, len(keys)):
            index = (start_index + offset) % len(keys)
            if self._is_available(state, keys[index], now):
                state.current_index = index
                logger.info(
                    "Rotated %s to key %d/%d (%s) after failure",
                    provider_id,
                    index + 1,
                    len(keys),
                    mask_key(keys[index]),
                )
                return True

        logger.warning("All %d keys for %s are cooling down; cannot rotate", len(keys), provider_id)
        return False

    def reset_rotation(self, provider_id: str) -> None:
        """Forget the provider's rotation state (explicit operator action)."""
        self._states.reset(str(provider_id).lower())
        logger.info("Reset key rotation for %s", provider_id)

    def rotation_state(self, provider_id: str) -> RotationState:
        """Expose the provider's state for diagnostics."""
        return self._states.get(str(provider_id).lower())
