"""
Runtime settings — the live/fallback toggle and the reasoning credential.

The store holds a single immutable RuntimeConfig. Updates build a new config
and swap the reference, so a reader always sees one consistent snapshot and
the next check picks up the change without a restart.
"""

import logging
from dataclasses import dataclass, replace

from dresscode.config import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuntimeConfig:
    api_key: str = ""
    use_fallback: bool = False

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key)

    @property
    def use_live_backend(self) -> bool:
        return self.has_credential and not self.use_fallback


class RuntimeSettingsStore:
    def __init__(self, initial: RuntimeConfig | None = None):
        self._config = initial or RuntimeConfig()

    @classmethod
    def from_settings(cls, settings: Settings) -> "RuntimeSettingsStore":
        return cls(RuntimeConfig(api_key=settings.openai_api_key, use_fallback=settings.use_fallback))

    def current(self) -> RuntimeConfig:
        return self._config

    def update(self, *, api_key: str | None = None, use_fallback: bool | None = None) -> RuntimeConfig:
        changes: dict = {}
        if api_key is not None:
            changes["api_key"] = api_key
        if use_fallback is not None:
            changes["use_fallback"] = use_fallback
        new_config = replace(self._config, **changes)
        self._config = new_config
        logger.info(
            "Runtime settings updated: has_credential=%s use_fallback=%s",
            new_config.has_credential, new_config.use_fallback,
        )
        return new_config
