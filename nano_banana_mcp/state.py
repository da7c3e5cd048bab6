"""Process-wide configuration and session state.

``SessionStore`` is the single owner of the live :class:`Configuration`, its
:class:`ConfigSource`, and the :class:`SessionState` pointer to the last
persisted image. Access rules:

- Every read and every replacement happens under one lock, so readers always
  see a whole configuration, never a half-replaced one.
- Generation calls take one configuration snapshot at call start. A
  ``configure_gemini_token`` call that lands while a generation is in flight
  affects only calls that start after it.
- ``record_image`` is last-write-wins by write completion order; there is
  no ordering tied to when the producing call started.

Writes to ``last_image_path`` come from worker threads (image persistence
runs under ``asyncio.to_thread``), hence a ``threading.Lock`` rather than an
``asyncio.Lock``.
"""

from __future__ import annotations

import os
import threading

from loguru import logger
from pydantic import ValidationError

from .exceptions import InvalidArgumentsError, NotConfiguredError
from .schema import Configuration, ConfigurationStatus, SessionState
from .settings import Settings
from .shard.enums import ConfigSource


def _first_error_message(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    return errors[0].get("msg", str(exc))


class SessionStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._configuration: Configuration | None = None
        self._source = ConfigSource.UNSET
        self._session = SessionState()
        self._env_workplace: str | None = None

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------
    def load_from_environment(self, settings: Settings) -> None:
        """Adopt the environment credential, if valid. Run once at startup."""
        with self._lock:
            self._env_workplace = settings.workplace_path
        try:
            configuration = Configuration(credential=settings.gemini_api_key or "", workplace_path=settings.workplace_path)
        except ValidationError:
            logger.info("No valid Gemini API key in the environment; waiting for configure_gemini_token")
            with self._lock:
                self._source = ConfigSource.UNSET
            return

        with self._lock:
            self._configuration = configuration
            self._source = ConfigSource.ENVIRONMENT
        logger.info("Gemini API key loaded from environment")

    def set_from_call(self, credential: str) -> Configuration:
        """Replace the live configuration, keeping any configured workplace path.

        When nothing was configured yet, the workplace from the environment (if
        any) still applies even though the environment had no valid credential.
        """
        with self._lock:
            workplace = self._configuration.workplace_path if self._configuration else self._env_workplace
            try:
                configuration = Configuration(credential=credential, workplace_path=workplace)
            except ValidationError as e:
                raise InvalidArgumentsError(f"Invalid API key: {_first_error_message(e)}") from e
            self._configuration = configuration
            self._source = ConfigSource.EXPLICIT_CALL
        logger.info("Gemini API key configured via tool call")
        return configuration

    @property
    def configuration(self) -> Configuration | None:
        with self._lock:
            return self._configuration

    @property
    def is_configured(self) -> bool:
        return self.configuration is not None

    def require_configuration(self) -> Configuration:
        """Return the configuration snapshot for one call, or raise NotConfiguredError."""
        configuration = self.configuration
        if configuration is None:
            raise NotConfiguredError()
        return configuration

    def status(self) -> ConfigurationStatus:
        with self._lock:
            configuration = self._configuration
            source = self._source
        custom = bool(configuration and configuration.workplace_path)
        return ConfigurationStatus(
            configured=configuration is not None,
            source=source,
            workplace_path=effective_workplace(configuration),
            custom_workplace=custom,
        )

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------
    @property
    def last_image_path(self) -> str | None:
        with self._lock:
            return self._session.last_image_path

    def record_image(self, path: str) -> None:
        with self._lock:
            self._session = SessionState(last_image_path=path)


def effective_workplace(configuration: Configuration | None) -> str:
    """Configured workplace path, or the process working directory."""
    if configuration and configuration.workplace_path:
        return configuration.workplace_path
    return os.getcwd()


__all__ = ["SessionStore", "effective_workplace"]
