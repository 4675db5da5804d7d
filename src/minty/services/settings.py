"""User settings for the linter: defaults, the on-disk JSON file and overrides.

Load order is file, then command-line overrides, then ``MINTY_*`` environment
variables. The API key never reaches disk in clear text; it is stored as a
Fernet token next to a per-store key file.
"""

from __future__ import annotations

import json
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

from cryptography.fernet import Fernet, InvalidToken

from ..ai.client import ClientSettings
from ..ai.orchestration.types import ConversationConfig
from ..diagnostics.mapper import LinePolicy

__all__ = [
    "Settings",
    "SettingsStore",
    "SecretVault",
    "SecretProvider",
    "FernetSecretProvider",
    "redact_secret",
]

LOGGER = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".minty"
FORMAT_VERSION = 1
CIPHERTEXT_KEY = "api_key_ciphertext"


def _as_bool(raw: str) -> bool:
    return raw.strip().lower() in {"1", "true", "yes", "on", "debug"}


def _as_int(raw: str) -> int:
    return int(raw, 10)


# Environment variable -> (settings field, converter)
ENVIRONMENT: Mapping[str, tuple[str, Callable[[str], Any]]] = {
    "MINTY_API_KEY": ("api_key", str),
    "MINTY_BASE_URL": ("base_url", str),
    "MINTY_MODEL": ("model", str),
    "MINTY_ORGANIZATION": ("organization", str),
    "MINTY_LINE_POLICY": ("line_policy", str),
    "MINTY_DEBUG_LOGGING": ("debug_logging", _as_bool),
    "MINTY_REQUEST_TIMEOUT": ("request_timeout", float),
    "MINTY_TEMPERATURE": ("temperature", float),
    "MINTY_TOOL_TIMEOUT": ("tool_timeout", float),
    "MINTY_MAX_TOOL_ITERATIONS": ("max_tool_iterations", _as_int),
    "MINTY_MAX_ATTEMPTS": ("max_attempts", _as_int),
}


@dataclass(slots=True)
class Settings:
    """Everything a lint run can be configured with."""

    base_url: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o"
    temperature: float = 0.1
    organization: str | None = None
    request_timeout: float = 90.0
    max_attempts: int = 1
    retry_min_seconds: float = 0.5
    retry_max_seconds: float = 6.0
    max_tool_iterations: int = 8
    tool_timeout: float = 30.0
    line_policy: str = LinePolicy.SKIP.value
    debug_logging: bool = False
    default_headers: dict[str, str] = field(default_factory=dict)

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key and self.api_key.strip())

    def to_client_settings(self) -> ClientSettings:
        return ClientSettings(
            api_key=self.api_key,
            model=self.model,
            base_url=self.base_url or None,
            organization=self.organization,
            request_timeout=self.request_timeout,
            max_attempts=self.max_attempts,
            retry_min_seconds=self.retry_min_seconds,
            retry_max_seconds=self.retry_max_seconds,
            default_headers=dict(self.default_headers),
            debug_logging=self.debug_logging,
        )

    def to_conversation_config(self) -> ConversationConfig:
        return ConversationConfig(
            max_iterations=self.max_tool_iterations,
            temperature=self.temperature,
            tool_timeout_seconds=self.tool_timeout,
            model_name=self.model,
        )

    def sanitized(self) -> Settings:
        """Clamp counters to at least one and map unknown line policies to ``skip``."""
        try:
            policy = LinePolicy.coerce(self.line_policy).value
        except ValueError:
            LOGGER.warning("Unknown line_policy %r; using %s", self.line_policy, LinePolicy.SKIP.value)
            policy = LinePolicy.SKIP.value
        return replace(
            self,
            line_policy=policy,
            max_tool_iterations=max(1, self.max_tool_iterations),
            max_attempts=max(1, self.max_attempts),
        )


class SecretProvider(ABC):
    """Reversible encoding for secrets kept in the settings file."""

    name: str = "unknown"

    @abstractmethod
    def encrypt(self, secret: str) -> str:
        ...

    @abstractmethod
    def decrypt(self, token: str) -> str:
        ...


class FernetSecretProvider(SecretProvider):
    """Fernet encryption with a key file created on first use."""

    name = "fernet"

    def __init__(self, key_path: Path) -> None:
        self.key_path = key_path
        self._cipher: Fernet | None = None

    def encrypt(self, secret: str) -> str:
        return self._fernet().encrypt(secret.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        return self._fernet().decrypt(token.encode("ascii")).decode("utf-8")

    def _fernet(self) -> Fernet:
        if self._cipher is None:
            self._cipher = Fernet(self._key())
        return self._cipher

    def _key(self) -> bytes:
        if self.key_path.exists():
            return self.key_path.read_bytes().strip()
        self.key_path.parent.mkdir(parents=True, exist_ok=True)
        key = Fernet.generate_key()
        staging = self.key_path.with_suffix(".tmp")
        staging.write_bytes(key)
        if os.name != "nt":  # pragma: no cover - POSIX only
            staging.chmod(0o600)
        staging.replace(self.key_path)
        LOGGER.debug("Created secret key at %s", self.key_path)
        return key


class SecretVault:
    """Tags stored secrets with the provider that produced them.

    Tokens look like ``fernet:<payload>``; a token with another tag is
    ignored rather than fed to the wrong provider.
    """

    def __init__(self, *, key_path: Path | None = None, provider: SecretProvider | None = None) -> None:
        self._provider = provider or FernetSecretProvider(key_path or CONFIG_DIR / "settings.key")

    @property
    def strategy(self) -> str:
        return self._provider.name

    def encrypt(self, secret: str) -> str:
        if not secret:
            return ""
        return f"{self.strategy}:{self._provider.encrypt(secret)}"

    def decrypt(self, token: str | None) -> str:
        """Return the plaintext for ``token``.

        Raises:
            ValueError: If the payload cannot be decrypted with this vault's key.
        """
        if not token:
            return ""
        tag, sep, payload = token.partition(":")
        if not sep:
            tag, payload = self.strategy, token
        if tag and tag != self.strategy:
            LOGGER.warning("Stored secret uses unknown backend %r; ignoring it", tag)
            return ""
        try:
            return self._provider.decrypt(payload)
        except InvalidToken as exc:
            raise ValueError("Invalid Fernet token") from exc


class SettingsStore:
    """Reads and writes :class:`Settings` as JSON at ``path``."""

    def __init__(self, path: Path | None = None, *, vault: SecretVault | None = None) -> None:
        self.path = path or CONFIG_DIR / "settings.json"
        self.vault = vault or SecretVault(key_path=self.path.with_suffix(".key"))

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Return the effective settings.

        A plaintext ``api_key`` or an older format version in the file causes
        the file to be rewritten in the current format.
        """
        raw = self._read()
        settings, legacy = self._decode(raw)
        if raw and (legacy or raw.get("version") != FORMAT_VERSION):
            try:
                self.save(settings)
            except OSError as exc:  # pragma: no cover - read-only home
                LOGGER.warning("Could not upgrade settings file %s: %s", self.path, exc)

        if overrides:
            settings = _merge(settings, overrides, origin="command line")
        settings = _merge(settings, _environment(), origin="environment")
        return settings.sanitized()

    def save(self, settings: Settings) -> Path:
        document = asdict(settings)
        secret = document.pop("api_key") or ""
        if secret:
            document[CIPHERTEXT_KEY] = self.vault.encrypt(secret)
        document["version"] = FORMAT_VERSION
        document["secret_backend"] = self.vault.strategy

        self.path.parent.mkdir(parents=True, exist_ok=True)
        staging = self.path.with_suffix(".tmp")
        staging.write_text(json.dumps(document, indent=2, sort_keys=True), encoding="utf-8")
        staging.replace(self.path)
        LOGGER.debug("Wrote settings to %s", self.path)
        return self.path

    def set_api_key(self, api_key: str) -> Settings:
        """Store a new key; other persisted fields and the environment are left alone."""
        settings, _ = self._decode(self._read())
        settings = replace(settings, api_key=(api_key or "").strip())
        self.save(settings)
        LOGGER.info("API key stored (%s)", redact_secret(settings.api_key))
        return settings

    def clear_api_key(self) -> Settings:
        settings, _ = self._decode(self._read())
        settings = replace(settings, api_key="")
        self.save(settings)
        LOGGER.info("API key cleared")
        return settings

    def _read(self) -> Dict[str, Any]:
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Ignoring settings file %s: %s", self.path, exc)
            return {}
        if not isinstance(raw, dict):
            LOGGER.warning("Ignoring settings file %s: top level is not an object", self.path)
            return {}
        return raw

    def _decode(self, raw: Mapping[str, Any]) -> tuple[Settings, bool]:
        """Build settings from a file payload; the flag marks a plaintext key."""
        known = {f.name for f in fields(Settings)} - {"api_key"}
        try:
            settings = Settings(**{key: value for key, value in raw.items() if key in known})
        except TypeError as exc:
            LOGGER.warning("Settings file %s has unusable values: %s", self.path, exc)
            settings = Settings()

        api_key, legacy = "", False
        if raw.get(CIPHERTEXT_KEY):
            try:
                api_key = self.vault.decrypt(raw[CIPHERTEXT_KEY])
            except ValueError as exc:
                LOGGER.warning("Unable to decrypt API key: %s", exc)
        elif raw.get("api_key"):
            LOGGER.info("Found a plaintext API key; it will be encrypted")
            api_key, legacy = raw["api_key"], True
        return replace(settings, api_key=api_key), legacy


def _environment() -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for variable, (name, convert) in ENVIRONMENT.items():
        raw = os.environ.get(variable)
        if raw is None:
            continue
        try:
            values[name] = convert(raw)
        except ValueError:
            LOGGER.warning("Ignoring %s=%r: not a valid value for %s", variable, raw, name)
    return values


def _merge(settings: Settings, updates: Mapping[str, Any], *, origin: str) -> Settings:
    """Apply ``updates``; ``None`` only clears fields whose default is ``None``."""
    nullable = {f.name: f.default is None for f in fields(Settings)}
    accepted = {
        key: value
        for key, value in updates.items()
        if key in nullable and (value is not None or nullable[key])
    }
    if not accepted:
        return settings
    if isinstance(accepted.get("default_headers"), Mapping):
        accepted["default_headers"] = {**settings.default_headers, **accepted["default_headers"]}
    LOGGER.debug("Applying %s overrides: %s", origin, sorted(accepted))
    return replace(settings, **accepted)


def redact_secret(value: str) -> str:
    """Mask all but the first and last two characters of ``value``."""
    secret = (value or "").strip()
    if len(secret) <= 4:
        return "*" * len(secret)
    return secret[:2] + "*" * (len(secret) - 4) + secret[-2:]
