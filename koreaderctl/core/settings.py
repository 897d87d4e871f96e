"""YAML-backed settings store for the reader endpoint and button mapping."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from collections.abc import Callable, Mapping
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from koreaderctl.core.endpoint import DEFAULT_ENDPOINT, parse_endpoint
from koreaderctl.core.errors import SettingsUnavailableError
from koreaderctl.core.model import Endpoint

LOGGER = logging.getLogger(__name__)

SETTINGS_ENV = "KOREADERCTL_SETTINGS"

EndpointListener = Callable[[Endpoint], None]


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise SettingsUnavailableError(f"Duplicate key '{key}' in settings file")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


def _load_schema_validator() -> Any:
    schema_text = resources.files("koreaderctl.schemas").joinpath("settings.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def settings_path() -> Path:
    override = os.environ.get(SETTINGS_ENV)
    if override:
        return Path(override)
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "koreaderctl" / "settings.yaml"


class SettingsStore:
    """Persists the reader endpoint and exposes it as an observable value.

    An unreadable or missing file yields the defaults (192.168.1.100:8080).
    A file that exists but is malformed raises `SettingsUnavailableError`.
    """

    def __init__(self, path: Path | None = None) -> None:
        self.path = path or settings_path()
        self._endpoint = DEFAULT_ENDPOINT
        self._signature: tuple[int, int, int] | None = None
        self._lock = threading.Lock()
        self._listeners: list[EndpointListener] = []

    def load(self) -> Endpoint:
        self._signature = self._file_signature()
        doc = self._read_document()
        endpoint = Endpoint(
            host=doc.get("host", DEFAULT_ENDPOINT.host),
            port=doc.get("port", DEFAULT_ENDPOINT.port),
        )
        self._set_endpoint(endpoint)
        return endpoint

    def current(self) -> Endpoint:
        """Return the endpoint, reloading first if the file changed on disk.

        Another process (for example `koreaderctl config set`) may rewrite the
        file while an engine is running. A rewrite that fails to parse keeps
        the last good endpoint.
        """
        if self._file_signature() != self._signature:
            try:
                self.load()
            except SettingsUnavailableError as exc:
                LOGGER.warning("Ignoring changed settings file, keeping %s: %s", self._endpoint, exc)
        return self._endpoint

    def save(self, host: str, port: int | str) -> Endpoint:
        endpoint = parse_endpoint(host, port)
        doc = self._read_document()
        doc["host"] = endpoint.host
        doc["port"] = endpoint.port
        self._write_document(doc)
        self._signature = self._file_signature()
        self._set_endpoint(endpoint)
        return endpoint

    def load_buttons(self) -> dict[str, str | None]:
        return dict(self._read_document().get("buttons") or {})

    def save_buttons(self, buttons: Mapping[str, str | None]) -> None:
        doc = self._read_document()
        doc["buttons"] = dict(buttons)
        self._write_document(doc)

    def subscribe(self, listener: EndpointListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _set_endpoint(self, endpoint: Endpoint) -> None:
        with self._lock:
            changed = endpoint != self._endpoint
            self._endpoint = endpoint
        if not changed:
            return
        LOGGER.debug("Endpoint changed to %s", endpoint)
        for listener in list(self._listeners):
            try:
                listener(endpoint)
            except Exception:
                LOGGER.exception("Settings listener %r failed", listener)

    def _file_signature(self) -> tuple[int, int, int] | None:
        try:
            stat = self.path.stat()
        except OSError:
            return None
        return stat.st_mtime_ns, stat.st_size, stat.st_ino

    def _read_document(self) -> dict[str, Any]:
        try:
            content = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            LOGGER.warning("Could not read settings file %s, using defaults: %s", self.path, exc)
            return {}

        try:
            loaded = yaml.load(content, Loader=UniqueKeyLoader)
        except yaml.YAMLError as exc:
            raise SettingsUnavailableError(f"Invalid YAML in {self.path}: {exc}") from exc

        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            raise SettingsUnavailableError(f"Settings file {self.path} must contain a mapping at root")

        try:
            _load_schema_validator().validate(loaded)
        except ValidationError as exc:
            path = ".".join(str(p) for p in exc.path)
            where = f" ({path})" if path else ""
            raise SettingsUnavailableError(
                f"Schema validation failed for {self.path}{where}: {exc.message}"
            ) from exc
        return loaded

    def _write_document(self, doc: dict[str, Any]) -> None:
        text = yaml.safe_dump(doc, sort_keys=False, default_flow_style=False)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", dir=self.path.parent, text=True
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(text)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise SettingsUnavailableError(f"Could not write settings file {self.path}: {exc}") from exc
