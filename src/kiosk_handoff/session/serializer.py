"""Session serialization with schema versioning.

Supports JSON and YAML round-trips in the camelCase wire shape.  The
schema version is embedded in every document so that future readers can
perform migrations.

Classes
-------
- SchemaVersionError  — unsupported ``schemaVersion`` on load
- SessionSerializer   — serialize/deserialize ShoppingSession to JSON or YAML
"""
from __future__ import annotations

import json
from typing import Any, Literal

import yaml

from kiosk_handoff.session.state import ShoppingSession

_SUPPORTED_SCHEMA_VERSIONS: frozenset[str] = frozenset({"1.0"})


class SchemaVersionError(ValueError):
    """Raised when a serialised document uses an unsupported schema version."""

    def __init__(self, version: str) -> None:
        self.version = version
        supported = ", ".join(sorted(_SUPPORTED_SCHEMA_VERSIONS))
        super().__init__(
            f"Unsupported schema version {version!r}. "
            f"Supported versions: {supported}"
        )


class SessionSerializer:
    """Serialize and deserialize ``ShoppingSession`` objects.

    Documents written before versioning was introduced carry no
    ``schemaVersion`` and are read as version ``1.0``.
    """

    # ------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------

    def to_json(self, session: ShoppingSession, *, indent: int | None = None) -> str:
        """Serialise a ``ShoppingSession`` to a JSON string.

        Parameters
        ----------
        session:
            The session to serialise.
        indent:
            JSON indentation level; compact output when None.
        """
        return json.dumps(session.to_wire(), indent=indent)

    def from_json(self, raw: str) -> ShoppingSession:
        """Deserialize a ``ShoppingSession`` from a JSON string.

        Raises
        ------
        SchemaVersionError
            If the ``schemaVersion`` field is not in the supported set.
        json.JSONDecodeError
            If ``raw`` is not valid JSON.
        pydantic.ValidationError
            If the document does not describe a valid session.
        """
        data: dict[str, Any] = json.loads(raw)
        return self._deserialize(data)

    # ------------------------------------------------------------------
    # YAML
    # ------------------------------------------------------------------

    def to_yaml(self, session: ShoppingSession) -> str:
        """Serialise a ``ShoppingSession`` to a YAML string."""
        return yaml.dump(
            session.to_wire(), default_flow_style=False, allow_unicode=True, sort_keys=True
        )

    def from_yaml(self, raw: str) -> ShoppingSession:
        """Deserialize a ``ShoppingSession`` from a YAML string."""
        data: dict[str, Any] = yaml.safe_load(raw)
        return self._deserialize(data)

    # ------------------------------------------------------------------
    # Format dispatch
    # ------------------------------------------------------------------

    def serialize(
        self, session: ShoppingSession, format: Literal["json", "yaml"] = "json"
    ) -> str:
        if format == "yaml":
            return self.to_yaml(session)
        return self.to_json(session)

    def deserialize(
        self, raw: str, format: Literal["json", "yaml"] = "json"
    ) -> ShoppingSession:
        if format == "yaml":
            return self.from_yaml(raw)
        return self.from_json(raw)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _deserialize(self, data: dict[str, Any]) -> ShoppingSession:
        if not isinstance(data, dict):
            raise ValueError("Session document must be a mapping.")
        version = str(
            data.get("schemaVersion", data.get("schema_version"))
            or ShoppingSession.SCHEMA_VERSION
        )
        if version not in _SUPPORTED_SCHEMA_VERSIONS:
            raise SchemaVersionError(version)
        return ShoppingSession.model_validate(data)


__all__ = ["SchemaVersionError", "SessionSerializer"]
