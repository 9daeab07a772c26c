"""task_dispatch.task_environment — Environment contract of the launched task.

The container started by the dispatcher receives:

    EVENT_PAYLOAD   JSON text of the event detail (per-invocation override)
    EVENT_TYPE      event detail-type, or "Unknown" (per-invocation override)
    PG_HOST         database endpoint (task definition)
    PG_USER         database user (task definition)
    PG_DB           database name (task definition)
    PG_PORT         database port, default 5432 (task definition)
    PG_PASSWORD     injected by ECS from Secrets Manager at task start

The dispatcher never reads or transmits PG_PASSWORD; only the task does.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from task_dispatch.config import ENV_EVENT_PAYLOAD, ENV_EVENT_TYPE, UNKNOWN_EVENT_TYPE
from task_dispatch.errors import ConfigurationError, SerializationError

__all__ = ["DEFAULT_PG_PORT", "TaskEnvironment"]

DEFAULT_PG_PORT = 5432


@dataclass(frozen=True)
class TaskEnvironment:
    event_type: str
    event_payload: str
    pg_host: str
    pg_user: str
    pg_db: str
    pg_port: int = DEFAULT_PG_PORT
    pg_password: str = field(default="", repr=False)

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "TaskEnvironment":
        env = os.environ if environ is None else environ
        missing = [
            name
            for name in ("PG_HOST", "PG_USER", "PG_DB", "PG_PASSWORD")
            if not (env.get(name) or "").strip()
        ]
        if missing:
            raise ConfigurationError(f"Task environment missing: {', '.join(missing)}")

        raw_port = (env.get("PG_PORT") or "").strip() or str(DEFAULT_PG_PORT)
        try:
            port = int(raw_port)
        except ValueError as exc:
            raise ConfigurationError(f"PG_PORT must be an integer, got {raw_port!r}") from exc

        return cls(
            event_type=env.get(ENV_EVENT_TYPE) or UNKNOWN_EVENT_TYPE,
            event_payload=env.get(ENV_EVENT_PAYLOAD) or "null",
            pg_host=env["PG_HOST"].strip(),
            pg_user=env["PG_USER"].strip(),
            pg_db=env["PG_DB"].strip(),
            pg_port=port,
            pg_password=env["PG_PASSWORD"],
        )

    def detail(self) -> Any:
        """Decode EVENT_PAYLOAD back into the original event detail."""
        try:
            return json.loads(self.event_payload)
        except json.JSONDecodeError as exc:
            raise SerializationError(f"EVENT_PAYLOAD is not valid JSON: {exc}") from exc

    def connection_params(self) -> Dict[str, Any]:
        """Keyword arguments accepted by PostgreSQL drivers (psycopg, asyncpg)."""
        return {
            "host": self.pg_host,
            "port": self.pg_port,
            "user": self.pg_user,
            "password": self.pg_password,
            "dbname": self.pg_db,
        }

    def describe(self) -> Dict[str, Any]:
        """Loggable summary; the password is never included."""
        return {
            "event_type": self.event_type,
            "payload_bytes": len(self.event_payload.encode("utf-8")),
            "pg_host": self.pg_host,
            "pg_port": self.pg_port,
            "pg_user": self.pg_user,
            "pg_db": self.pg_db,
        }
