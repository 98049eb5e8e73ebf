"""Workspace configuration access by dotted key (``settings.maxParallelJobs``)."""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from agent_fleet.errors import NotFoundError, PreconditionFailed
from agent_fleet.models import GitFlowPolicy, WorkspaceConfig
from agent_fleet.store import WorkspaceStore


logger = logging.getLogger(__name__)

SETTABLE_KEYS: tuple[str, ...] = (
    'settings.autoSync',
    'settings.logLevel',
    'settings.parallelExecution',
    'settings.maxParallelJobs',
    *(f'gitFlow.{field.alias}' for field in GitFlowPolicy.model_fields.values()),
)


def parse_value(raw: str) -> Any:
    """Parse *raw* as JSON, keeping it as a plain string when that fails."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def get_nested(data: dict[str, Any], key: str) -> Any:
    node: Any = data
    for part in key.split('.'):
        if not isinstance(node, dict) or part not in node:
            raise NotFoundError(f'Configuration key not found: {key}')
        node = node[part]
    return node


def set_nested(data: dict[str, Any], key: str, value: Any) -> None:
    parts = key.split('.')
    node = data
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def as_dict(store: WorkspaceStore) -> dict[str, Any]:
    return store.load_config().to_document()


def get_value(store: WorkspaceStore, key: str) -> Any:
    return get_nested(as_dict(store), key)


def set_value(store: WorkspaceStore, key: str, raw: str, *, force: bool = False) -> Any:
    """Set *key* to the parsed *raw* value and return it.

    Unknown keys require ``force``; the resulting document is re-validated so e.g.
    ``settings.maxParallelJobs=0`` is rejected.
    """
    if key not in SETTABLE_KEYS and not force:
        raise PreconditionFailed(
            f'Invalid configuration key: {key}',
            hint=f'Valid keys: {", ".join(SETTABLE_KEYS)}. Use --force to set custom keys.',
        )
    value = parse_value(raw)
    with store.locked_config() as config:
        document = config.to_document()
        set_nested(document, key, value)
        try:
            updated = WorkspaceConfig.model_validate(document)
        except ValidationError as exc:
            raise PreconditionFailed(f'Invalid value for {key}: {exc.errors()[0]["msg"]}') from exc
        for name in WorkspaceConfig.model_fields:
            setattr(config, name, getattr(updated, name))
        for name, extra in (updated.model_extra or {}).items():
            setattr(config, name, extra)
    logger.info('Configuration updated: %s = %r', key, value)
    return value


def reset(store: WorkspaceStore) -> WorkspaceConfig:
    """Restore default settings and git flow policy, keeping the current project."""
    with store.locked_config() as config:
        defaults = WorkspaceConfig(current_project=config.current_project, created=config.created)
        config.settings = defaults.settings
        config.git_flow = defaults.git_flow
        for name in list(config.model_extra or {}):
            delattr(config, name)
    return store.load_config()
