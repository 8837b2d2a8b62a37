"""
Configuration Store Service

YAML collections (integrations, projects, environments, mappings) under the
config directory, and flow-editor documents as one JSON file per flow under
the flows directory. Every write goes to "<file>.tmp" first and is then
renamed over the target, so a crash never leaves a half-written file.
"""
import json
import logging
import os
import re
from typing import Any, Dict, List, Optional, Type, TypeVar

import yaml
from pydantic import BaseModel, ValidationError

from opsflow.models.schemas import (
    Environment,
    Flow,
    FlowMetadata,
    Integration,
    Mapping,
    Project,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

# collection name -> (file name, model)
COLLECTIONS: Dict[str, tuple] = {
    "projects": ("projects.yaml", Project),
    "environments": ("environments.yaml", Environment),
    "integrations": ("integrations.yaml", Integration),
    "mappings": ("mappings.yaml", Mapping),
}

MAX_FLOW_ID_LENGTH = 100
MAX_FLOW_NAME_LENGTH = 200
_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9_-]")


class ConfigStoreError(Exception):
    """Reading or writing a configuration file failed"""
    status_code = 500


class InvalidConfigError(ConfigStoreError):
    """Rejected input (bad flow id or name, unknown collection)"""
    status_code = 400


class FlowNotFoundError(ConfigStoreError):
    status_code = 404


def validate_string_input(value: str, max_length: int, field: str) -> None:
    if not value or not value.strip():
        raise InvalidConfigError(f"{field} cannot be empty")
    if len(value) > max_length:
        raise InvalidConfigError(f"{field} exceeds maximum length of {max_length} characters")


def sanitize_flow_id(flow_id: str) -> str:
    """Validated flow id reduced to [A-Za-z0-9_-] so it is safe as a file name"""
    validate_string_input(flow_id, MAX_FLOW_ID_LENGTH, "Flow ID")
    sanitized = _UNSAFE_ID_CHARS.sub("", flow_id)
    if not sanitized:
        raise InvalidConfigError("Flow ID cannot be empty")
    return sanitized


def atomic_write(path: str, content: str) -> None:
    """Write to '<path>.tmp' and rename over path; the temp file never outlives a failure"""
    tmp_path = f"{path}.tmp"
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(content)
    except OSError as e:
        raise ConfigStoreError(f"Failed to write config file: {e}")
    try:
        os.replace(tmp_path, path)
    except OSError as rename_err:
        try:
            os.remove(tmp_path)
        except OSError as remove_err:
            logger.warning(f"Failed to remove temp file after rename failure: {remove_err}")
        raise ConfigStoreError(f"Failed to finalize config file: {rename_err}")


class ConfigStore:
    """On-disk configuration for integrations, projects, environments, mappings and flows."""

    def __init__(self, config_dir: str, flows_dir: str):
        self.config_dir = os.path.expanduser(config_dir)
        self.flows_dir = os.path.expanduser(flows_dir)

    def _ensure_dir(self, path: str) -> str:
        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise ConfigStoreError(f"Failed to create directory {path}: {e}")
        return path

    # ------------------------------------------------------------------
    # YAML collections
    # ------------------------------------------------------------------

    def _collection(self, name: str) -> tuple:
        if name not in COLLECTIONS:
            raise InvalidConfigError(f"Unknown configuration collection: {name}")
        file_name, model = COLLECTIONS[name]
        return os.path.join(self.config_dir, file_name), model

    def load(self, name: str) -> List[BaseModel]:
        """All items of a collection; a missing file is an empty collection"""
        path, model = self._collection(name)
        return self._load_yaml(path, model)

    def save(self, name: str, items: List[BaseModel]) -> None:
        path, model = self._collection(name)
        self._ensure_dir(self.config_dir)
        data = [model.model_validate(item).model_dump(mode="json", by_alias=True) for item in items]
        atomic_write(path, yaml.safe_dump(data, sort_keys=False, allow_unicode=True))
        logger.info(f"Saved {len(items)} {name} to {path}")

    def _load_yaml(self, path: str, model: Type[T]) -> List[T]:
        if not os.path.exists(path):
            logger.debug(f"Config file {path} does not exist, returning empty list")
            return []
        try:
            with open(path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigStoreError(f"Failed to read config file: {e}")
        except yaml.YAMLError as e:
            raise ConfigStoreError(f"Failed to parse config file: {e}")

        if data is None:
            return []
        if not isinstance(data, list):
            raise ConfigStoreError(f"Failed to parse config file {path}: expected a list")
        try:
            items = [model.model_validate(item) for item in data]
        except ValidationError as e:
            raise ConfigStoreError(f"Failed to parse config file {path}: {e}")
        logger.debug(f"Successfully loaded {len(items)} items from {path}")
        return items

    # Typed shortcuts

    def load_integrations(self) -> List[Integration]:
        return self.load("integrations")

    def get_integration(self, integration_id: str) -> Optional[Integration]:
        for integration in self.load_integrations():
            if integration.id == integration_id:
                return integration
        return None

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------

    def _flow_path(self, flow_id: str) -> str:
        return os.path.join(self.flows_dir, f"{sanitize_flow_id(flow_id)}.json")

    def list_flows(self) -> List[FlowMetadata]:
        """Metadata of every readable flow, most recently updated first"""
        if not os.path.isdir(self.flows_dir):
            return []
        flows = []
        for entry in sorted(os.listdir(self.flows_dir)):
            if not entry.endswith(".json"):
                continue
            path = os.path.join(self.flows_dir, entry)
            try:
                with open(path, encoding="utf-8") as f:
                    flow = Flow.model_validate(json.load(f))
            except OSError as e:
                logger.warning(f"Failed to read flow file {path}: {e}")
                continue
            except (ValueError, ValidationError) as e:
                logger.warning(f"Failed to parse flow file {path}: {e}")
                continue
            flows.append(
                FlowMetadata(
                    id=flow.id,
                    name=flow.name,
                    created_at=flow.created_at,
                    updated_at=flow.updated_at,
                )
            )
        flows.sort(key=lambda f: f.updated_at, reverse=True)
        logger.info(f"Loaded {len(flows)} flows")
        return flows

    def load_flow(self, flow_id: str) -> Flow:
        path = self._flow_path(flow_id)
        if not os.path.exists(path):
            raise FlowNotFoundError(f"Flow not found: {flow_id}")
        try:
            with open(path, encoding="utf-8") as f:
                data: Any = json.load(f)
        except OSError as e:
            raise ConfigStoreError(f"Failed to read flow file: {e}")
        except ValueError as e:
            raise ConfigStoreError(f"Failed to parse flow: {e}")
        try:
            return Flow.model_validate(data)
        except ValidationError as e:
            raise ConfigStoreError(f"Failed to parse flow: {e}")

    def save_flow(self, flow: Flow) -> None:
        validate_string_input(flow.name, MAX_FLOW_NAME_LENGTH, "Flow name")
        path = self._flow_path(flow.id)
        self._ensure_dir(self.flows_dir)
        logger.debug(f"Saving flow: {flow.name} ({flow.id})")
        atomic_write(path, json.dumps(flow.model_dump(mode="json"), indent=2))
        logger.info(f"Saved flow {flow.id} to {path}")

    def delete_flow(self, flow_id: str) -> None:
        path = self._flow_path(flow_id)
        if not os.path.exists(path):
            raise FlowNotFoundError(f"Flow not found: {flow_id}")
        try:
            os.remove(path)
        except OSError as e:
            raise ConfigStoreError(f"Failed to delete flow: {e}")
        logger.info(f"Deleted flow {flow_id}")
