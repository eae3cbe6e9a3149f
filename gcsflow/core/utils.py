import json
import logging
import os
from typing import Any, Dict, List, Optional
from uuid import uuid4

import yaml

from gcsflow.exceptions import PathNotFoundException


def read_yaml_file(file_path: str) -> Dict[str, Any]:
    if not os.path.exists(file_path):
        return {}
    with open(file_path, "r") as yaml_file:
        return yaml.safe_load(yaml_file) or {}


def assert_path_exists(path: str):
    if not os.path.exists(path):
        raise PathNotFoundException(f"Path {path} does not exist.")


def uuid(max_len: Optional[int] = None) -> str:
    if max_len is not None:
        return str(uuid4())[:max_len]
    return str(uuid4())


def split_comma_list(value: Optional[str]):
    """Splits a comma separated property into trimmed, non-empty items."""
    if not value:
        return []
    items = [item.strip() for item in value.split(",")]
    return [item for item in items if item]


def configure_logging(log_level: str):
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {log_level}")
    logging.basicConfig(
        level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    logging.getLogger().setLevel(level)


def read_json_lines(file_path: str) -> List[Dict[str, Any]]:
    assert_path_exists(file_path)
    with open(file_path, "r") as input_file:
        return [json.loads(line) for line in input_file if line.strip()]
