"""
Load rules from a JSON file.

File format:

    {
      "rules": [
        {"trigger": "PING", "response": "PONG", "mode": "equals", "ignore_case": true},
        {"trigger": "GET motd", "response": "[content]", "file": "motd.txt", "encoding": "utf-8"}
      ]
    }

`mode` defaults to "contains" and `ignore_case` to false. An entry with a
"file" key becomes a file-backed rule. Response files are not opened here;
they are read each time the rule fires.
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Union

from ..errors import ConfigurationError
from .rule import MatchMode, Rule


logger = logging.getLogger(__name__)


def load_rules(path: Union[str, Path]) -> List[Rule]:
    """
    Read and parse a rules file.

    Raises:
        ConfigurationError: File unreadable, not JSON, or an entry is invalid.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigurationError(f"Can't read rules file {str(path)!r}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Rules file {str(path)!r} is not valid JSON: {e}") from e

    rules = parse_rules(data)
    logger.debug(f"Loaded {len(rules)} rules from {path}")
    return rules


def parse_rules(data: Any) -> List[Rule]:
    """Build rules from an already-decoded JSON document."""
    if isinstance(data, dict):
        entries = data.get("rules")
    else:
        entries = data

    if not isinstance(entries, list):
        raise ConfigurationError('Rules document must be a list or an object with a "rules" list')

    return [_parse_entry(index, entry) for index, entry in enumerate(entries)]


def _parse_entry(index: int, entry: Any) -> Rule:
    if not isinstance(entry, dict):
        raise ConfigurationError(f"Rule #{index}: expected an object, got {type(entry).__name__}")

    for key in ("trigger", "response"):
        if key not in entry:
            raise ConfigurationError(f"Rule #{index}: missing {key!r}")
        if not isinstance(entry[key], str):
            raise ConfigurationError(f"Rule #{index}: {key!r} must be a string")

    ignore_case = entry.get("ignore_case", False)
    if not isinstance(ignore_case, bool):
        raise ConfigurationError(f"Rule #{index}: 'ignore_case' must be true or false")

    try:
        mode = MatchMode.parse(entry.get("mode", MatchMode.CONTAINS))
    except ConfigurationError as e:
        raise ConfigurationError(f"Rule #{index}: {e.message}") from e

    if "file" in entry:
        return Rule.with_file(
            entry["trigger"],
            entry["response"],
            str(entry["file"]),
            encoding=entry.get("encoding", "utf-8"),
            ignore_case=ignore_case,
            mode=mode,
        )
    return Rule(entry["trigger"], entry["response"], ignore_case=ignore_case, mode=mode)
