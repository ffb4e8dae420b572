"""
Output formatting for gitqueue commands.

Command results are dicts; they are printed as JSON Lines by default so a
CI step can parse a single line, or as JSON / YAML on request. Inside
GitHub Actions the job_* values are also published as step outputs.
"""

import json
import os
import uuid
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional

import yaml

FORMATS = ('json', 'jsonl', 'yaml')


def format_output(data: Iterable[Dict[str, Any]], format: str) -> Iterator[str]:
    """
    Render result dicts as lines of text.

    jsonl yields one line per item; json and yaml collect every item into
    a single document.
    """
    if format == "jsonl":
        for item in data:
            yield json.dumps(item, ensure_ascii=False)
    elif format == "json":
        yield json.dumps(list(data), ensure_ascii=False, indent=2)
    elif format == "yaml":
        yield yaml.safe_dump(list(data), default_flow_style=False, allow_unicode=True, sort_keys=False)
    else:
        raise ValueError(f"Unknown format: {format}")


def get_format_from_env(default: str = 'jsonl') -> str:
    """Output format from $GITQUEUE_FORMAT, or default if unset or unknown."""
    format = os.environ.get('GITQUEUE_FORMAT', default).lower()
    return format if format in FORMATS else default


def _output_value(value: Any) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if value is None:
        return ''
    return str(value)


def write_github_outputs(outputs: Mapping[str, Any], path: Optional[str] = None) -> bool:
    """
    Append step outputs to the $GITHUB_OUTPUT file.

    Multi-line values (job payloads often are) use the heredoc form
    `name<<DELIMITER`.

    Args:
        outputs: Output names and values
        path: Output file (default: $GITHUB_OUTPUT)

    Returns:
        True if outputs were written, False when not running in Actions
    """
    path = path or os.environ.get('GITHUB_OUTPUT')
    if not path:
        return False

    with open(path, 'a', encoding='utf-8') as f:
        for name, value in outputs.items():
            text = _output_value(value)
            if '\n' in text or '\r' in text:
                delimiter = f"ghadelimiter_{uuid.uuid4()}"
                f.write(f"{name}<<{delimiter}\n{text}\n{delimiter}\n")
            else:
                f.write(f"{name}={text}\n")
    return True
