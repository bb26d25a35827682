"""Simple CLI for one uniform request.

Usage examples:
- JSON string input:
  python cli.py "{\"message\":\"hi\"}"

- JSON file input (prefix with @):
  python cli.py @request.json

- Only show where the request would go, without calling the API:
  python cli.py @request.json --route-only

Notes:
- Binary audio in the response is printed base64-encoded.
"""
import argparse
import base64
import json
import sys
from pathlib import Path
from typing import Any, Dict

from uniroute.client import UnifiedClient
from uniroute.config import load_settings
from uniroute.logging_util import get_logger

logger = get_logger(__name__)

def _load_input(arg: str) -> Dict[str, Any]:
    if arg.startswith("@"):
        p = Path(arg[1:])
        data = p.read_text(encoding="utf-8")
        return json.loads(data)

    return json.loads(arg)

def _jsonable(v: Any) -> Any:
    if isinstance(v, bytes):
        return base64.b64encode(v).decode("ascii")
    raise TypeError(f"not JSON serializable: {type(v).__name__}")

def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("input", help="JSON string or @path/to/json")
    ap.add_argument("--config", help="Path to a YAML settings file")
    ap.add_argument("--route-only", action="store_true", help="Print the routing decision and exit")
    ap.add_argument("--pretty", action="store_true", help="Pretty print the output JSON")
    args = ap.parse_args()

    try:
        req = _load_input(args.input)
    except (OSError, ValueError) as e:
        logger.error("Failed to parse input: %s", e)
        sys.exit(2)

    client = UnifiedClient(settings=load_settings(Path(args.config) if args.config else None))

    if args.route_only:
        exp = client.router.explain(req)
        out = {"candidates": exp.candidates, "reasoning": exp.reasoning, "conclusion": exp.conclusion}
    else:
        out = client.run(req, request_id="CLI")

    indent = 2 if args.pretty else None
    print(json.dumps(out, ensure_ascii=False, indent=indent, default=_jsonable))

if __name__ == "__main__":
    main()
