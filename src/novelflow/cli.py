"""novelflow.cli

Command line entry point.

    novelflow graph FLOW.json      # print reconstructed groups as JSON
    novelflow compile SAVE.json    # print the compiled flow of an editor save
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

from .core.config import EditorConfig
from .core.models import FlowFormatError, load_flow_json
from .document.document import CompileError, Document
from .document.save_data import EditorSaveData, SaveDataError, deserialize_document
from .graph.builder import FlowOffsetError, build_graph, graph_to_json
from .logging import configure_logging, get_logger

logger = get_logger(__name__)


def _read_json(path: str) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _write_json(value: Any, *, indent: Optional[int]) -> None:
    sys.stdout.write(json.dumps(value, indent=indent, ensure_ascii=False))
    sys.stdout.write("\n")


def _cmd_graph(args: argparse.Namespace) -> int:
    config = EditorConfig(row_height=int(args.row_height))
    flow = load_flow_json(_read_json(args.path))
    groups = build_graph(flow, config=config)
    _write_json(graph_to_json(groups), indent=args.indent)
    return 0


def _cmd_compile(args: argparse.Namespace) -> int:
    data = EditorSaveData.from_dict(_read_json(args.path))
    document = Document()
    deserialize_document(data, document)
    _write_json({"flow": document.compile()}, indent=args.indent)
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="novelflow", add_help=True)
    parser.add_argument("--log-level", default=None, help="Log level (default: $NOVELFLOW_LOG_LEVEL or WARNING).")
    parser.add_argument("--indent", type=int, default=2, help="JSON indent for output (default: 2).")
    sub = parser.add_subparsers(dest="command", required=True)

    graph = sub.add_parser("graph", help="Reconstruct instruction groups from a FlowData JSON file.")
    graph.add_argument("path", help="FlowData JSON file ({\"flow\": [...]}).")
    graph.add_argument("--row-height", type=int, default=24, help="Row height used for y layout (default: 24).")
    graph.set_defaults(func=_cmd_graph)

    compile_ = sub.add_parser("compile", help="Compile an editor save file to FlowData JSON.")
    compile_.add_argument("path", help="Editor save JSON file ({\"elms\": [...], \"startGroup\": 0}).")
    compile_.set_defaults(func=_cmd_compile)

    args = parser.parse_args(list(argv) if argv is not None else None)
    configure_logging(args.log_level)

    try:
        return int(args.func(args))
    except (OSError, json.JSONDecodeError) as e:
        sys.stderr.write(f"Failed to read {args.path}: {e}\n")
        return 1
    except (FlowFormatError, FlowOffsetError, SaveDataError, CompileError) as e:
        logger.error("Command failed", command=args.command, error=str(e))
        sys.stderr.write(f"Error: {e}\n")
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
