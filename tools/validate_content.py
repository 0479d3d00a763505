#!/usr/bin/env python3
"""Validate quiz content files for common authoring mistakes."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Mapping, Sequence, Set

REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_LOCALES = REPO_ROOT / "evidence" / "locales"

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from evidence.content_schema import validate_content

CONTENT_SECTIONS = {"scenarios", "archetypes"}


def load_json(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def text_keys(table: Mapping[str, Any], prefix: str = "") -> Set[str]:
    keys: Set[str] = set()
    for key, value in table.items():
        if not prefix and key in CONTENT_SECTIONS:
            continue
        dotted = f"{prefix}.{key}" if prefix else key
        if isinstance(value, Mapping):
            keys |= text_keys(value, dotted)
        else:
            keys.add(dotted)
    return keys


def compare_locales(documents: Mapping[str, Mapping[str, Any]]) -> List[str]:
    """Report text keys and list sizes that differ between locales."""
    warnings: List[str] = []
    all_keys: Set[str] = set()
    per_locale = {name: text_keys(doc) for name, doc in documents.items()}
    for keys in per_locale.values():
        all_keys |= keys
    for name, keys in sorted(per_locale.items()):
        for missing in sorted(all_keys - keys):
            warnings.append(f"{name}: missing text key '{missing}'.")
    for section in sorted(CONTENT_SECTIONS):
        sizes = {name: len(doc.get(section) or []) for name, doc in documents.items()}
        if len(set(sizes.values())) > 1:
            detail = ", ".join(f"{name}={size}" for name, size in sorted(sizes.items()))
            warnings.append(f"{section}: entry counts differ ({detail}).")
    return warnings


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate Evidence quiz content.")
    parser.add_argument(
        "paths",
        nargs="*",
        help="Content JSON files (defaults to every bundled locale).",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str]) -> None:
    args = parse_args(argv[1:])
    paths = [Path(p).resolve() for p in args.paths] or sorted(DEFAULT_LOCALES.glob("*.json"))

    documents: Dict[str, Dict[str, Any]] = {}
    failed = False
    for path in paths:
        try:
            document = load_json(path)
        except (OSError, json.JSONDecodeError) as exc:
            print(f"Failed to read JSON from {path}: {exc}")
            failed = True
            continue
        errors = validate_content(document, allow_empty=False)
        if errors:
            print(f"Validation failed for {path.name} (path: message):")
            for err in errors:
                print(f" - {err}")
            failed = True
            continue
        documents[path.stem] = document

    if failed:
        sys.exit(1)

    warnings = compare_locales(documents) if len(documents) > 1 else []
    if warnings:
        print("Locale consistency warnings:")
        for warning in warnings:
            print(f" - {warning}")

    print(f"Validation passed for {len(documents)} content file(s).")


if __name__ == "__main__":
    main(sys.argv)
