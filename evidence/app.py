#!/usr/bin/env python3
"""
Evidence: terminal front end for the archetype quiz.
- Reads intents from the keyboard and forwards them to GameController.
- Re-renders the whole screen from controller state after every intent.
Usage: python -m evidence [--language en] [--storage data]
"""

from __future__ import annotations

import argparse
import asyncio
import inspect
import json
import logging
import re
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence

from .content import DEFAULT_LOCALES_DIR, LANGUAGES, ContentCatalog
from .controller import FINISHED, INTRO, PLAYING, REGISTRATION, GameController
from .settings import SETTINGS_PATH, load_settings, save_settings
from .storage import ResultStore, open_storage
from .view import format_inline, render, render_card, render_history

logger = logging.getLogger(__name__)

InputFunc = Callable[[str], str | Awaitable[str]]
PrintFunc = Callable[[str], None]

DEFAULT_EXPORT_PATH = "evidence-export.json"
LEFT_KEYS = {"1", "a", "l", "left", "<"}
RIGHT_KEYS = {"2", "d", "r", "right", ">"}


async def read_input(prompt: str = "") -> str:
    return await asyncio.to_thread(input, prompt)


async def _resolve_input(input_func: InputFunc, prompt: str) -> str:
    result = input_func(prompt)
    if inspect.isawaitable(result):
        result = await result
    return result or ""


def card_filename(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-") or "card"
    return f"evidence-{slug}.txt"


def save_card(controller: GameController, catalog, directory: Path | str = ".") -> Optional[Path]:
    state = controller.state
    if state.result is None:
        return None
    lines = render_card(state.result, catalog, show_shadow=state.show_shadow)
    path = Path(directory) / card_filename(state.result.title)
    text = "\n".join(format_inline(line, color=False) for line in lines)
    path.write_text(text + "\n", encoding="utf-8")
    return path


def export_history(store: ResultStore, path: Path | str) -> Path:
    path = Path(path)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(store.export_data(), handle, indent=2)
        handle.write("\n")
    return path


def import_history(store: ResultStore, path: Path | str) -> bool:
    with Path(path).open("r", encoding="utf-8") as handle:
        document = json.load(handle)
    return store.import_data(document)


async def run_session(
    controller: GameController,
    catalog: ContentCatalog,
    store: ResultStore,
    *,
    input_func: InputFunc = read_input,
    print_func: PrintFunc = print,
    color: bool = True,
    card_dir: Path | str = ".",
) -> None:
    """Loop until the user quits from the intro or result screen."""

    async def ask(prompt: str) -> str:
        return (await _resolve_input(input_func, prompt)).strip()

    while True:
        state = controller.state
        print_func("")
        print_func(render(state, catalog, store.get_history(), color=color))

        if state.phase == REGISTRATION:
            name = await ask(catalog.t("form.name", "Name") + ": ")
            if not name:
                controller.skip_registration()
                continue
            email = await ask(catalog.t("form.email", "Email") + ": ")
            location = await ask(catalog.t("form.location", "Location") + ": ")
            controller.register({"name": name, "email": email, "location": location})
            continue

        command = (await ask("> ")).lower()

        if state.phase == INTRO:
            if command in {"q", "quit"}:
                return
            if command in {"s", "start", ""}:
                if not controller.begin():
                    print_func(
                        catalog.t("messages.contentUnavailable", "[!] No quiz content is loaded.")
                    )
                continue
            if command in {"h", "history"}:
                print_func("\n".join(render_history(store.get_history(), catalog)))
                continue
            if command in {"g", "language"}:
                await catalog.toggle_language()
                continue
            if command in {"x", "export"}:
                target = await ask(f"Export file [{DEFAULT_EXPORT_PATH}]: ") or DEFAULT_EXPORT_PATH
                try:
                    written = export_history(store, target)
                except OSError as exc:
                    print_func(f"[!] Export failed: {exc}")
                    continue
                print_func(f"[Export] Data written to {written}.")
                continue
            if command in {"i", "import"}:
                source = await ask(f"Import file [{DEFAULT_EXPORT_PATH}]: ") or DEFAULT_EXPORT_PATH
                try:
                    imported = import_history(store, source)
                except (OSError, ValueError) as exc:
                    print_func(f"[!] Import failed: {exc}")
                    continue
                print_func("[Import] Data restored." if imported else "[!] Import incomplete.")
                continue
            if command in {"c", "clear"}:
                confirm = (await ask("Delete identity and history? [y/N]: ")).lower()
                if confirm in {"y", "yes"} and store.clear():
                    print_func("[Clear] Local data removed.")
                continue
            print_func("Enter S, H, G, X, I, C or Q.")
            continue

        if state.phase == PLAYING:
            if command in LEFT_KEYS:
                controller.choose("left")
            elif command in RIGHT_KEYS:
                controller.choose("right")
            elif command in {"q", "quit"}:
                controller.restart()
            else:
                print_func("Enter 1 (left), 2 (right) or Q to abandon.")
            continue

        if state.phase == FINISHED:
            if command in {"t", "shadow"}:
                controller.toggle_shadow()
            elif command in {"c", "card"}:
                try:
                    path = save_card(controller, catalog, card_dir)
                except OSError as exc:
                    print_func(f"[!] Could not save card: {exc}")
                    continue
                if path is not None:
                    print_func(f"[Card] Saved to {path}.")
            elif command in {"r", "restart"}:
                controller.restart()
            elif command in {"q", "quit"}:
                return
            else:
                print_func("Enter T, C, R or Q.")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play the Evidence archetype quiz.")
    parser.add_argument("--locales", default=str(DEFAULT_LOCALES_DIR), help="Directory of <language>.json content files.")
    parser.add_argument("--language", choices=LANGUAGES, help="Language to load (overrides the saved preference).")
    parser.add_argument("--storage", help="Directory for identity and history files.")
    parser.add_argument("--settings", default=str(SETTINGS_PATH), help="Path to settings.json.")
    parser.add_argument("--write-settings", action="store_true", help="Persist the effective settings and continue.")
    parser.add_argument("--no-color", action="store_true", help="Disable ANSI colors.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


async def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    settings = load_settings(args.settings)
    if args.language:
        settings.language = args.language
    if args.storage:
        settings.storage_dir = args.storage
    if args.no_color:
        settings.color_output = False
    if args.debug:
        settings.log_level = "DEBUG"
    settings.clamp()

    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if args.write_settings:
        save_settings(settings, args.settings)

    backend = open_storage(settings.storage_dir)
    store = ResultStore(backend)
    catalog = ContentCatalog(args.locales, storage=backend, default_language=settings.language)
    await catalog.load_language(args.language or catalog.language)

    controller = GameController(store, catalog.scenarios, catalog.archetypes)
    catalog.add_listener(
        lambda _language: controller.set_content(catalog.scenarios, catalog.archetypes)
    )
    await run_session(controller, catalog, store, color=settings.color_output)


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n[Interrupted] Bye.")


if __name__ == "__main__":
    run()
