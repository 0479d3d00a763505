import asyncio
import json
import logging
from pathlib import Path

from evidence.content import DEFAULT_LOCALES_DIR, ContentCatalog
from evidence.storage import MemoryStorage


def make_document(title: str, scenario_count: int = 2) -> dict:
    return {
        "app": {"title": title, "nested": {"count": 3}},
        "scenarios": [
            {
                "question": f"{title} question {idx}",
                "left": {"text": "Left", "impact": {"chaos": 1}},
                "right": {"text": "Right", "impact": {"order": 1, "logic": 2}},
            }
            for idx in range(scenario_count)
        ],
        "archetypes": [
            {"title": f"{title} {idx}", "description": "Description", "traits": ["One"]}
            for idx in range(4)
        ],
    }


def write_locale(locales: Path, language: str, document) -> Path:
    locales.mkdir(parents=True, exist_ok=True)
    path = locales / f"{language}.json"
    path.write_text(json.dumps(document) if not isinstance(document, str) else document)
    return path


def test_load_language_swaps_content_and_notifies(tmp_path: Path) -> None:
    write_locale(tmp_path, "en", make_document("English"))
    storage = MemoryStorage()
    catalog = ContentCatalog(tmp_path, storage=storage)
    seen = []
    catalog.add_listener(seen.append)

    assert asyncio.run(catalog.load_language("en"))
    assert catalog.language == "en"
    assert seen == ["en"]
    assert storage.items["language"] == "en"
    assert len(catalog.scenarios) == 2
    assert catalog.scenarios[0].right.impact == {"order": 1, "logic": 2}
    assert catalog.archetypes[0].title == "English 0"
    assert catalog.archetypes[0].shadow is None


def test_text_lookup_walks_dot_paths() -> None:
    catalog = ContentCatalog()
    catalog.translations = make_document("Title")

    assert catalog.t("app.title") == "Title"
    assert catalog.t("app.missing", "fallback") == "fallback"
    assert catalog.t("app.missing") == "app.missing"
    assert catalog.t("app.nested", "not a string") == "not a string"
    assert catalog.t("app.nested.count", "numbers fall back") == "numbers fall back"
    assert catalog.t("app.title.deeper", "x") == "x"


def test_undecodable_file_keeps_previous_content(tmp_path: Path, caplog) -> None:
    write_locale(tmp_path, "en", make_document("English"))
    (tmp_path / "pt.json").write_bytes(b'{"app": {"title": "\xff\xfe"}}')
    catalog = ContentCatalog(tmp_path)
    assert asyncio.run(catalog.load_language("en"))

    with caplog.at_level(logging.ERROR, logger="evidence.content"):
        assert not asyncio.run(catalog.toggle_language())
    assert "Invalid JSON or encoding" in caplog.text
    assert catalog.language == "en"
    assert catalog.t("app.title") == "English"
    assert not catalog.is_loading


def test_failed_load_keeps_previous_content(tmp_path: Path, caplog) -> None:
    write_locale(tmp_path, "pt", make_document("Portugues"))
    write_locale(tmp_path, "en", "{broken")
    catalog = ContentCatalog(tmp_path)
    seen = []
    catalog.add_listener(seen.append)
    assert asyncio.run(catalog.load_language("pt"))

    with caplog.at_level(logging.ERROR, logger="evidence.content"):
        assert not asyncio.run(catalog.load_language("en"))
        assert not asyncio.run(catalog.load_language("fr"))
        assert not asyncio.run(catalog.load_language("../pt"))
    assert "Error loading language" in caplog.text
    assert catalog.language == "pt"
    assert catalog.t("app.title") == "Portugues"
    assert seen == ["pt"]
    assert not catalog.is_loading


def test_invalid_document_is_rejected(tmp_path: Path, caplog) -> None:
    document = make_document("Bad")
    document["scenarios"][0]["left"]["impact"] = {"courage": 3}
    write_locale(tmp_path, "en", document)
    catalog = ContentCatalog(tmp_path)

    with caplog.at_level(logging.ERROR, logger="evidence.content"):
        assert not asyncio.run(catalog.load_language("en"))
    assert "unknown axis 'courage'" in caplog.text
    assert catalog.scenarios == ()


def test_second_load_while_pending_is_dropped(tmp_path: Path) -> None:
    write_locale(tmp_path, "pt", make_document("Portugues"))
    write_locale(tmp_path, "en", make_document("English"))
    catalog = ContentCatalog(tmp_path)

    async def load_both():
        return await asyncio.gather(
            catalog.load_language("pt"), catalog.load_language("en")
        )

    first, second = asyncio.run(load_both())
    assert first is True
    assert second is False
    assert catalog.language == "pt"


def test_toggle_language_and_stored_preference(tmp_path: Path) -> None:
    write_locale(tmp_path, "pt", make_document("Portugues"))
    write_locale(tmp_path, "en", make_document("English"))
    storage = MemoryStorage({"language": "en"})
    catalog = ContentCatalog(tmp_path, storage=storage)
    assert catalog.language == "en"

    assert asyncio.run(catalog.load_language())
    assert catalog.t("app.title") == "English"
    assert asyncio.run(catalog.toggle_language())
    assert catalog.language == "pt"
    assert storage.items["language"] == "pt"


def test_removed_listener_is_not_called(tmp_path: Path) -> None:
    write_locale(tmp_path, "pt", make_document("Portugues"))
    catalog = ContentCatalog(tmp_path)
    seen = []
    catalog.add_listener(seen.append)
    catalog.remove_listener(seen.append)
    asyncio.run(catalog.load_language("pt"))
    assert seen == []


def test_legacy_scenario_shape_is_parsed(tmp_path: Path) -> None:
    document = make_document("Legacy", scenario_count=0)
    document["scenarios"] = [
        {
            "question": "Old format?",
            "left": "Yes",
            "right": "No",
            "leftChoice": {"impact": {"emotion": 2}},
        }
    ]
    write_locale(tmp_path, "pt", document)
    catalog = ContentCatalog(tmp_path)
    assert asyncio.run(catalog.load_language("pt"))
    scenario = catalog.scenarios[0]
    assert scenario.left.text == "Yes"
    assert scenario.left.impact == {"emotion": 2}
    assert scenario.right.impact == {}


def test_bundled_locales_load() -> None:
    for language in ("pt", "en"):
        catalog = ContentCatalog(DEFAULT_LOCALES_DIR)
        assert asyncio.run(catalog.load_language(language))
        assert len(catalog.archetypes) == 4
        assert catalog.scenarios
        assert catalog.t("app.title") != "app.title"
