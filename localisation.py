import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List

LOCALISATION_DIR = Path(__file__).resolve().parent / "localisation"
FALLBACK_LANGUAGE = "en"
SECTIONS = ("strings", "trace_mode_labels", "phase_labels")
_LOGGER = logging.getLogger(__name__)


def language_chain(lang: str) -> List[str]:
    """Lookup order for ``lang``: ``"fr-CA"`` gives ``["fr_ca", "fr", "en"]``."""
    code = (lang or "").strip().lower().replace("-", "_")
    chain: List[str] = []
    for candidate in (code, code.split("_", 1)[0], FALLBACK_LANGUAGE):
        if candidate and candidate not in chain:
            chain.append(candidate)
    return chain


@lru_cache(maxsize=None)
def _read_table(code: str) -> Dict[str, Any]:
    path = LOCALISATION_DIR / code / "strings.json"
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


@lru_cache(maxsize=None)
def catalog(lang: str) -> Dict[str, Dict[str, str]]:
    """All sections for ``lang``, with fallback entries filled in."""
    merged: Dict[str, Dict[str, str]] = {section: {} for section in SECTIONS}
    for code in reversed(language_chain(lang)):
        table = _read_table(code)
        for section in SECTIONS:
            merged[section].update(table.get(section, {}))
    missing = missing_keys(lang)
    if missing:
        _LOGGER.warning("Missing localisation strings for %s: %s", lang, ", ".join(missing))
    return merged


def missing_keys(lang: str) -> List[str]:
    code = language_chain(lang)[0]
    if code == FALLBACK_LANGUAGE:
        return []
    local = _read_table(code).get("strings", {})
    if not local:
        return []
    reference = _read_table(FALLBACK_LANGUAGE).get("strings", {})
    return sorted(set(reference) - set(local))


def tr(lang: str, key: str, **values: Any) -> str:
    """Translated string for ``key``; unknown keys come back unchanged."""
    text = catalog(lang)["strings"].get(key, key)
    if not values:
        return text
    try:
        return text.format(**values)
    except (KeyError, IndexError, ValueError):
        _LOGGER.warning("Bad format fields for %r in %s", key, lang)
        return text


def label(section: str, key: str, lang: str) -> str:
    return catalog(lang).get(section, {}).get(key, key)


def available_languages() -> List[str]:
    if not LOCALISATION_DIR.exists():
        return [FALLBACK_LANGUAGE]
    codes = sorted(
        entry.name
        for entry in LOCALISATION_DIR.iterdir()
        if entry.is_dir() and (entry / "strings.json").exists()
    )
    return codes or [FALLBACK_LANGUAGE]


def language_name(lang: str) -> str:
    for code in language_chain(lang)[:-1] or language_chain(lang):
        name = _read_table(code).get("strings", {}).get("language_name")
        if name:
            return name
    return lang or FALLBACK_LANGUAGE
