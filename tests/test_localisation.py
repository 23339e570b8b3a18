import localisation
from localisation import label, language_chain, tr


def test_language_chain():
    assert language_chain("fr-CA") == ["fr_ca", "fr", "en"]
    assert language_chain("en") == ["en"]
    assert language_chain("") == ["en"]


def test_format_values():
    assert tr("en", "status_loaded", count=12) == "Loaded 12 cycles."
    assert "12" in tr("fr", "status_loaded", count=12)


def test_unknown_language_falls_back_to_english():
    assert tr("xx", "btn_load") == tr("en", "btn_load")
    assert tr("fr-BE", "btn_load") == tr("fr", "btn_load")


def test_unknown_key_is_returned_unchanged():
    assert tr("en", "no_such_key") == "no_such_key"


def test_every_language_is_complete():
    for code in localisation.available_languages():
        assert localisation.missing_keys(code) == []


def test_labels():
    assert label("trace_mode_labels", "snake", "en") == "Snake"
    assert label("phase_labels", "tracking", "en") == "Tracking"
    assert set(localisation.available_languages()) >= {"en", "fr"}
    assert localisation.language_name("en") == "English"


def test_every_cinematic_phase_has_a_label():
    from cinematic import CinematicPhase

    for code in localisation.available_languages():
        for phase in CinematicPhase:
            assert label("phase_labels", phase.value, code) != phase.value
