import json
import logging

import pytest

from golobe_e2e.contract import (
    CONTRACT_VERSION,
    DEFAULT_SELECTORS,
    SelectorContract,
    SelectorSpec,
    locale_from_url,
    locale_path,
)


@pytest.mark.parametrize(
    "path, locale, expected",
    [("/", "en", "/"), ("/", "fr", "/fr"), ("/flights", "ru", "/ru/flights"), ("/flights", "en", "/flights")],
)
def test_locale_path(path, locale, expected):
    assert locale_path(path, locale) == expected


@pytest.mark.parametrize(
    "url, expected",
    [
        ("http://golobe.test/fr/flights", "fr"),
        ("http://golobe.test/ru", "ru"),
        ("http://golobe.test/flights", None),
        ("http://golobe.test/", None),
    ],
)
def test_locale_from_url(url, expected):
    assert locale_from_url(url) == expected


class TestSelectorContract:
    def test_templates_are_filled_and_labelled(self):
        spec = SelectorContract(DEFAULT_SELECTORS).get("locale_option", code="fr")
        assert spec.name == "locale_option[code=fr]"
        assert spec.primary == "[role='menu'] [data-locale='fr']"

    def test_unknown_name(self):
        with pytest.raises(KeyError):
            SelectorContract(DEFAULT_SELECTORS).get("nope")

    def test_empty_spec_is_rejected(self):
        with pytest.raises(ValueError):
            SelectorSpec("empty", ())

    def test_overrides_file(self, tmp_path):
        overrides = tmp_path / "selectors.json"
        overrides.write_text(json.dumps({"version": CONTRACT_VERSION, "selectors": {"consent_accept": ".cookie-ok"}}))
        contract = SelectorContract.load(overrides)
        assert contract.get("consent_accept").candidates == (".cookie-ok",)
        assert contract.get("submit").candidates == DEFAULT_SELECTORS["submit"]

    def test_version_mismatch_warns_but_applies(self, tmp_path, caplog):
        overrides = tmp_path / "selectors.json"
        overrides.write_text(json.dumps({"version": "0", "selectors": {"submit": ["button.go"]}}))
        with caplog.at_level(logging.WARNING, logger="golobe_e2e.contract"):
            contract = SelectorContract.load(overrides)
        assert contract.get("submit").primary == "button.go"
        assert "harness expects" in caplog.text

    def test_missing_overrides_file_uses_defaults(self, tmp_path):
        contract = SelectorContract.load(tmp_path / "absent.json")
        assert contract.get("submit").candidates == DEFAULT_SELECTORS["submit"]
