"""Shared fixtures for runemate_publish tests."""

import pytest

from runemate_publish.manifests.schema import BotManifest

WOODCUTTER = {
    "mainClass": "bots/Woodcutter",
    "name": "Woodcutter",
    "tagline": "Simple woodcutting bot",
    "description": "Chops trees",
    "version": "1.0.0",
}


@pytest.fixture
def make_manifest():
    """Factory for a valid free manifest with selected fields overridden."""

    def factory(**overrides) -> BotManifest:
        fields = dict(
            main_class=WOODCUTTER["mainClass"],
            name=WOODCUTTER["name"],
            tagline=WOODCUTTER["tagline"],
            description=WOODCUTTER["description"],
            version=WOODCUTTER["version"],
        )
        fields.update(overrides)
        return BotManifest(**fields)

    return factory


@pytest.fixture
def isolated_env(monkeypatch):
    """Remove RuneMate settings inherited from the shell."""
    for name in ("RUNEMATE_SUBMISSION_KEY", "RUNEMATE_SUBMIT_URL", "RUNEMATE_SUBMIT_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
