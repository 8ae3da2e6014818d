"""Tests for the manifest slug helpers."""

from runemate_publish.utils import manifest_file_name, manifest_slug


class TestManifestSlug:
    """Tests for manifest_slug function."""

    def test_lowercases_and_hyphenates(self):
        """Spaces become hyphens and letters are lowercased."""
        assert manifest_slug("Magic Woodcutter") == "magic-woodcutter"

    def test_drops_punctuation(self):
        """Everything outside letters, digits and spaces is removed."""
        assert manifest_slug("Bob's Fisher v2!") == "bobs-fisher-v2"
        assert manifest_slug("Agility_Pro.") == "agilitypro"

    def test_empty_name(self):
        """Empty names are returned unchanged."""
        assert manifest_slug("") == ""

    def test_file_name(self):
        """File names carry the .manifest marker and the format extension."""
        assert manifest_file_name("Magic Woodcutter", "json") == "magic-woodcutter.manifest.json"
        assert manifest_file_name("Fisher", "yaml") == "fisher.manifest.yaml"
