"""Tests for the command line entry point."""

from unittest.mock import patch

from runemate_publish import cli
from runemate_publish.errors import SubmissionOfflineError
from runemate_publish.services.submission import SubmissionResult

PROJECT_FILE = """
name: bots
source_roots: [src]
manifests:
  Woodcutter:
    main_class: bots/Woodcutter
    tagline: Simple woodcutting bot
    description: Chops trees
    version: 1.0.0
"""


def write_project(tmp_path, extra=""):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "Woodcutter.java").write_text("class Woodcutter {}\n")
    (tmp_path / "runemate-publish.yaml").write_text(PROJECT_FILE + extra)
    return str(tmp_path)


class TestCli:
    """Tests for cli.main."""

    def test_no_command(self):
        """Running without a command prints help and fails."""
        assert cli.main([]) == cli.EXIT_FAILURE

    def test_list(self, tmp_path, isolated_env):
        """list succeeds on a valid project."""
        assert cli.main(["-p", write_project(tmp_path), "list"]) == 0

    def test_bundle(self, tmp_path, isolated_env):
        """bundle writes the archive."""
        assert cli.main(["-p", write_project(tmp_path), "bundle"]) == 0
        assert (tmp_path / "build" / "runemate" / "distribution" / "runemate-publish.tar.gz").is_file()

    def test_check_deps_failure(self, tmp_path, isolated_env):
        """Disallowed dependencies exit with a failure code."""
        project_dir = write_project(tmp_path, 'dependencies: ["com.google.guava:guava:32.1.2-jre"]\n')
        assert cli.main(["-p", project_dir, "check-deps"]) == cli.EXIT_FAILURE

    def test_missing_project_file(self, tmp_path, isolated_env):
        """A missing project file is reported as a failure."""
        assert cli.main(["-p", str(tmp_path), "validate"]) == cli.EXIT_FAILURE

    def test_submit_uses_key_flag(self, tmp_path, isolated_env):
        """--key overrides any configured key."""
        project_dir = write_project(tmp_path, "submission_key: from-file\n")

        with patch("runemate_publish.pipeline.manager.SubmissionClient") as client_cls:
            client_cls.return_value.submit.return_value = SubmissionResult(status=200)
            code = cli.main(["-p", project_dir, "submit", "--key", "from-flag"])

        assert code == 0
        archive, key = client_cls.return_value.submit.call_args.args
        assert key == "from-flag"
        assert archive.name == "runemate-publish.tar.gz"

    def test_submit_offline(self, tmp_path, isolated_env):
        """An offline service exits with the retry-later code."""
        project_dir = write_project(tmp_path)

        with patch("runemate_publish.pipeline.manager.SubmissionClient") as client_cls:
            client_cls.return_value.submit.side_effect = SubmissionOfflineError("offline")
            code = cli.main(["-p", project_dir, "submit", "--key", "k"])

        assert code == cli.EXIT_RETRY_LATER
