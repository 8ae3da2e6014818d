"""Global constants for RuneMate publishing."""

import os
from pathlib import Path

# Project file looked up in every project directory
PROJECT_FILE = "runemate-publish.yaml"

# Source roots used when a project file does not list any
DEFAULT_SOURCE_ROOTS = ("src/main/java", "src/main/kotlin", "src/main/resources")

# Build layout, relative to the root project directory
BUILD_DIR_NAME = "build"
RUNEMATE_DIR_NAME = "runemate"
SOURCES_DIR_NAME = "sources"
DISTRIBUTION_DIR_NAME = "distribution"
MANIFEST_DIR_NAME = ".runemate"
ARCHIVE_FILE_NAME = "runemate-publish.tar.gz"

# Submission endpoint (beta host, supports RUNEMATE_SUBMIT_URL override)
DEFAULT_SUBMIT_URL = "https://www20230922135246.runemate.com/developer/submit"
SUBMIT_URL = os.getenv("RUNEMATE_SUBMIT_URL", DEFAULT_SUBMIT_URL)
SUBMIT_TIMEOUT = int(os.getenv("RUNEMATE_SUBMIT_TIMEOUT", "300"))
SUBMISSION_KEY_ENV = "RUNEMATE_SUBMISSION_KEY"

# Literal key every manifest file must contain to be considered at all
ENTRY_POINT_KEY = "mainClass"

# group:artifact glob patterns accepted in the runtime classpath
DEPENDENCY_ALLOW_LIST = (
    "com.runemate:*",
    "org.openjfx:*",
    "org.json:json",
    "org.jblas:jblas",
    "org.jetbrains.kotlin:*",
    "org.projectlombok:lombok",
    "org.jetbrains:annotations",
)


def runemate_dir(root_dir: Path) -> Path:
    return root_dir / BUILD_DIR_NAME / RUNEMATE_DIR_NAME


def sources_dir(root_dir: Path) -> Path:
    return runemate_dir(root_dir) / SOURCES_DIR_NAME


def manifest_dir(root_dir: Path) -> Path:
    return sources_dir(root_dir) / MANIFEST_DIR_NAME


def distribution_dir(root_dir: Path) -> Path:
    return runemate_dir(root_dir) / DISTRIBUTION_DIR_NAME


def archive_path(root_dir: Path) -> Path:
    return distribution_dir(root_dir) / ARCHIVE_FILE_NAME
