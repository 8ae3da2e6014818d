"""RuneMate bot publishing: manifests, validation, packaging and submission.

Imports are lazy so that lightweight components (the manifest schema and
rules) can be used without pulling in aiohttp.
"""

__version__ = "1.0.0"

__all__ = [
    "BotManifest",
    "ManifestDeclaration",
    "ManifestFormat",
    "validate_manifest",
    "check_duplicate_ids",
    "PublishProject",
    "ProjectLoader",
    "PublishPipeline",
    "SubmissionClient",
]


def __getattr__(name):
    if name == "BotManifest":
        from runemate_publish.manifests.schema import BotManifest
        return BotManifest
    if name == "ManifestDeclaration":
        from runemate_publish.manifests.declaration import ManifestDeclaration
        return ManifestDeclaration
    if name == "ManifestFormat":
        from runemate_publish.manifests.codec import ManifestFormat
        return ManifestFormat
    if name in ("validate_manifest", "check_duplicate_ids"):
        from runemate_publish.manifests import rules
        return getattr(rules, name)
    if name == "PublishProject":
        from runemate_publish.project import PublishProject
        return PublishProject
    if name == "ProjectLoader":
        from runemate_publish.config import ProjectLoader
        return ProjectLoader
    if name == "PublishPipeline":
        from runemate_publish.pipeline.manager import PublishPipeline
        return PublishPipeline
    if name == "SubmissionClient":
        from runemate_publish.services.submission import SubmissionClient
        return SubmissionClient
    raise AttributeError(f"module 'runemate_publish' has no attribute {name!r}")
