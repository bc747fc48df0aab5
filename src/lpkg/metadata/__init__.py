"""Package metadata: record model, manifest cache, schema validation and index."""

from lpkg.metadata.manifest import ManifestCache, ManifestKind
from lpkg.metadata.models import PackageMetadata
from lpkg.metadata.store import MetadataStore, PackageRecord, PackageSummary, ValidationReport

__all__ = [
    "ManifestCache",
    "ManifestKind",
    "MetadataStore",
    "PackageMetadata",
    "PackageRecord",
    "PackageSummary",
    "ValidationReport",
]
