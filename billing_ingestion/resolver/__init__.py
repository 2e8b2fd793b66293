"""Cross-file reference resolution for legacy exports."""

from billing_ingestion.resolver.reference_resolver import OwnershipConflict, ReferenceResolver

__all__ = ["OwnershipConflict", "ReferenceResolver"]
