"""
Entity registration: every entity type whose indexes should be created at startup.
When adding/removing apps in a private project, add/remove the corresponding entities here.
"""
from apps.catalog.models import Category

DOCUMENT_MODELS = [Category]

__all__ = ["Category", "DOCUMENT_MODELS"]
