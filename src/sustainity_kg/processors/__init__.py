"""Classification and record building for raw entities."""

from .advisors import CertificationAdvisor, load_advisors
from .builder import RecordBuilder, builder_fingerprint
from .certification import CertificationBuilder
from .classifier import Classifier, ClassifierTable
from .organization import OrganizationBuilder
from .product import ProductBuilder

__all__ = [
    "CertificationAdvisor",
    "CertificationBuilder",
    "Classifier",
    "ClassifierTable",
    "OrganizationBuilder",
    "ProductBuilder",
    "RecordBuilder",
    "builder_fingerprint",
    "load_advisors",
]
