"""
Service layer for the Kaidan Blueprint service.

Services hold the business rules (validation, scoring at the persistence
boundary, extraction, selection) and are independent of the HTTP layer.
Repositories and providers are passed in explicitly.
"""

from .blueprint_validation_service import BlueprintValidationService
from .blueprint_service import BlueprintService
from .style_blueprint_service import StyleBlueprintService
from .extraction_service import ExtractionService
from .selection_service import SelectionService

__all__ = [
    'BlueprintValidationService',
    'BlueprintService',
    'StyleBlueprintService',
    'ExtractionService',
    'SelectionService',
]
