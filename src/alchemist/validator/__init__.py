from alchemist.validator.engine import ValidationEngine, validate
from alchemist.validator.entities import validate_entity
from alchemist.validator.scheduler import ValidationScheduler

__all__ = ["ValidationEngine", "ValidationScheduler", "validate", "validate_entity"]
