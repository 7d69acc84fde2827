from typing import Protocol, runtime_checkable
from triage.modules.queries.schemas import ClassifierInsights

@runtime_checkable
class ClassifierPort(Protocol):
    """Opaque message classifier. Raises ClassifierFailure when the service is down."""
    async def classify(self, message: str) -> ClassifierInsights: ...
