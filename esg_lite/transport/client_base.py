from abc import ABC, abstractmethod
from typing import Any


class BaseAnalysisClient(ABC):
    """Contract for language-model clients answering structured questions."""

    @abstractmethod
    def complete_json(
        self,
        *,
        schema_name: str,
        system_prompt: str,
        user_prompt: str,
        json_schema: dict[str, object],
    ) -> dict[str, Any]:
        """Ask the model and return its answer parsed as a JSON object.

        Raises:
            TransportAnalysisNetworkError: if the provider cannot be reached.
            TransportAnalysisError: if the answer is empty or not a JSON object.
        """
