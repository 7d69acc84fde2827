import json
import logging
import httpx
from pydantic import ValidationError
from triage.core.errors import ClassifierFailure
from triage.modules.queries.schemas import ClassifierInsights
from triage.platform.ports.classifier import ClassifierPort

log = logging.getLogger("classifier.openai")

PROMPT = (
    "Classify the following audience query message. Return JSON with keys category "
    "(question|request|complaint|feedback|bug|billing|security), sentiment (positive|neutral|negative), "
    "urgency (low|medium|high|critical), confidence (0-1). Message: {message!r}"
)

class OpenAIClassifier(ClassifierPort):
    def __init__(self, api_key: str, model: str = "gpt-4o-mini", timeout: float = 30.0, transport: httpx.AsyncBaseTransport | None = None):
        if not api_key:
            raise ValueError("OpenAI API key is required for OpenAIClassifier")
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.transport = transport
        self.api_url = "https://api.openai.com/v1/chat/completions"

    async def classify(self, message: str) -> ClassifierInsights:
        headers = {"Authorization": f"Bearer {self.api_key}"}
        body = {
            "model": self.model,
            "messages": [{"role": "user", "content": PROMPT.format(message=message)}],
            "response_format": {"type": "json_object"},
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.api_url, headers=headers, json=body)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            log.error(f"HTTP error during classification: {e.response.text}")
            raise ClassifierFailure(f"classifier returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ClassifierFailure(f"classifier unreachable: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
            return ClassifierInsights.model_validate(json.loads(content))
        except (KeyError, IndexError, TypeError, json.JSONDecodeError, ValidationError) as e:
            raise ClassifierFailure(f"unexpected classifier response: {e}") from e
