"""Azure OpenAI client using the Responses API."""

from openai import OpenAI

from graph_assistant.config import Settings


class AzureOpenAIClient:
    """Client for Azure OpenAI using the Responses API."""

    def __init__(self, settings: Settings, client: OpenAI | None = None) -> None:
        # Responses API uses the /openai/v1/ endpoint path
        base_url = settings.azure_openai_endpoint.rstrip("/") + "/openai/v1/"

        self.client = client or OpenAI(
            base_url=base_url,
            api_key=settings.azure_openai_api_key,
            timeout=settings.request_timeout_seconds,
            # Retries are handled by invoke_with_retry
            max_retries=0,
        )
        self.deployment = settings.azure_openai_deployment

    def chat(
        self,
        messages: list[dict],
        temperature: float = 0.7,
        max_output_tokens: int = 1000,
    ) -> str:
        """Send a response request and return the response content."""
        response = self.client.responses.create(
            model=self.deployment,
            input=messages,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )
        return response.output_text or ""
