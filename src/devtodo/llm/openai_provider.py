"""OpenAI-compatible chat completion provider (LiteLLM proxy or OpenAI)."""

from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from devtodo.llm.base import BaseLLMProvider


class OpenAIProvider(BaseLLMProvider):
    """Chat completions over the OpenAI API shape."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "chatgpt-4o-latest",
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> None:
        """Initialize OpenAI provider.

        Args:
            api_key: API key; a placeholder is sent when the proxy needs none
            model: Model for completions
            base_url: Endpoint root, e.g. a LiteLLM proxy URL
            timeout: HTTP timeout in seconds
            **kwargs: Additional parameters
        """
        super().__init__(api_key, model, **kwargs)
        self.base_url = base_url
        client_kwargs: Dict[str, Any] = {"api_key": api_key or "not-needed"}
        if base_url:
            client_kwargs["base_url"] = f"{base_url.rstrip('/')}/v1"
        if timeout is not None:
            client_kwargs["timeout"] = timeout
        self.client = AsyncOpenAI(**client_kwargs)
        self.total_tokens = {"input": 0, "output": 0}
        self.total_requests = 0

    async def complete(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: int = 350,
        temperature: float = 0.2,
        **kwargs: Any,
    ) -> str:
        """Generate a completion.

        Args:
            prompt: The user message
            system_prompt: Optional system instructions
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature
            **kwargs: Additional OpenAI parameters

        Returns:
            Generated text, stripped

        Raises:
            Exception: If API call fails
        """
        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
                **kwargs,
            )
        except Exception as e:
            raise Exception(f"OpenAI API error: {e}") from e

        self.total_requests += 1
        usage = getattr(response, "usage", None)
        if usage is not None:
            self.total_tokens["input"] += usage.prompt_tokens
            self.total_tokens["output"] += usage.completion_tokens

        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()

    def get_usage_stats(self) -> dict:
        """Get current usage statistics.

        Returns:
            Dictionary with token and request counts
        """
        return {
            "total_tokens": self.total_tokens,
            "total_requests": self.total_requests,
            "model": self.model,
            "base_url": self.base_url,
        }
