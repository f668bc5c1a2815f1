"""
Exam Autograder - LLM Client
Provider-agnostic chat model access with telemetry and JSON responses
"""
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from autograder.ai.telemetry import get_tracer, trace_llm_call
from autograder.core.config import settings
from autograder.core.exceptions import EvaluatorUnavailable


@dataclass
class LLMResponse:
    """Standardized response from LLM client."""
    content: str
    model: str
    tokens_prompt: int = 0
    tokens_completion: int = 0
    tokens_total: int = 0


class LLMClient:
    """
    LLM client used by the answer evaluator.
    
    Features:
    - Multi-provider support (OpenAI, Anthropic)
    - OpenTelemetry spans and token usage
    - JSON response parsing
    - An injectable chat model for tests
    """
    
    def __init__(
        self,
        provider: str = None,
        model: str = None,
        temperature: float = None,
        timeout: float = None,
        llm: Optional[BaseChatModel] = None,
    ):
        """
        Initialize the LLM client.
        
        Args:
            provider: LLM provider ('openai' or 'anthropic'). Defaults to settings.
            model: Model name. Defaults to settings.
            temperature: Sampling temperature.
            timeout: Request timeout in seconds.
            llm: Pre-built chat model; skips provider construction.
        """
        self.provider = provider or settings.LLM_PROVIDER
        self.model = model or (
            settings.OPENAI_MODEL if self.provider == "openai" 
            else settings.ANTHROPIC_MODEL
        )
        self.temperature = settings.LLM_TEMPERATURE if temperature is None else temperature
        self.timeout = timeout or settings.LLM_TIMEOUT_SECONDS
        
        self._llm = llm
    
    @property
    def configured(self) -> bool:
        return self._llm is not None or settings.llm_configured
    
    @property
    def llm(self) -> BaseChatModel:
        """Lazy-load the LLM instance."""
        if self._llm is None:
            if not settings.llm_configured:
                raise EvaluatorUnavailable(f"No API key configured for {self.provider}")
            if self.provider == "openai":
                from langchain_openai import ChatOpenAI
                self._llm = ChatOpenAI(
                    model=self.model,
                    api_key=settings.OPENAI_API_KEY,
                    temperature=self.temperature,
                    timeout=self.timeout,
                    max_retries=0,
                    model_kwargs={"response_format": {"type": "json_object"}},
                )
            else:
                from langchain_anthropic import ChatAnthropic
                self._llm = ChatAnthropic(
                    model=self.model,
                    api_key=settings.ANTHROPIC_API_KEY,
                    temperature=self.temperature,
                    timeout=self.timeout,
                    max_retries=0,
                )
        return self._llm
    
    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> LLMResponse:
        """
        Generate a response from the LLM.
        
        Args:
            prompt: The user prompt, formatted with ``context``.
            system_prompt: Optional system prompt.
            context: Optional variables for prompt formatting.
            
        Returns:
            LLMResponse with content and metadata.
        """
        tracer = get_tracer()
        
        with tracer.start_as_current_span("llm.generate") as span:
            span.set_attribute("llm.model", self.model)
            span.set_attribute("llm.provider", self.provider)
            
            if context:
                prompt = prompt.format(**context)
            
            messages = []
            if system_prompt:
                messages.append(SystemMessage(content=system_prompt))
            messages.append(HumanMessage(content=prompt))
            
            span.set_attribute("llm.prompt_length", len(prompt))
            
            response = await self.llm.ainvoke(messages)
            content = response.content
            if not isinstance(content, str):
                # Anthropic may return a list of content blocks
                content = "".join(
                    block.get("text", "") if isinstance(block, dict) else str(block)
                    for block in content
                )
            
            metadata = getattr(response, "response_metadata", None) or {}
            usage = metadata.get("token_usage", {})
            tokens_prompt = usage.get("prompt_tokens", 0)
            tokens_completion = usage.get("completion_tokens", 0)
            tokens_total = tokens_prompt + tokens_completion
            
            trace_llm_call(
                model=self.model,
                prompt_tokens=tokens_prompt,
                completion_tokens=tokens_completion,
                total_tokens=tokens_total,
            )
            span.set_attribute("llm.response_length", len(content))
            
            return LLMResponse(
                content=content,
                model=self.model,
                tokens_prompt=tokens_prompt,
                tokens_completion=tokens_completion,
                tokens_total=tokens_total,
            )
    
    async def generate_json(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Generate a JSON response from the LLM.
        
        Raises:
            ValueError: If the response is not a JSON object
        """
        response = await self.generate(
            prompt=prompt,
            system_prompt=system_prompt,
            context=context,
        )
        
        content = response.content.strip()
        
        # Strip markdown code blocks if present
        if content.startswith("```json"):
            content = content[7:]
        if content.startswith("```"):
            content = content[3:]
        if content.endswith("```"):
            content = content[:-3]
        content = content.strip()
        
        data = json.loads(content)
        if not isinstance(data, dict):
            raise ValueError("LLM response is not a JSON object")
        return data
