"""LLM provider for a local Ollama model or an OpenAI-compatible endpoint."""

import asyncio
from typing import Optional

import aiohttp
import openai
from loguru import logger

from config import settings


class LLMUnavailableError(Exception):
    """The model endpoint could not be reached or did not answer in time."""


class LLMProvider:
    """
    Text-completion client used for tool selection and query suggestions.
    
    Exactly one request is made per call. Callers treat the model as
    optional and fall back to rules when it is unavailable, so nothing here
    retries.
    """
    
    def __init__(
        self,
        backend: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
    ):
        self.backend = (backend or settings.LLM_BACKEND).lower()
        self.model = model or settings.LLM_MODEL
        
        if self.backend == "openai":
            self.base_url = base_url or settings.OPENAI_BASE_URL
            self.openai_client = openai.AsyncOpenAI(
                base_url=self.base_url,
                api_key=api_key or settings.OPENAI_API_KEY or "not-needed",
                max_retries=0,
            )
        elif self.backend == "ollama":
            self.base_url = (base_url or settings.OLLAMA_URL).rstrip("/")
            self.openai_client = None
        else:
            raise ValueError(f"Unsupported LLM backend: {self.backend}")
        
        self.session: Optional[aiohttp.ClientSession] = None
    
    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession()
        return self.session
    
    async def close(self):
        """Close open HTTP clients."""
        if self.session and not self.session.closed:
            await self.session.close()
        if self.openai_client is not None:
            await self.openai_client.close()
    
    async def generate(
        self,
        prompt: str,
        temperature: Optional[float] = None,
        top_p: Optional[float] = None,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Generate a completion for a prompt.
        
        Args:
            prompt: Full prompt text
            temperature: Sampling temperature
            top_p: Nucleus sampling cutoff
            max_tokens: Maximum tokens to generate
            timeout: Hard timeout in seconds for the whole request
            
        Returns:
            Raw model text
            
        Raises:
            LLMUnavailableError: on timeout, connection failure or a bad status
        """
        temperature = settings.LLM_TEMPERATURE if temperature is None else temperature
        top_p = settings.LLM_TOP_P if top_p is None else top_p
        max_tokens = max_tokens or settings.LLM_MAX_TOKENS
        timeout = timeout or settings.LLM_TIMEOUT
        
        if self.backend == "openai":
            return await self._generate_openai(prompt, temperature, top_p, max_tokens, timeout)
        return await self._generate_ollama(prompt, temperature, top_p, max_tokens, timeout)
    
    async def _generate_ollama(
        self,
        prompt: str,
        temperature: float,
        top_p: float,
        max_tokens: int,
        timeout: float,
    ) -> str:
        """Generate using Ollama's /api/generate."""
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": temperature,
                "top_p": top_p,
                "num_predict": max_tokens,
            },
        }
        session = await self._get_session()
        try:
            async with session.post(
                f"{self.base_url}/api/generate",
                json=payload,
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as response:
                if response.status != 200:
                    raise LLMUnavailableError(f"Ollama returned HTTP {response.status}")
                data = await response.json()
        except asyncio.TimeoutError as e:
            raise LLMUnavailableError(f"Ollama timed out after {timeout}s") from e
        except aiohttp.ClientError as e:
            raise LLMUnavailableError(f"Ollama not reachable: {e}") from e
        
        return (data.get("response") or "").strip()
    
    async def _generate_openai(
        self,
        prompt: str,
        temperature: float,
        top_p: float,
        max_tokens: int,
        timeout: float,
    ) -> str:
        """Generate using an OpenAI-compatible chat endpoint."""
        try:
            response = await self.openai_client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                top_p=top_p,
                max_tokens=max_tokens,
                stream=False,
                timeout=timeout,
            )
        except (openai.APITimeoutError, openai.APIConnectionError) as e:
            raise LLMUnavailableError(f"LLM endpoint not reachable: {e}") from e
        except openai.APIStatusError as e:
            raise LLMUnavailableError(f"LLM endpoint returned HTTP {e.status_code}") from e
        
        content = response.choices[0].message.content if response.choices else None
        return (content or "").strip()
    
    async def check_status(self) -> bool:
        """Check that the endpoint is up and the configured model is available."""
        timeout = settings.LLM_STATUS_TIMEOUT
        try:
            if self.backend == "openai":
                models = await self.openai_client.models.list(timeout=timeout)
                return any(model.id == self.model for model in models.data)
            
            session = await self._get_session()
            async with session.get(
                f"{self.base_url}/api/tags",
                timeout=aiohttp.ClientTimeout(total=timeout),
            ) as response:
                if response.status != 200:
                    return False
                data = await response.json()
        except (asyncio.TimeoutError, aiohttp.ClientError, openai.OpenAIError) as e:
            logger.info(f"LLM endpoint not accessible: {e}")
            return False
        
        family = self.model.split(":")[0]
        names = [model.get("name", "") for model in data.get("models", [])]
        if not any(family in name for name in names):
            logger.info(f"{self.model} model not found. Available models: {names}")
            return False
        return True
