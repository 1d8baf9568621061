"""
LLM Provider Manager with cooldown-aware failover.

Builds pydantic-ai model instances for the completion service and tracks
provider health. Class-level cooldown state is shared across all instances,
so a rate-limited provider is skipped by every caller until it recovers.
"""

import logging
import re
import threading
import time
from typing import Dict, List, Tuple

import httpx
from pydantic_ai.models import Model
from pydantic_ai.models.fallback import FallbackModel
from pydantic_ai.models.function import FunctionModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider

from ..config import get_settings

logger = logging.getLogger(__name__)


class ProviderManager:
    """Manages LLM provider lifecycle with cooldown-based failover.

    Priority: OpenAI-compatible endpoint → Ollama (local). Mock mode returns
    a FunctionModel backed by deterministic canned replies.
    """

    _failed_providers: Dict[str, float] = {}
    _failure_counts: Dict[str, int] = {}   # For exponential backoff
    _RATELIMIT_COOLDOWN = 30.0  # 30s * 2^(n-1), capped at _MAX_COOLDOWN
    _MAX_COOLDOWN = 300.0
    _AUTH_COOLDOWN = 3600.0
    _cooldowns: Dict[str, float] = {}
    _lock = threading.Lock()

    def __init__(self, settings=None, mock_mode: bool = False, disabled_providers: list[str] | None = None):
        self.settings = settings or get_settings()
        self.mock_mode = mock_mode
        self.disabled_providers = set(disabled_providers or [])

    def get_model(self) -> Model:
        """Get current model with cooldown-aware failover.

        Returns FunctionModel for mock mode, FallbackModel when more than one
        real provider is available.
        """
        if self.mock_mode:
            from . import mock_responses
            return FunctionModel(mock_responses.get_mock_response_for_function_model)

        available = self._get_available_providers()
        if not available:
            raise RuntimeError("No LLM providers available (all in cooldown or unconfigured)")
        if len(available) == 1:
            return available[0][1]

        models = [m for _, m in available]
        return FallbackModel(
            models[0], *models[1:],
            fallback_on=self._should_fallback,
        )

    def _is_provider_available(self, name: str, now: float) -> bool:
        if name in self.disabled_providers:
            return False
        return not self._is_cooling_down(name, now)

    def _get_available_providers(self) -> List[Tuple[str, Model]]:
        providers = []
        now = time.time()

        if self.settings.openai_api_key and self._is_provider_available("OpenAI", now):
            providers.append(("OpenAI", self._build_openai_model()))

        if self.settings.use_ollama and self._is_provider_available("Ollama", now):
            providers.append(("Ollama", self._build_ollama_model()))

        return providers

    def _should_fallback(self, exc: Exception) -> bool:
        """Always move to the next provider; hard failures also start a cooldown."""
        error_str = str(exc)
        is_hard_failure = (
            "429" in error_str
            or "401" in error_str
            or "timeout" in error_str.lower() or "timed out" in error_str.lower()
        )
        if is_hard_failure:
            provider_name = self._infer_provider_from_error(exc)
            logger.warning(f"Hard failure on {provider_name}: {error_str[:200]}")
            self.record_failure(provider_name, exc)
        return True

    def record_failure(self, provider_name: str, error: Exception):
        """Record a provider failure with an appropriate cooldown."""
        if provider_name == "unknown":
            return
        with self._lock:
            error_str = str(error)
            now = time.time()
            if "401" in error_str:
                logger.warning(f"{provider_name}: Auth failed (401), disabled for {int(self._AUTH_COOLDOWN)}s")
                self._failed_providers[provider_name] = now
                self._cooldowns[provider_name] = self._AUTH_COOLDOWN
            elif "429" in error_str:
                count = self._failure_counts.get(provider_name, 0) + 1
                self._failure_counts[provider_name] = count
                cooldown = min(self._RATELIMIT_COOLDOWN * (2 ** (count - 1)), self._MAX_COOLDOWN)
                logger.info(f"{provider_name}: Rate limited, {int(cooldown)}s cooldown (#{count})")
                self._failed_providers[provider_name] = now
                self._cooldowns[provider_name] = cooldown
            else:
                # Timeouts and transient errors: switch instantly, no cooldown
                logger.info(f"{provider_name}: Transient error (no cooldown): {error_str[:200]}")

    def _is_cooling_down(self, provider_name: str, now: float) -> bool:
        with self._lock:
            if provider_name not in self._failed_providers:
                return False
            fail_time = self._failed_providers[provider_name]
            if now - fail_time < self._cooldowns.get(provider_name, 0.0):
                return True
            del self._failed_providers[provider_name]
            self._cooldowns.pop(provider_name, None)
            self._failure_counts.pop(provider_name, None)
            logger.info(f"{provider_name} cooldown expired, re-enabling")
        return False

    def _infer_provider_from_error(self, exc: Exception) -> str:
        """Infer which provider an exception came from using model_name and URL."""
        err = str(exc)
        s = self.settings

        match = re.search(r'model_name:\s*([^,\s]+)', err)
        model_name = match.group(1) if match else ""
        if model_name == s.ollama_model:
            return "Ollama"
        if model_name == s.openai_model:
            return "OpenAI"

        if "localhost:11434" in err or s.ollama_base_url in err:
            return "Ollama"
        if s.openai_base_url in err or "api.openai.com" in err:
            return "OpenAI"
        return "unknown"

    @classmethod
    def reset_cooldowns(cls):
        with cls._lock:
            cls._failed_providers.clear()
            cls._failure_counts.clear()
            cls._cooldowns.clear()

    # --- Provider constructors ---

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=httpx.Timeout(self.settings.llm_timeout_seconds))

    def _build_openai_model(self) -> Model:
        """OpenAI (or any OpenAI-compatible endpoint such as Groq or OpenRouter)."""
        return OpenAIChatModel(
            model_name=self.settings.openai_model,
            provider=OpenAIProvider(
                base_url=self.settings.openai_base_url,
                api_key=self.settings.openai_api_key,
                http_client=self._http_client(),
            ),
        )

    def _build_ollama_model(self) -> Model:
        """Ollama via its OpenAI-compatible endpoint."""
        return OpenAIChatModel(
            model_name=self.settings.ollama_model,
            provider=OpenAIProvider(
                base_url=f"{self.settings.ollama_base_url}/v1",
                http_client=self._http_client(),
            ),
        )
