"""
LLM Service: pydantic-ai backed text completion.

The engine only ever needs free text back (a one-word stance, a short
summary payload), so every call goes through a str-typed Agent and the
caller parses the reply defensively (see json_repair).
"""

import asyncio
import logging
from typing import Dict, Optional

from pydantic_ai import Agent
from pydantic_ai.exceptions import FallbackExceptionGroup
from pydantic_ai.settings import ModelSettings

from ..config import get_settings
from .provider_manager import ProviderManager

logger = logging.getLogger(__name__)


class LLMService:
    """High-level completion service backed by pydantic-ai.

    complete() returns the reply text or raises RuntimeError when no provider
    produced one. Adapters built on top (stance classifier, summary
    generator) turn that into a Fallback instead of propagating it.
    """

    # Cache agents by (system_prompt_hash, mock_mode, cooldown state) across all instances
    _agent_cache: Dict[tuple, Agent] = {}

    def __init__(self, mock_mode: bool = False, settings=None, model=None):
        self.settings = settings or get_settings()
        self.mock_mode = mock_mode or self.settings.mock_mode
        self.provider_manager = ProviderManager(settings=self.settings, mock_mode=self.mock_mode)
        # An explicit model (e.g. a test FunctionModel) bypasses the provider chain
        self._model = model
        if self._model is not None:
            logger.info("LLM: injected model")
        elif self.mock_mode:
            logger.info("LLM: MOCK mode")
        else:
            logger.info(f"LLM: {self.settings.get_llm_config()['provider']} provider")

    def _get_or_create_agent(self, system_prompt: str) -> Agent:
        if self._model is not None:
            return Agent(self._model, output_type=str, system_prompt=system_prompt, retries=1)

        cooldown_key = frozenset(ProviderManager._failed_providers.keys())
        key = (hash(system_prompt), self.mock_mode, cooldown_key)
        if key not in self._agent_cache:
            model = self.provider_manager.get_model()
            self._agent_cache[key] = Agent(
                model,
                output_type=str,
                system_prompt=system_prompt,
                retries=1,
            )
        return self._agent_cache[key]

    async def complete(
        self,
        prompt: str,
        max_tokens: int = 400,
        system_prompt: Optional[str] = None,
        temperature: float = 0.7,
    ) -> str:
        """Send one prompt and return the reply text.

        Raises:
            RuntimeError: no provider configured, every provider failed,
                the call timed out, or the reply was empty.
        """
        agent = self._get_or_create_agent(system_prompt or "")
        try:
            result = await asyncio.wait_for(
                agent.run(
                    prompt,
                    model_settings=ModelSettings(temperature=temperature, max_tokens=max_tokens),
                ),
                timeout=self.settings.llm_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise RuntimeError(f"LLM call timed out after {self.settings.llm_timeout_seconds}s") from e
        except FallbackExceptionGroup as eg:
            self._process_failures(eg)
            raise RuntimeError(f"All LLM providers failed: {eg}") from eg
        except RuntimeError:
            raise
        except Exception as e:
            self._process_failures(e)
            raise RuntimeError(f"LLM call failed: {e}") from e

        response = result.output
        if not response or not response.strip():
            raise RuntimeError("Empty response")
        return response

    def _process_failures(self, eg: BaseException):
        """Record cooldowns for every provider error in an exception group."""
        exceptions = getattr(eg, 'exceptions', [eg])
        for exc in exceptions:
            provider_name = self.provider_manager._infer_provider_from_error(exc)
            err_msg = str(exc)[:150]
            if "429" in err_msg:
                logger.warning(f"  {provider_name}: Rate limited (429)")
            elif "timeout" in err_msg.lower():
                logger.warning(f"  {provider_name}: Timeout")
            else:
                logger.warning(f"  {provider_name}: {err_msg}")
            self.provider_manager.record_failure(provider_name, exc)

    @classmethod
    def clear_cache(cls):
        """Clear agent cache. Useful for testing or config changes."""
        cls._agent_cache.clear()
