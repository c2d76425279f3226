# DEPENDENCIES
import sys
import time
import requests
from enum import Enum
from typing import Any
from typing import Dict
from typing import List
from pathlib import Path
from typing import Optional
from dataclasses import dataclass

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from utils.logger import log_info
from utils.logger import log_error
from config.settings import settings
from config.model_config import ModelConfig
from utils.logger import ClauseEngineLogger
from services.exceptions import TextGenerationError


# Optional provider SDK (install the "openai" extra)
try:
    import openai
    OPENAI_AVAILABLE = True

except ImportError:
    OPENAI_AVAILABLE = False


class LLMProvider(Enum):
    """
    Supported text-generation providers
    """
    OLLAMA = "ollama"
    OPENAI = "openai"


@dataclass
class LLMResponse:
    """
    Standardized completion response
    """
    text            : str
    provider        : str
    model           : str
    latency_seconds : float
    success         : bool
    tokens_used     : int           = 0
    error_message   : Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"text"            : self.text,
                "provider"        : self.provider,
                "model"           : self.model,
                "tokens_used"     : self.tokens_used,
                "latency_seconds" : round(self.latency_seconds, 3),
                "success"         : self.success,
                "error_message"   : self.error_message,
               }


class LLMManager:
    """
    Text-generation collaborator used only for drafting replacement clause language

    complete() never raises and reports failure in LLMResponse; generate() is the
    collaborator contract used by the analysis engine and raises TextGenerationError
    """
    SYSTEM_PROMPT = ("You are a contracts lawyer drafting NDA clause language. "
                     "Reply with the clause text only, no commentary, no markdown."
                    )

    def __init__(self, default_provider: LLMProvider = None, ollama_base_url: Optional[str] = None, openai_api_key: Optional[str] = None,
                 fallback_providers: Optional[List[LLMProvider]] = None):
        """
        Initialize LLM Manager

        Arguments:
        ----------
            default_provider   : Provider tried first (defaults to settings.GENERATION_PROVIDER)

            ollama_base_url    : Ollama server URL

            openai_api_key     : OpenAI API key (or settings.OPENAI_API_KEY)

            fallback_providers : Providers tried, in order, when the default one fails
        """
        self.default_provider   = default_provider or LLMProvider(settings.GENERATION_PROVIDER)
        self.fallback_providers = fallback_providers or list()
        self.generation_config  = ModelConfig.LLM_GENERATION

        self.ollama_base_url    = ollama_base_url or settings.OLLAMA_BASE_URL
        self.ollama_model       = settings.OLLAMA_MODEL
        self.ollama_timeout     = settings.OLLAMA_TIMEOUT

        self.openai_api_key     = openai_api_key or settings.OPENAI_API_KEY
        self.openai_model       = settings.OPENAI_MODEL
        self.openai_client      = None

        if (OPENAI_AVAILABLE and self.openai_api_key):
            self.openai_client = openai.OpenAI(api_key = self.openai_api_key)

        log_info("LLMManager initialized",
                 default_provider = self.default_provider.value,
                 openai_available = self.openai_client is not None,
                )


    def is_ollama_available(self) -> bool:
        try:
            response = requests.get(f"{self.ollama_base_url}/api/tags", timeout = 5)
            return (response.status_code == 200)

        except requests.RequestException as e:
            log_error(e, context = {"component" : "LLMManager", "operation" : "check_ollama"})
            return False


    @ClauseEngineLogger.log_execution_time("llm_complete")
    def complete(self, prompt: str, provider: Optional[LLMProvider] = None, temperature: Optional[float] = None, max_tokens: Optional[int] = None,
                 system_prompt: Optional[str] = None) -> LLMResponse:
        """
        Run a completion against the provider chain

        Returns:
        --------
            { LLMResponse } : success=False with error_message when every provider failed
        """
        temperature   = self.generation_config["temperature"] if (temperature is None) else temperature
        max_tokens    = max_tokens or self.generation_config["max_tokens"]
        system_prompt = system_prompt or self.SYSTEM_PROMPT
        chain         = [provider or self.default_provider] + [p for p in self.fallback_providers if p != (provider or self.default_provider)]
        last_error    = None

        for current in chain:
            try:
                if (current == LLMProvider.OLLAMA):
                    return self._complete_ollama(prompt, temperature, max_tokens, system_prompt)

                if (current == LLMProvider.OPENAI):
                    return self._complete_openai(prompt, temperature, max_tokens, system_prompt)

                raise ValueError(f"Unsupported provider: {current}")

            except Exception as e:
                last_error = e
                log_error(e, context = {"component" : "LLMManager", "operation" : "complete", "provider" : current.value})

        return LLMResponse(text            = "",
                           provider        = chain[0].value,
                           model           = "unknown",
                           latency_seconds = 0.0,
                           success         = False,
                           error_message   = str(last_error),
                          )


    def generate(self, prompt: str) -> str:
        """
        Collaborator contract: generated text, or TextGenerationError
        """
        response = self.complete(prompt = prompt)

        if not response.success:
            raise TextGenerationError(response.error_message or "text generation failed")

        text = response.text.strip()

        if not text:
            raise TextGenerationError("text generation returned an empty response")

        return text


    def _complete_ollama(self, prompt: str, temperature: float, max_tokens: int, system_prompt: str) -> LLMResponse:
        start_time = time.time()
        payload    = {"model"   : self.ollama_model,
                      "prompt"  : prompt,
                      "system"  : system_prompt,
                      "stream"  : False,
                      "options" : {"temperature": temperature, "num_predict": max_tokens},
                     }

        response   = requests.post(f"{self.ollama_base_url}/api/generate", json = payload, timeout = self.ollama_timeout)
        response.raise_for_status()

        generated  = response.json().get("response", "")
        latency    = time.time() - start_time

        log_info("Ollama completion successful", model = self.ollama_model, latency_seconds = round(latency, 3))

        return LLMResponse(text            = generated,
                           provider        = LLMProvider.OLLAMA.value,
                           model           = self.ollama_model,
                           latency_seconds = latency,
                           success         = True,
                           tokens_used     = len(prompt.split()) + len(generated.split()),
                          )


    def _complete_openai(self, prompt: str, temperature: float, max_tokens: int, system_prompt: str) -> LLMResponse:
        if self.openai_client is None:
            raise ValueError("OpenAI not available. Install with: pip install openai and set OPENAI_API_KEY")

        start_time = time.time()
        response   = self.openai_client.chat.completions.create(model       = self.openai_model,
                                                                messages    = [{"role": "system", "content": system_prompt},
                                                                               {"role": "user", "content": prompt},
                                                                              ],
                                                                temperature = temperature,
                                                                max_tokens  = max_tokens,
                                                               )
        latency    = time.time() - start_time

        log_info("OpenAI completion successful", model = self.openai_model, latency_seconds = round(latency, 3))

        return LLMResponse(text            = response.choices[0].message.content or "",
                           provider        = LLMProvider.OPENAI.value,
                           model           = self.openai_model,
                           latency_seconds = latency,
                           success         = True,
                           tokens_used     = response.usage.total_tokens if response.usage else 0,
                          )
