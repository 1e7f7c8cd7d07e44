"""Azure OpenAI integration for summary generation."""
import logging
import threading
from typing import Dict

from llama_index.llms.azure_openai import AzureOpenAI

from mention_digest.models.config import AzureOpenAIConfig
from mention_digest.models.summary import Candidate, GenerationResponse

logger = logging.getLogger(__name__)


def setup_azure_llm(config: AzureOpenAIConfig, model: str, timeout: float = 60.0) -> AzureOpenAI:
    """Set up Azure OpenAI LLM.

    Args:
        config: Azure OpenAI configuration.
        model: Model served by the configured deployment.
        timeout: Request timeout in seconds.

    Returns:
        Configured Azure OpenAI LLM instance.
    """
    try:
        llm = AzureOpenAI(
            model=model,
            deployment_name=config.llm_deployment,
            api_key=config.api_key,
            azure_endpoint=config.endpoint,
            api_version=config.llm_api_version,
            timeout=timeout,
            max_retries=0,
        )
        logger.info(f"Configured Azure OpenAI LLM {model} ({config.llm_deployment})")
        return llm
    except Exception as e:
        logger.error(f"Error setting up Azure OpenAI LLM: {str(e)}")
        raise


class AzureTextGenerator:
    """
    Stateless single-prompt text generation backed by Azure OpenAI.

    The LLM for a model is built on first use and then shared by all
    worker threads.
    """

    def __init__(self, config: AzureOpenAIConfig, timeout: float = 60.0):
        self.config = config
        self.timeout = timeout
        self._llms: Dict[str, AzureOpenAI] = {}
        self._lock = threading.Lock()

    def _get_llm(self, model_id: str) -> AzureOpenAI:
        with self._lock:
            if model_id not in self._llms:
                self._llms[model_id] = setup_azure_llm(self.config, model_id, self.timeout)
            return self._llms[model_id]

    def generate(self, model_id: str, prompt: str) -> GenerationResponse:
        """Run one completion for the prompt.

        Args:
            model_id: Model to use.
            prompt: Complete prompt text.

        Returns:
            The completion as a GenerationResponse; an empty completion yields
            no candidates.
        """
        llm = self._get_llm(model_id)
        response = llm.complete(prompt)
        text = response.text or ""
        if not text.strip():
            return GenerationResponse(candidates=[])
        return GenerationResponse(candidates=[Candidate(parts=[text])])
