# ==============================================
# Google Gemini AI client
# ==============================================

import google.generativeai as genai

from qa_casegen.config.settings import Config
from qa_casegen.utils.logger import get_logger
from qa_casegen.utils.exceptions import GeminiClientException
from qa_casegen.utils.helpers import truncate_string

logger = get_logger(__name__)


class GeminiClient:
    """Client for Google Gemini AI integration"""

    def __init__(self, config: Config):
        """
        Initialize Gemini client

        Args:
            config: Application configuration
        """
        self.config = config

        try:
            genai.configure(api_key=config.gemini.api_key)

            # Use models/gemini-2.0-flash format
            model_name = config.gemini.model
            if not model_name.startswith('models/'):
                model_name = f'models/{model_name}'

            self.model = genai.GenerativeModel(
                model_name=model_name,
                generation_config={
                    "temperature": config.gemini.temperature,
                    "max_output_tokens": config.gemini.max_tokens,
                }
            )

            logger.info(f"Initialized Gemini model: {model_name}")

        except Exception as e:
            raise GeminiClientException(
                f"Failed to initialize Gemini: {str(e)}", original_exception=e
            ) from e

    def generate(self, prompt: str) -> str:
        """
        Generic text generation method

        Args:
            prompt: Input prompt for generation

        Returns:
            Generated text response

        Raises:
            GeminiClientException: If generation fails
        """
        try:
            response = self.model.generate_content(prompt)
            text = response.text if response else ""
        except Exception as e:
            raise GeminiClientException(
                f"Generation failed: {str(e)}", original_exception=e
            ) from e

        if not text:
            raise GeminiClientException("Empty response from Gemini")
        logger.debug(f"Gemini response ({len(text)} chars): {truncate_string(text, 120)}")
        return text
