"""
This script checks the Gemini API key used by the report generator.

It allows users to:
1.  Test if their `GOOGLE_API_KEY` is correctly set up and working.
2.  List the available Gemini models that support content generation, so a
    `model_name` can be picked for `config/config_report_generator.yaml`.

The script is designed to be run directly from the command line and provides
clear, formatted output to help users verify their environment.

Execution:
    $ python scripts/google_genai_models.py
"""

import logging
import os

from dotenv import load_dotenv
from google import genai

# Configure a logger for this script
logger = logging.getLogger(__name__)

load_dotenv()

# --- Configuration ---
GEMINI_API_KEY = os.environ.get("GOOGLE_API_KEY")


def _generation_models(client: genai.Client) -> list:
    """Returns the models that can be used with `generateContent`."""
    return [
        model
        for model in client.models.list()
        if "generateContent" in (getattr(model, "supported_actions", None) or [])
    ]


def list_gemini_models_formatted(models: list) -> None:
    """Prints the available Gemini generation models with key attributes."""
    if not models:
        logger.warning("No generation models found for the provided API key.")
        return

    print("\n--- Available Gemini Models ---")
    print(f"{'Name':<45} {'Input Limit':>12} {'Output Limit':>13}")
    for model in models:
        print(
            f"{model.name:<45} "
            f"{str(getattr(model, 'input_token_limit', 'N/A')):>12} "
            f"{str(getattr(model, 'output_token_limit', 'N/A')):>13}"
        )
    print("\n" + "-" * 72)


def test_api_key() -> bool:
    """
    Tests the configured GOOGLE_API_KEY to ensure it is valid.

    Returns:
        True if the API key is working, False otherwise.
    """
    if not GEMINI_API_KEY:
        logger.error("GOOGLE_API_KEY environment variable not set.")
        print("Please set your API key using one of these methods:")
        print("1. Export in terminal: export GOOGLE_API_KEY='your_key_here'")
        print(
            "2. Create a .env file in your project root with: GOOGLE_API_KEY=your_key_here"
        )
        return False

    try:
        client = genai.Client(api_key=GEMINI_API_KEY)
        models = _generation_models(client)
        logger.info(f"API key is working! Found {len(models)} generation models.")
        list_gemini_models_formatted(models)
        return True
    except Exception as e:
        logger.error(f"API key test failed: {e}")
        return False


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    logger.info("Testing Google API key...")
    if not test_api_key():
        logger.error("\nPlease fix the API key issue and try again.")
