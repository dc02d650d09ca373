"""LLM Gateway

Sends summarization and chat requests to interchangeable LLM providers,
decodes their streamed responses and fails over between API keys.
"""

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("llm-gateway")
except PackageNotFoundError:
    # Running from a source checkout without an install
    __version__ = "0.1.0"
__author__ = "LLM Gateway"
