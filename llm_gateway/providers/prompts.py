"""Fixed prompt text shared by every provider."""

SYSTEM_ROLE_PROMPT = "You are a helpful academic assistant."

CONNECTION_TEST_MESSAGE = "Hello! Please respond with 'OK' to confirm connection."

DEFAULT_SUMMARY_PROMPT = (
    "Summarize the attached paper. Cover the research question, the method, "
    "the main results and the limitations."
)


def build_user_message(prompt: str, text: str) -> str:
    """Inline extracted document text after the instruction."""
    return f"{prompt}\n\n<Paper>\n{text}\n</Paper>"
