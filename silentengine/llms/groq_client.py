from silentengine.llms.openai_client import OpenAIClient


class GroqClient(OpenAIClient):
    backend = "groq"
    base_url = "https://api.groq.com/openai/v1"
    key_env = "GROQ_API_KEY"
