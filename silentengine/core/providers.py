# Provider catalog: provider id -> backend, upstream model and USD price per 1K tokens.
PROVIDERS = {
    "openai:gpt-4o": {
        "backend": "openai",
        "model": "gpt-4o",
        "input_cost_per_1k": 0.0025,
        "output_cost_per_1k": 0.01,
    },
    "anthropic:claude-haiku-4": {
        "backend": "anthropic",
        "model": "claude-3-haiku-20240307",
        "input_cost_per_1k": 0.00025,
        "output_cost_per_1k": 0.00125,
    },
    "groq:llama-3.1-70b": {
        "backend": "groq",
        "model": "llama-3.1-70b-versatile",
        "input_cost_per_1k": 0.00059,
        "output_cost_per_1k": 0.00079,
    },
    "google:gemini-1.5-flash": {
        "backend": "google",
        "model": "gemini-1.5-flash",
        "input_cost_per_1k": 0.000075,
        "output_cost_per_1k": 0.0003,
    },
    "openrouter:llama-3.1-70b": {
        "backend": "openrouter",
        "model": "meta-llama/llama-3.1-70b-instruct",
        "input_cost_per_1k": 0.00052,
        "output_cost_per_1k": 0.00075,
    },
}
