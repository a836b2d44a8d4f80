from invoice_ocr.config import MODEL_PRICES


def estimate_tokens(text: str) -> int:
    # Rough fallback when the response carries no usage block
    return len(text) // 4 + 1


def _pricing_key(model_name: str) -> str:
    """Longest configured prefix of the model name, or 'default'."""
    pricing_key = "default"
    best_match_len = 0
    for key in MODEL_PRICES:
        if key != "default" and model_name.startswith(key) and len(key) > best_match_len:
            pricing_key = key
            best_match_len = len(key)
    return pricing_key


def calculate_cost(model_name: str, prompt_tokens: int, completion_tokens: int) -> float:
    """Calculates the cost of an extraction request from its token usage."""
    prices = MODEL_PRICES.get(_pricing_key(model_name or ""))
    if not prices:
        print(f"Warning: Pricing not found for model '{model_name}'. Using zero rates.")
        return 0.0
    return prompt_tokens * prices["prompt"] + completion_tokens * prices["completion"]
