from smartwords.services.openrouter import OpenRouterClient, get_openrouter_client


def get_sentence_provider() -> OpenRouterClient:
    """Sentence generator used by the generate endpoint; tests override this dependency."""
    return get_openrouter_client()
