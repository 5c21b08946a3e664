from dataclasses import dataclass
from urllib.parse import urlparse

from threatfeed.core.config import get_settings

STUB_PROVIDER = "stub"


@dataclass
class ModelSelection:
    provider: str
    model: str

    @property
    def is_stub(self) -> bool:
        return self.provider == STUB_PROVIDER


def _provider_label(base_url: str) -> str:
    host = (urlparse(base_url).hostname or "").lower()
    # api.groq.com -> groq, api.openai.com -> openai
    parts = [part for part in host.split(".") if part not in {"api", "www"}]
    return parts[0] if parts else "openai"


def select_model() -> ModelSelection:
    settings = get_settings()
    if settings.llm_enabled and settings.llm_api_key:
        return ModelSelection(provider=_provider_label(settings.llm_base_url), model=settings.llm_model)
    return ModelSelection(provider=STUB_PROVIDER, model="stub-v1")
