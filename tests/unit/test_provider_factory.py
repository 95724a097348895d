import httpx
import pytest

from llm_gateway.domain.exceptions import ProviderAuthError
from llm_gateway.domain.models import ProviderDescriptor
from llm_gateway.providers.anthropic_provider import AnthropicProvider
from llm_gateway.providers.base import BaseProvider
from llm_gateway.providers.factory import ProviderFactory
from llm_gateway.providers.google_provider import GoogleProvider
from llm_gateway.providers.ollama_provider import OllamaProvider
from llm_gateway.providers.openai_provider import OpenAIProvider
from llm_gateway.registry.registry import ProviderRegistry
from llm_gateway.registry.store import InMemoryConfigStore


class _DummyProvider(BaseProvider):
    def _make_api_call(self, payload):  # pragma: no cover - never called
        return {}

    def _stream_api_call(self, payload):  # pragma: no cover - never called
        yield {}


def _client_factory(timeout: float) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))


def _factory(environ=None, **kwargs) -> ProviderFactory:
    registry = ProviderRegistry(
        InMemoryConfigStore(),
        http_client_factory=_client_factory,
        environ=environ if environ is not None else {},
    )
    return ProviderFactory(registry, http_client_factory=_client_factory, **kwargs)


def _descriptor(name: str, requires_api_key: bool = True) -> ProviderDescriptor:
    return ProviderDescriptor(name=name, enabled=True, requires_api_key=requires_api_key)


@pytest.mark.parametrize(
    "name,expected",
    [
        ("openai", OpenAIProvider),
        ("deepseek", OpenAIProvider),
        ("anthropic", AnthropicProvider),
        ("google", GoogleProvider),
    ],
)
def test_factory_picks_adapter_by_dialect(name, expected):
    environ = {
        "OPENAI_API_KEY": "o",
        "DEEPSEEK_API_KEY": "d",
        "ANTHROPIC_API_KEY": "a",
        "GOOGLE_API_KEY": "g",
    }

    provider = _factory(environ).create(_descriptor(name))

    assert isinstance(provider, expected)
    assert provider.config.api_key


def test_missing_key_raises_auth_error_naming_the_variable():
    with pytest.raises(ProviderAuthError) as exc_info:
        _factory().create(_descriptor("openai"))

    assert exc_info.value.context["env_var"] == "OPENAI_API_KEY"


def test_gemini_alias_supplies_the_google_key():
    provider = _factory({"GEMINI_API_KEY": "g"}).create(_descriptor("google"))

    assert provider.config.api_key == "g"


def test_local_providers_need_no_key():
    factory = _factory()

    ollama = factory.create(_descriptor("ollama", requires_api_key=False))
    llamacpp = factory.create(_descriptor("llamacpp", requires_api_key=False))

    assert isinstance(ollama, OllamaProvider)
    assert ollama.config.base_url == "http://localhost:11434"
    assert isinstance(llamacpp, OpenAIProvider)
    assert llamacpp.config.chat_path == "/v1/chat/completions"


def test_adapters_are_cached_per_settings():
    factory = _factory({"OPENAI_API_KEY": "o"}, timeout=20, max_retries=1)
    descriptor = _descriptor("openai")

    first = factory.create(descriptor)
    second = factory.create(descriptor)
    probe = factory.create(descriptor, timeout=3, max_retries=0)

    assert first is second
    assert probe is not first
    assert first.config.timeout == 20
    assert first.config.max_retries == 1
    assert probe.config.timeout == 3
    assert probe.config.max_retries == 0


def test_new_key_yields_new_adapter():
    environ = {"OPENAI_API_KEY": "old"}
    factory = _factory(environ)
    descriptor = _descriptor("openai")

    first = factory.create(descriptor)
    environ["OPENAI_API_KEY"] = "new"
    second = factory.create(descriptor)

    assert first is not second
    assert second.config.api_key == "new"


def test_rotated_key_closes_superseded_adapters():
    environ = {"OPENAI_API_KEY": "old", "GROQ_API_KEY": "g"}
    factory = _factory(environ)
    old = factory.create(_descriptor("openai"))
    old_check = factory.create(_descriptor("openai"), timeout=3, max_retries=0)
    groq = factory.create(_descriptor("groq"))

    environ["OPENAI_API_KEY"] = "new"
    current = factory.create(_descriptor("openai"))
    current_check = factory.create(_descriptor("openai"), timeout=3, max_retries=0)

    assert old._http.is_closed
    assert old_check._http.is_closed
    assert not groq._http.is_closed
    assert not current._http.is_closed
    assert factory.create(_descriptor("openai")) is current
    assert factory.create(_descriptor("openai"), timeout=3, max_retries=0) is current_check


def test_register_dialect_overrides_default():
    factory = _factory({"OPENAI_API_KEY": "o"})
    factory.register_dialect("openai", _DummyProvider)

    assert isinstance(factory.create(_descriptor("openai")), _DummyProvider)


def test_base_url_override_from_environment():
    provider = _factory({"OLLAMA_BASE_URL": "http://gpu-box:11434/"}).create(
        _descriptor("ollama", requires_api_key=False)
    )

    assert provider.config.base_url == "http://gpu-box:11434"
