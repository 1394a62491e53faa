"""
Tests for LLM services, the service factory and the prompt manager
"""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from ordex.errors import ProviderTransportError, UnsupportedProviderError
from ordex.processors.llm import PromptManager, ProviderKind, create_from_config, create_llm_service
from ordex.processors.llm.claude_service import ClaudeLLMService
from ordex.processors.llm.gemini_service import GeminiLLMService
from ordex.processors.llm.openai_service import OpenAILLMService


def _chat_response(content):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15),
    )


class TestServiceFactory:
    """Tests for create_llm_service"""

    @pytest.mark.parametrize("kind,service_class", [
        ("openai", OpenAILLMService),
        ("gemini", GeminiLLMService),
        ("anthropic", ClaudeLLMService),
        ("OpenAI", OpenAILLMService),
        (ProviderKind.GEMINI, GeminiLLMService),
    ])
    def test_known_kinds(self, kind, service_class):
        service = create_llm_service(kind, api_key="test-key")
        assert isinstance(service, service_class)

    def test_model_override(self):
        service = create_llm_service("openai", model="gpt-4o-mini", api_key="test-key", timeout=5)
        assert service.model == "gpt-4o-mini"
        assert service.timeout == 5

    def test_unknown_kind(self):
        with pytest.raises(UnsupportedProviderError) as exc_info:
            create_llm_service("mistral", api_key="test-key")
        assert exc_info.value.provider == "mistral"

    def test_from_config_entry(self):
        service = create_from_config({'provider': 'gemini', 'model': 'gemini-2.0-flash', 'api_key': 'k'})
        assert service.provider_name == "gemini"
        assert service.model == "gemini-2.0-flash"


class TestBaseServiceErrors:
    """Tests for timeout and error translation in BaseLLMService.generate"""

    @pytest.mark.asyncio
    async def test_sdk_error_becomes_transport_error(self, scripted_service):
        service = scripted_service("gemini", [ConnectionError("connection reset")])

        with pytest.raises(ProviderTransportError) as exc_info:
            await service.generate("hola")
        assert exc_info.value.provider == "gemini"

    @pytest.mark.asyncio
    async def test_empty_response_is_transport_error(self, scripted_service):
        service = scripted_service("openai", ["   "])

        with pytest.raises(ProviderTransportError):
            await service.generate("hola")

    @pytest.mark.asyncio
    async def test_timeout(self, scripted_service):
        """Test a slow provider call is cut off at the configured timeout"""
        service = scripted_service("gemini", ['{"a": 1}'], timeout=0.01)

        original = service._complete

        async def slow_complete(prompt, **kwargs):
            await asyncio.sleep(1)
            return await original(prompt, **kwargs)

        service._complete = slow_complete

        with pytest.raises(ProviderTransportError) as exc_info:
            await service.generate("hola")
        assert "timed out" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self, scripted_service):
        """Test non-transport exceptions are not swallowed"""
        service = scripted_service("gemini", [KeyError("bug")])

        with pytest.raises(KeyError):
            await service.generate("hola")


class TestOpenAIService:
    """Tests for OpenAILLMService request building"""

    def setup_method(self):
        self.service = OpenAILLMService(api_key="test-key", model="gpt-4o-mini", timeout=None)
        self.service.client = MagicMock()
        self.service.client.chat.completions.create = AsyncMock(return_value=_chat_response('{"a": 1}'))

    @pytest.mark.asyncio
    async def test_json_mode_request(self):
        response = await self.service.generate("prompt", system_prompt="system", json_mode=True, max_tokens=100)

        kwargs = self.service.client.chat.completions.create.call_args.kwargs
        assert kwargs['model'] == "gpt-4o-mini"
        assert kwargs['response_format'] == {"type": "json_object"}
        assert kwargs['max_tokens'] == 100
        assert kwargs['messages'][0] == {"role": "system", "content": "system"}
        assert response.content == '{"a": 1}'
        assert response.provider == "openai"
        assert response.usage['total_tokens'] == 15

    @pytest.mark.asyncio
    async def test_image_request(self):
        """Test images are sent as a base64 data URL"""
        await self.service.analyze_image(b"png", "describe", media_type="image/png")

        kwargs = self.service.client.chat.completions.create.call_args.kwargs
        content = kwargs['messages'][-1]['content']
        assert content[0] == {"type": "text", "text": "describe"}
        assert content[1]['image_url']['url'] == "data:image/png;base64,cG5n"
        assert 'response_format' not in kwargs

    @pytest.mark.asyncio
    async def test_sdk_error_translation(self):
        request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
        self.service.client.chat.completions.create = AsyncMock(
            side_effect=openai.APIConnectionError(request=request)
        )

        with pytest.raises(ProviderTransportError) as exc_info:
            await self.service.generate("prompt")
        assert exc_info.value.provider == "openai"


class TestPromptManager:
    """Tests for PromptManager"""

    def test_packaged_prompts(self, prompt_manager):
        assert {"order_extraction", "vision_extraction", "code_matching"} <= set(prompt_manager.list_prompts())
        assert "line_items" in prompt_manager.render("order_extraction", content="", source="api").system

    def test_render_user_prompt(self, prompt_manager):
        prompt = prompt_manager.render("order_extraction", content="ACEITE 10 L", source="email message")
        assert "ACEITE 10 L" in prompt.user
        assert "email message" in prompt.user

    def test_code_matching_prompt_lists_codes(self, prompt_manager):
        prompt = prompt_manager.render(
            "code_matching", kind="product", name="aceite oliva", code=None, codes=["ACE01", "TOM02"]
        )
        assert '"ACE01"' in prompt.user
        assert "aceite oliva" in prompt.user

    def test_missing_prompt_passes_content_through(self, tmp_path):
        prompt = PromptManager(str(tmp_path)).render("missing", content="hello")
        assert prompt.system == ""
        assert prompt.user == "hello"

    def test_custom_directory_and_reload(self, tmp_path):
        (tmp_path / "custom.yaml").write_text(
            "description: Greeting\nsystem_prompt: Be brief\nuser_prompt_template: 'Say {{ word }}'\n",
            encoding="utf-8",
        )
        manager = PromptManager(str(tmp_path))

        assert manager.list_prompts() == ["custom"]
        assert manager.describe("custom") == "Greeting"
        assert manager.render("custom", word="hola").user == "Say hola"

        (tmp_path / "custom.yaml").write_text("system_prompt: Changed\n", encoding="utf-8")
        assert manager.render("custom").system == "Be brief"
        manager.reload()
        assert manager.render("custom", content="x").system == "Changed"

    @pytest.mark.parametrize("content,message", [
        ("- a\n- b\n", "mapping"),
        ("user_prompt_template: '{{ unclosed'\n", "Invalid template"),
    ])
    def test_malformed_prompt_files(self, tmp_path, content, message):
        (tmp_path / "broken.yaml").write_text(content, encoding="utf-8")

        with pytest.raises(ValueError) as exc_info:
            PromptManager(str(tmp_path)).render("broken")
        assert message in str(exc_info.value)


class TestLazyClients:
    """Tests for creating SDK clients on first use"""

    @pytest.mark.asyncio
    async def test_missing_key_fails_on_first_call(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        service = OpenAILLMService(model="gpt-4o-mini", timeout=None)

        assert service._client is None
        with pytest.raises(ProviderTransportError) as exc_info:
            await service.generate("hola")
        assert "client unavailable" in str(exc_info.value)

    def test_client_built_once(self):
        service = ClaudeLLMService(api_key="test-key")

        assert service.client is service.client
