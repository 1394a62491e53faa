"""
Shared fixtures for ORDEX tests
"""

import pytest

from ordex.db import Database
from ordex.processors.llm import BaseLLMService, PromptManager, ProviderResponse


class ScriptedLLMService(BaseLLMService):
    """LLM service returning scripted outputs (strings) or raising scripted exceptions"""

    transport_errors = (ConnectionError,)

    def __init__(self, provider_name, outputs, model="test-model", timeout=None):
        super().__init__(model=model, timeout=timeout)
        self.provider_name = provider_name
        self.outputs = list(outputs)
        self.calls = []

    async def _complete(self, prompt, **kwargs):
        self.calls.append({'prompt': prompt, **kwargs})
        if not self.outputs:
            raise ConnectionError("no scripted output left")
        output = self.outputs.pop(0)
        if isinstance(output, BaseException):
            raise output
        return ProviderResponse(content=output, provider=self.provider_name, model=self.model)


@pytest.fixture
def scripted_service():
    """Factory for scripted LLM services"""
    return ScriptedLLMService


@pytest.fixture
def db():
    """In-memory database with all tables"""
    database = Database(url='sqlite://')
    database.create_all()
    yield database
    database.dispose()


@pytest.fixture
def prompt_manager():
    return PromptManager()


@pytest.fixture
def order_json():
    return """{
  "order_number": "01/240053",
  "customer": "Bar Pepe S.L.",
  "date": "15/03/2024",
  "line_items": [
    {"product_name": "ACEITE OLIVA", "quantity": 10, "unit": "Litro", "unit_price": 2.5, "line_total": 25.0},
    {"product_name": "TOMATE", "quantity": "3", "unit": "Kg", "unit_price": "1,20"}
  ],
  "order_total": 28.6,
  "note": null
}"""
