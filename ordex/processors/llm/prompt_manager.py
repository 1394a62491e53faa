"""
Prompt templates for extraction and matching

Each prompt lives in a YAML file under ``ordex/prompts`` (or a custom
directory) with a ``system_prompt`` and a jinja2 ``user_prompt_template``.
Templates are compiled once and rendered per call into a ``RenderedPrompt``.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from jinja2 import Environment, Template, TemplateSyntaxError

logger = logging.getLogger(__name__)

PACKAGED_PROMPTS_DIR = Path(__file__).resolve().parents[2] / "prompts"

# Used when a prompt file is absent: pass the content through untouched
PASSTHROUGH_TEMPLATE = '{{ content }}'


@dataclass(frozen=True)
class RenderedPrompt:
    """System instruction and user message ready to send to a provider"""
    system: str
    user: str


@dataclass
class _CompiledPrompt:
    name: str
    description: str
    system: str
    user: Template


class PromptManager:
    """Loads, compiles and renders the prompt templates"""

    def __init__(self, prompts_dir: Optional[str] = None):
        """
        Args:
            prompts_dir: Directory of ``<name>.yaml`` prompt files. Defaults to the packaged prompts.
        """
        self.prompts_dir = Path(prompts_dir) if prompts_dir else PACKAGED_PROMPTS_DIR
        self._env = Environment(autoescape=False, keep_trailing_newline=False)
        self._compiled: Dict[str, _CompiledPrompt] = {}

    def render(self, prompt_name: str, **variables) -> RenderedPrompt:
        """
        Render a prompt

        Args:
            prompt_name: Prompt file stem, e.g. ``order_extraction``
            **variables: Template variables

        Returns:
            RenderedPrompt with the system text and the rendered user message

        Raises:
            ValueError: If the prompt file is malformed
        """
        compiled = self._get(prompt_name)
        return RenderedPrompt(system=compiled.system, user=compiled.user.render(**variables).strip())

    def describe(self, prompt_name: str) -> str:
        return self._get(prompt_name).description

    def list_prompts(self) -> List[str]:
        """Names of the prompt files available in the prompts directory"""
        if not self.prompts_dir.is_dir():
            return []
        return sorted(path.stem for path in self.prompts_dir.glob("*.yaml"))

    def reload(self) -> None:
        """Forget compiled prompts so edited files are picked up"""
        self._compiled.clear()

    def _get(self, prompt_name: str) -> _CompiledPrompt:
        if prompt_name not in self._compiled:
            self._compiled[prompt_name] = self._compile(prompt_name)
        return self._compiled[prompt_name]

    def _compile(self, prompt_name: str) -> _CompiledPrompt:
        prompt_file = self.prompts_dir / f"{prompt_name}.yaml"
        if not prompt_file.exists():
            logger.warning(f"⚠️ Prompt file not found, passing content through: {prompt_file}")
            return _CompiledPrompt(prompt_name, '', '', self._env.from_string(PASSTHROUGH_TEMPLATE))

        with open(prompt_file, 'r', encoding='utf-8') as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in prompt {prompt_name}: {e}")
        if not isinstance(data, dict):
            raise ValueError(f"Prompt {prompt_name} must be a mapping, got {type(data).__name__}")

        try:
            user = self._env.from_string(data.get('user_prompt_template') or PASSTHROUGH_TEMPLATE)
        except TemplateSyntaxError as e:
            raise ValueError(f"Invalid template in prompt {prompt_name} (line {e.lineno}): {e.message}")

        logger.debug(f"Compiled prompt {prompt_name} from {prompt_file}")
        return _CompiledPrompt(
            name=data.get('name', prompt_name),
            description=data.get('description', ''),
            system=(data.get('system_prompt') or '').strip(),
            user=user,
        )


_default_prompt_manager: Optional[PromptManager] = None


def get_prompt_manager() -> PromptManager:
    """Shared manager over the packaged prompts"""
    global _default_prompt_manager
    if _default_prompt_manager is None:
        _default_prompt_manager = PromptManager()
    return _default_prompt_manager
